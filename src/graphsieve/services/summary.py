"""Cheap page summaries for the index."""

import re
from typing import Iterable, Optional

from graphsieve.logseq.parser import ContentNode, parse, strip_logbook_nodes

SUMMARY_MAX_CHARS = 100

_PROPERTY_LINE_RE = re.compile(r"^[\w-]+?::\s")
_IMAGE_RE = re.compile(
    r"[\[(](?:\.\./)*assets/([^\[\]()]+?\.(?:png|jpe?g|gif|webp|svg))[\])]",
    re.IGNORECASE,
)


def summarize_tree(nodes: Iterable[ContentNode], max_chars: int = SUMMARY_MAX_CHARS) -> list[str]:
    """Collect first lines of blocks, depth-first, until max_chars is reached.

    Blocks past the first level are prefixed with two spaces per level and
    '* '. Property declarations (``key:: value``) and front-matter
    delimiters are skipped. Each line is cut at max_chars, which can split
    a word.

    Args:
        nodes: Parsed page blocks
        max_chars: Total character budget (counted including prefixes)

    Returns:
        Summary lines (possibly empty)
    """
    summary: list[str] = []
    total = 0
    stack = [(0, iter(strip_logbook_nodes(nodes)))]
    while stack and total < max_chars:
        depth, it = stack[-1]
        node = next(it, None)
        if node is None:
            stack.pop()
            continue
        line = node.first_line[:max_chars]
        if line.strip() and not _PROPERTY_LINE_RE.match(line) and line.strip() != "---":
            if depth > 0:
                line = "  " * depth + "* " + line
            total += len(line)
            summary.append(line)
        if node.children:
            stack.append((depth + 1, iter(node.children)))
    return summary


def summarize_text(text: Optional[str], max_chars: int = SUMMARY_MAX_CHARS) -> list[str]:
    """Summary of raw page text (front matter and LOGBOOK ranges skipped)."""
    return summarize_tree(parse(text), max_chars)


def first_image(text: Optional[str]) -> str:
    """First image under assets/ referenced by text, relative to assets/ ('' if none)."""
    m = _IMAGE_RE.search(text or "")
    return m.group(1) if m else ""


def first_image_in_tree(nodes: Iterable[ContentNode]) -> str:
    """First image under assets/ in a block tree, depth-first."""
    for node in nodes:
        found = first_image(node.text) or first_image_in_tree(node.children)
        if found:
            return found
    return ""
