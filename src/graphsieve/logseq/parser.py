"""Outline parser for Logseq-style markdown/org pages.

This module turns raw page text into a tree of ContentNode objects. It is
deliberately lenient: hierarchy is derived from leading whitespace alone, so
the same code handles bulleted Logseq pages and plain indented text. The
parser is total - any string produces a (possibly empty) list of nodes.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

# Bullet or ordinal marker at the start of a (left-stripped) line
_MARKER_RE = re.compile(r"^(?:[-*+]|\d+\.)(?:\s+|$)")

# Optional bullet/ordinal and checkbox before a structural marker
_PREFIX = r"(?:\s*(?:[-*+]\s+|\d+\.\s+)?)?(?:\s*\[(?:x|X| )\]\s*)?"
_LOGBOOK_BEGIN_RE = re.compile(rf"^{_PREFIX}\s*:LOGBOOK:\s*$", re.IGNORECASE)
_LOGBOOK_END_RE = re.compile(rf"^{_PREFIX}\s*:END:\s*$", re.IGNORECASE)

_FENCE = "```"


@dataclass(frozen=True)
class ContentNode:
    """One block of a parsed page.

    Nodes are immutable: views render a tree without modifying it, so the
    same tree can be rendered repeatedly under different filter options.

    Attributes:
        text: Block text without its list marker; continuation lines are
              joined with newlines
        children: Child blocks in source order
    """

    text: str
    children: tuple["ContentNode", ...] = ()

    @property
    def first_line(self) -> str:
        """First line of the block text."""
        return self.text.split("\n", 1)[0]

    @property
    def lines(self) -> list[str]:
        """All lines of the block text."""
        return self.text.split("\n")


@dataclass
class _Draft:
    """Mutable node used while building the tree."""

    indent: int
    content_col: int
    bulleted: bool
    lines: list[str] = field(default_factory=list)
    children: list["_Draft"] = field(default_factory=list)
    last_line_indent: int = 0

    def freeze(self) -> ContentNode:
        return ContentNode(
            text="\n".join(self.lines),
            children=tuple(child.freeze() for child in self.children),
        )


def strip_front_matter(text: str) -> str:
    """Remove a single leading front-matter block delimited by '---' lines.

    Only a block opening on the first non-blank line counts. An unterminated
    block is left untouched.
    """
    lines = text.split("\n")
    i = 0
    while i < len(lines) and not lines[i].strip():
        i += 1
    if i >= len(lines) or lines[i].strip() != "---":
        return text
    for j in range(i + 1, len(lines)):
        if lines[j].strip() == "---":
            return "\n".join(lines[j + 1:])
    return text


def strip_logbook(text: str) -> str:
    """Remove :LOGBOOK: ... :END: ranges (inclusive) from text.

    Markers are matched case-insensitively and may carry a bullet or
    checkbox prefix. An unterminated LOGBOOK swallows the rest of the text.
    """
    if not text or ":" not in text:
        return text or ""
    out = []
    skipping = False
    for line in text.split("\n"):
        if not skipping and _LOGBOOK_BEGIN_RE.match(line):
            skipping = True
            continue
        if skipping:
            if _LOGBOOK_END_RE.match(line):
                skipping = False
            continue
        out.append(line)
    return "\n".join(out)


def strip_logbook_nodes(nodes: Iterable[ContentNode]) -> list[ContentNode]:
    """Remove LOGBOOK ranges from a node tree, at every level.

    A sibling whose text is ':LOGBOOK:' starts a skipped range that ends with
    (and includes) the next sibling whose text is ':END:'. LOGBOOK ranges
    embedded in a node's own text are removed as well. Returns new nodes.
    """
    result: list[ContentNode] = []
    skipping = False
    for node in nodes or ():
        content = (node.text or "").replace("\r", "").strip()
        if not skipping and _LOGBOOK_BEGIN_RE.match(content):
            skipping = True
            continue
        if skipping:
            if _LOGBOOK_END_RE.match(content):
                skipping = False
            continue
        result.append(
            ContentNode(
                text=strip_logbook(node.text or ""),
                children=tuple(strip_logbook_nodes(node.children)),
            )
        )
    return result


def _leading_width(line: str) -> int:
    return len(line) - len(line.lstrip())


def parse(raw_text: Optional[str]) -> list[ContentNode]:
    """Parse raw page text into a list of top-level ContentNodes.

    Steps:
    - Strip a leading '---' front-matter block
    - Remove LOGBOOK ranges
    - Normalize tabs to two spaces and skip blank lines
    - A line is a child of the nearest preceding node with a strictly
      smaller indent
    - A non-bulleted line inside the previous bullet's content column, or at
      the same indent as the previous line, continues that node instead of
      starting a sibling
    - List markers (-, *, +, N.) are not kept in node text

    Args:
        raw_text: Page text (None and empty strings are accepted)

    Returns:
        Top-level nodes; empty list for empty input
    """
    if not raw_text or not raw_text.strip():
        return []

    src = strip_logbook(strip_front_matter(raw_text))

    root = _Draft(indent=-1, content_col=0, bulleted=False)
    stack: list[_Draft] = [root]
    last: Optional[_Draft] = None
    in_code_fence = False

    for raw_line in src.splitlines():
        line = raw_line.replace("\t", "  ")
        if not line.strip():
            continue

        indent = _leading_width(line)
        stripped = line.lstrip()
        marker = None if in_code_fence else _MARKER_RE.match(stripped)

        if last is not None and (in_code_fence or _is_continuation(last, indent, marker)):
            # Keep indentation beyond the node's content column (code blocks)
            if line[: last.content_col].strip() == "" and len(line) > last.content_col:
                last.lines.append(line[last.content_col:])
            else:
                last.lines.append(stripped)
            last.last_line_indent = indent
            if stripped.startswith(_FENCE):
                in_code_fence = not in_code_fence
            continue

        if marker:
            text = stripped[marker.end():]
            content_col = indent + marker.end()
        else:
            text = stripped
            content_col = indent

        node = _Draft(
            indent=indent,
            content_col=content_col,
            bulleted=marker is not None,
            lines=[text],
            last_line_indent=indent,
        )
        while len(stack) > 1 and stack[-1].indent >= indent:
            stack.pop()
        stack[-1].children.append(node)
        stack.append(node)
        last = node

        if text.lstrip().startswith(_FENCE):
            in_code_fence = not in_code_fence

    return [child.freeze() for child in root.children]


def _is_continuation(last: _Draft, indent: int, marker: Optional[re.Match]) -> bool:
    if marker:
        return False
    if last.bulleted and last.indent < indent <= last.content_col:
        return True
    return indent == last.last_line_indent


def nodes_from_tree(blocks: Any) -> list[ContentNode]:
    """Convert outliner-API block dicts into ContentNodes.

    Accepts a list of mappings with "content" and "children" keys. Entries
    that are not mappings (e.g. collapsed ["uuid", "..."] references) are
    skipped.
    """
    if not isinstance(blocks, list):
        return []
    nodes = []
    for block in blocks:
        if not isinstance(block, dict):
            continue
        content = block.get("content")
        nodes.append(
            ContentNode(
                text=str(content) if content is not None else "",
                children=tuple(nodes_from_tree(block.get("children") or [])),
            )
        )
    return nodes


def render_outline(nodes: Iterable[ContentNode], indent_str: str = "  ") -> str:
    """Render nodes back to bulleted outline text (no filtering)."""
    lines: list[str] = []

    def render_node(node: ContentNode, depth: int) -> None:
        indent = indent_str * depth
        first, *rest = node.text.split("\n")
        lines.append(f"{indent}- {first}" if first else f"{indent}-")
        for line in rest:
            lines.append(f"{indent}  {line}")
        for child in node.children:
            render_node(child, depth + 1)

    for node in nodes:
        render_node(node, 0)
    return "\n".join(lines)
