"""Tree walker and text views for parsed pages.

``walk`` lazily yields the lines that survive the rule chain; the views
below are thin consumers of it. The tree is never modified, so one parse can
be rendered any number of times with different options.
"""

import re
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional

from graphsieve.logseq.parser import ContentNode, strip_logbook_nodes
from graphsieve.models.filter_options import FilterOptions
from graphsieve.rendering.rules import apply_rules

_FENCE = "```"

MD_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
MD_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]*\)")
ORG_LINK_RE = re.compile(r"\[\[([^\]]+)\]\[([^\]]*)\]\]")
PAGE_REF_RE = re.compile(r"\[\[([^\]]+)\]\]")

_IMAGE_EXT = r"\.(?:png|jpe?g|gif|webp|svg|bmp)"
ONLY_MD_IMAGE_RE = re.compile(r"^!\[[^\]]*\]\([^)]*\)$")
ONLY_ORG_IMAGE_RE = re.compile(rf"^\[\[[^\]]+{_IMAGE_EXT}\](?:\[[^\]]*\])?\]$", re.IGNORECASE)

# Applied in order by strip_markdown
_MARKDOWN_STEPS: list[tuple[re.Pattern, Any]] = [
    (re.compile(r"^\s*```.*$"), ""),
    (re.compile(r"^\s*#{1,6}\s+"), ""),
    (re.compile(r"^\s*\*{1,6}\s+"), ""),
    (re.compile(r"^\s*[-*+]\s+"), ""),
    (re.compile(r"^\s*\d+\.\s+"), ""),
    (re.compile(r"^\s*(?<!\[)\[(?:x|X| |-)\](?!\])\s*"), ""),
    (re.compile(r"\*\*([^*]+)\*\*"), r"\1"),
    (re.compile(r"\*([^*]+)\*"), r"\1"),
    (re.compile(r"__([^_]+)__"), r"\1"),
    (re.compile(r"(?<!\w)_([^_]+)_(?!\w)"), r"\1"),
    (re.compile(r"~~([^~]+)~~"), r"\1"),
    (re.compile(r"\^\^([^^]+)\^\^"), r"\1"),
    (re.compile(r"`([^`]+)`"), r"\1"),
    (MD_IMAGE_RE, r"\1"),
    (ORG_LINK_RE, lambda m: m.group(2) or m.group(1)),
    (MD_LINK_RE, r"\1"),
    (PAGE_REF_RE, r"\1"),
    (re.compile(r"(^|\s)#\[\[([^\]]+)\]\]"), r"\1\2"),
    (re.compile(r"(^|\s)#(\S+)"), r"\1\2"),
]


@dataclass(frozen=True)
class EmittedLine:
    """One rendered line produced by walk().

    Attributes:
        depth: Nesting depth of the owning block (0 = top level)
        text: Line text after the rule chain, list marker removed
        kind: "text", "ref" or "embed"
        ref_id: Referenced uuid / embedded page for "ref" and "embed" lines
    """

    depth: int
    text: str
    kind: str = "text"
    ref_id: Optional[str] = None

    @property
    def is_reference(self) -> bool:
        return self.kind != "text"


def walk(
    nodes: Iterable[ContentNode],
    options: Any = None,
    depth: int = 0,
    first_line_only: bool = False,
) -> Iterator[EmittedLine]:
    """Yield the visible lines of a block tree, depth-first.

    Args:
        nodes: Top-level nodes to render
        options: FilterOptions, a loose mapping, or None for defaults
        depth: Depth assigned to the top-level nodes
        first_line_only: Consider only the first line of each block

    Yields:
        EmittedLine for every line that survives the rule chain
    """
    opts = FilterOptions.coerce(options)
    level = strip_logbook_nodes(nodes) if opts.hide_logbook else list(nodes or ())
    yield from _walk(level, opts, depth, first_line_only)


def _walk(
    nodes: list[ContentNode],
    opts: FilterOptions,
    depth: int,
    first_line_only: bool,
) -> Iterator[EmittedLine]:
    for node in nodes:
        lines = (node.text or "").split("\n")
        if first_line_only:
            lines = lines[:1]
        in_fence = False
        for line in lines:
            is_fence = line.strip().startswith(_FENCE)
            result = apply_rules(line, opts, in_code_fence=in_fence or is_fence)
            if is_fence:
                in_fence = not in_fence
            if result is None:
                continue
            yield EmittedLine(depth=depth, text=result.text, kind=result.kind, ref_id=result.ref_id)
        if node.children:
            yield from _walk(list(node.children), opts, depth + 1, first_line_only)


def strip_markdown(line: str) -> str:
    """Reduce a line of outline markup to plain text."""
    out = line
    for pattern, repl in _MARKDOWN_STEPS:
        out = pattern.sub(repl, out)
    return out


def reduce_links(line: str) -> str:
    """Replace link syntax with its display text and drop images."""
    line = MD_IMAGE_RE.sub("", line)
    line = MD_LINK_RE.sub(r"\1", line)
    return ORG_LINK_RE.sub(lambda m: m.group(2) or m.group(1), line)


def flatten_outline_text(nodes: Iterable[ContentNode], options: Any = None) -> str:
    """Render nodes as a bulleted outline: indent + '- ' + text per line.

    With normalize_tasks enabled, "- TODO write report" renders as
    "- [ ] write report".
    """
    lines = [f"{'  ' * line.depth}- {line.text}" for line in walk(nodes, options)]
    return "\n".join(line for line in lines if not re.match(r"^\s*-\s*-\s*$", line))


def plain_text(nodes: Iterable[ContentNode], options: Any = None) -> str:
    """Render nodes as narrative text with markup removed.

    Lines consisting of a single image are dropped. Pure block references
    render as '[ref] <uuid>' (they are already gone when references are
    hidden).
    """
    opts = FilterOptions.coerce(options)
    lines: list[str] = []
    for line in walk(nodes, opts):
        indent = "  " * line.depth
        core = line.text.strip()
        if line.is_reference:
            lines.append(f"{indent}[ref] {line.ref_id}")
            continue
        if ONLY_MD_IMAGE_RE.match(core) or ONLY_ORG_IMAGE_RE.match(core):
            continue
        stripped = strip_markdown(line.text).strip()
        if stripped:
            lines.append(f"{indent}{stripped}")
    text = "\n".join(lines)
    return re.sub(r"\n{3,}", "\n\n", text).strip("\n")


def outline_summary_text(nodes: Iterable[ContentNode], options: Any = None) -> str:
    """First line of every block, with links reduced to their display text."""
    opts = FilterOptions.coerce(options)
    # Outline summaries always use the linked policy
    opts = opts.model_copy(update={"folder_mode": False})
    lines: list[str] = []
    for line in walk(nodes, opts, first_line_only=True):
        text = reduce_links(line.text).strip()
        if text:
            lines.append(f"{'  ' * line.depth}- {text}")
    return "\n".join(lines)


def has_renderable_content(nodes: Iterable[ContentNode], options: Any = None) -> bool:
    """True if at least one line survives the rule chain."""
    return next(iter(walk(nodes, options)), None) is not None
