"""Per-line filter/rewrite rules.

Each surviving line of a block is pushed through ``apply_rules``. Rules run
in a fixed order and any of them may drop the line:

1. forced-hidden property (id::, collapsed::, always-hidden keys)
2. hide_properties
3. hide_queries
4. pure block reference / embed handling
5. list-marker strip
6. lone dash (folder policy)
7. remove_strings, macros, renderers, task normalization, bracket strip
"""

import re
from dataclasses import dataclass
from typing import Optional

from graphsieve.models.filter_options import FilterOptions

# Optional bullet/ordinal and checkbox before the interesting token
_PREFIX = r"(?:\s*(?:[-*+]\s+|\d+\.\s+)?)?(?:\s*\[(?:x|X| )\]\s*)?"

UUID = r"[0-9a-fA-F-]{36}"

PROPERTY_KEY_RE = re.compile(rf"^{_PREFIX}\s*([^:\n]+?)\s*::(?:\s|$)")
PROPERTY_TOKEN_RE = re.compile(r"\S::(?:\s|$)")
FORCED_HIDDEN_KEYS = frozenset({"id", "collapsed"})

QUERY_RE = re.compile(r"\{\{\s*query\b[^}]*\}\}", re.IGNORECASE)
RENDERER_RE = re.compile(r"\{\{\s*renderer\b[^}]*\}\}", re.IGNORECASE)

ONLY_REF_RE = re.compile(rf"^{_PREFIX}\s*\(\(({UUID})\)\)\s*$")
ONLY_EMBED_RE = re.compile(rf"^{_PREFIX}\s*(\{{\{{\s*embed\b[^}}]*\}}\}})\s*$", re.IGNORECASE)
EMBED_TARGET_RE = re.compile(rf"\(\(({UUID})\)\)|\[\[([^\]]+)\]\]")

INLINE_REF_RE = re.compile(rf"\(\({UUID}\)\)")
INLINE_EMBED_BLOCK_RE = re.compile(rf"\{{\{{\s*embed\s*\(\({UUID}\)\)\s*\}}\}}", re.IGNORECASE)
INLINE_EMBED_PAGE_RE = re.compile(r"\{\{\s*embed\s*\[\[[^\]]+\]\]\s*\}\}", re.IGNORECASE)

BULLET_START_RE = re.compile(r"^\s*(?:[-*+]|\d+\.)\s+")
LONE_DASH_RE = re.compile(r"^\s*-\s*$")

MACRO_RE = re.compile(r"\{\{[^}]*\}\}")
MACRO_EXCEPT_QUERY_RE = re.compile(r"\{\{(?!\s*query)[^}]*\}\}", re.IGNORECASE)

TASK_STATUS_RE = re.compile(
    r"^(\s*)([-*+]\s+)?"
    r"(TODO|DOING|NOW|LATER|WAITING|IN-PROGRESS|HABIT|START|STARTED|DONE|CANCEL[A-Z]*)\s+"
)
CHECKBOX_RE = re.compile(r"^\s*(?:[-*+]\s+)?\[[ xX-]\]")

PAGE_REF_RE = re.compile(r"\[\[([^\]]+)\]\]")


@dataclass(frozen=True)
class RuleOutput:
    """A line that survived the rule chain.

    Attributes:
        text: Display text (for reference placeholders, the raw token)
        kind: "text", "ref" (block reference) or "embed"
        ref_id: Referenced block uuid or embedded page name
    """

    text: str
    kind: str = "text"
    ref_id: Optional[str] = None


def property_key(line: str) -> Optional[str]:
    """Return the property key if line is a 'key:: value' declaration."""
    m = PROPERTY_KEY_RE.match(line or "")
    return m.group(1).strip() if m else None


def is_forced_hidden_property(line: str, always_hide_keys=()) -> bool:
    """True for id::/collapsed:: lines and user always-hidden keys (case-insensitive)."""
    key = property_key(line)
    if key is None:
        return False
    key = key.lower()
    return key in FORCED_HIDDEN_KEYS or key in {k.lower() for k in always_hide_keys}


def is_only_ref(line: str) -> bool:
    """True if line holds nothing but a ((uuid)) block reference."""
    return bool(ONLY_REF_RE.match(line or ""))


def is_only_embed(line: str) -> bool:
    """True if line holds nothing but an {{embed ...}} macro."""
    return bool(ONLY_EMBED_RE.match(line or ""))


def normalize_task_line(line: str) -> str:
    """Rewrite a leading task marker as a checkbox.

    TODO/DOING/NOW/LATER/WAITING/IN-PROGRESS/HABIT/START/STARTED become
    '[ ]', DONE becomes '[x]' and any CANCEL* marker becomes '[-]'. Lines
    that already carry a checkbox are returned unchanged.

    Examples:
        >>> normalize_task_line("- TODO write report")
        '- [ ] write report'
        >>> normalize_task_line("- [x] already checked")
        '- [x] already checked'
    """
    if CHECKBOX_RE.match(line):
        return line
    m = TASK_STATUS_RE.match(line)
    if not m:
        return line
    status = m.group(3)
    if status == "DONE":
        box = "[x]"
    elif status.startswith("CANCEL"):
        box = "[-]"
    else:
        box = "[ ]"
    return f"{m.group(1)}{m.group(2) or ''}{box} " + line[m.end():]


def remove_macro_tokens(line: str, also_queries: bool = False) -> str:
    """Remove {{...}} macros; {{query ...}} survives unless also_queries."""
    regex = MACRO_RE if also_queries else MACRO_EXCEPT_QUERY_RE
    return regex.sub("", line)


def strip_page_brackets(line: str) -> str:
    """Render [[Page]] as Page."""
    return PAGE_REF_RE.sub(r"\1", line)


def strip_inline_refs(line: str) -> str:
    """Remove block references and embeds, collapsing leftover whitespace."""
    out = INLINE_EMBED_BLOCK_RE.sub("", line)
    out = INLINE_EMBED_PAGE_RE.sub("", out)
    out = INLINE_REF_RE.sub("", out)
    return re.sub(r"\s+", " ", out).strip()


def _placeholder(line: str) -> Optional[RuleOutput]:
    m = ONLY_REF_RE.match(line)
    if m:
        return RuleOutput(text=f"(({m.group(1)}))", kind="ref", ref_id=m.group(1))
    m = ONLY_EMBED_RE.match(line)
    if m:
        token = m.group(1)
        target = EMBED_TARGET_RE.search(token)
        ref_id = (target.group(1) or target.group(2)) if target else None
        return RuleOutput(text=token, kind="embed", ref_id=ref_id)
    return None


def apply_rules(
    line: str,
    options: FilterOptions,
    in_code_fence: bool = False,
) -> Optional[RuleOutput]:
    """Run one source line through the rule chain.

    Args:
        line: Raw line of block text
        options: Validated filter options
        in_code_fence: Line sits inside a ``` fenced block (task markers are
                       left alone there)

    Returns:
        RuleOutput for a surviving line, None if the line is dropped
    """
    line = line.replace("\r", "")
    if not line.strip():
        return None

    # 1-3: hiding rules
    if is_forced_hidden_property(line, options.always_hide_keys):
        return None
    if options.hide_properties and PROPERTY_TOKEN_RE.search(line):
        return None
    if options.hide_queries and QUERY_RE.search(line):
        return None

    # 4: pure references and embeds
    if is_only_ref(line) or is_only_embed(line):
        if options.hide_references:
            return None
        if not options.folder_mode:
            return _placeholder(line)
    if options.folder_mode and (INLINE_REF_RE.search(line) or INLINE_EMBED_PAGE_RE.search(line)):
        line = strip_inline_refs(line)
        if not line:
            return None

    # 5-6: list marker and lone dash
    line = BULLET_START_RE.sub("", line, count=1)
    if options.folder_mode and LONE_DASH_RE.match(line):
        return None

    # 7: substitutions
    for needle in options.remove_strings:
        line = line.replace(needle, "")
    if options.remove_macros:
        line = remove_macro_tokens(line, also_queries=options.hide_queries)
    if options.hide_renderers and RENDERER_RE.search(line):
        return None
    if options.normalize_tasks and not in_code_fence:
        line = normalize_task_line(line)
    if options.strip_page_brackets:
        line = strip_page_brackets(line)

    if not line.strip():
        return None
    return RuleOutput(text=line)
