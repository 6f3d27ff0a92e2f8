"""Journal page names and calendar-date detection.

Journal pages are stored as ``YYYY_MM_DD`` files (optionally under a
``journals/`` folder), but links to them are written in many shapes:
``2025-01-01``, ``20250101``, ``2025/01/01``, ``Aug 16th, 2025`` or
``2025年8月16日``. The helpers here map all of those to the canonical
``YYYY_MM_DD`` page name.
"""

import re
from datetime import date
from typing import Optional

RE_JOURNAL_FULL = re.compile(r"^(?:journals/)?(\d{4})[-_]?(\d{2})[-_]?(\d{2})$")
RE_YMD_CORE = re.compile(r"^(\d{4})[-_]?(\d{2})[-_]?(\d{2})$")
# Also accepts '/' separators; only used for virtual-key extraction
RE_JOURNAL_ANYSEP = re.compile(r"^(?:journals/)?(\d{4})[-_/]?(\d{2})[-_/]?(\d{2})$")

RE_CONTIGUOUS = re.compile(r"\b(\d{4})(\d{2})(\d{2})\b")
RE_SEPARATED = re.compile(r"\b(\d{4})[-_/.\s](\d{1,2})[-_/.\s](\d{1,2})\b")
RE_MONTH_FIRST = re.compile(
    r"\b([A-Za-z]{3,9})\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})\b"
)
RE_DAY_FIRST = re.compile(
    r"\b(\d{1,2})(?:st|nd|rd|th)?\s+([A-Za-z]{3,9})\.?,?\s+(\d{4})\b"
)

MONTHS = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

_EXT_RE = re.compile(r"\.(md|org)$", re.IGNORECASE)
_PCT_SLASH_RE = re.compile(r"%2F", re.IGNORECASE)


def _decode_percent_slash(s: str) -> str:
    return _PCT_SLASH_RE.sub("/", s)


def _strip_ext(s: str) -> str:
    return _EXT_RE.sub("", s)


def _strip_journals_prefix(s: str) -> str:
    return s[len("journals/"):] if s.startswith("journals/") else s


def to_date_strict(y: int, m: int, d: int) -> Optional[date]:
    """Build a date, returning None for out-of-range components."""
    try:
        return date(y, m, d)
    except ValueError:
        return None


def ymd_underscore(y: int, m: int, d: int) -> str:
    """Format as a journal page name (YYYY_MM_DD)."""
    return f"{y:04d}_{m:02d}_{d:02d}"


def is_journal_name(raw: str) -> bool:
    """Check whether a page name is a journal name (YYYY[-_]MM[-_]DD, optional journals/)."""
    return bool(RE_JOURNAL_FULL.match(_strip_ext(_decode_percent_slash(raw or ""))))


def journal_date_value(name: str) -> int:
    """Return YYYYMMDD as an int for a journal name, 0 otherwise.

    Used as the primary sort key when ordering journal pages.
    """
    normalized = _strip_journals_prefix(_strip_ext(_decode_percent_slash(name or "")))
    m = RE_YMD_CORE.match(normalized)
    if not m:
        return 0
    return int(m.group(1) + m.group(2) + m.group(3))


def format_date_by_pattern(dt: date, pattern: str) -> str:
    """Format a date using yyyy/MM/dd tokens."""
    return (
        pattern.replace("yyyy", f"{dt.year:04d}")
        .replace("MM", f"{dt.month:02d}")
        .replace("dd", f"{dt.day:02d}")
    )


def display_title(name: str, pattern: str = "yyyy/MM/dd") -> str:
    """Human-readable title: journal names are formatted, others percent-decoded."""
    decoded = _decode_percent_slash(name or "")
    m = RE_JOURNAL_FULL.match(_strip_ext(decoded))
    if m:
        y, mo, d = m.groups()
        dt = to_date_strict(int(y), int(mo), int(d))
        if dt:
            return format_date_by_pattern(dt, pattern)
        return f"{y}/{mo}/{d}"
    return decoded


def parse_date_by_pattern(text: str, pattern: str) -> Optional[date]:
    """Extract a strict date from text following a yyyy/MM/dd token pattern."""
    if not pattern or not text:
        return None
    order: list[str] = []

    def token(m: re.Match) -> str:
        order.append(m.group(0))
        return r"(\d{4})" if m.group(0) == "yyyy" else r"(\d{1,2})"

    regex = re.sub(r"yyyy|MM|dd", token, re.escape(pattern))
    m = re.match(r"^\s*" + regex + r"\s*$", text.strip())
    if not m:
        return None
    parts = {"yyyy": 0, "MM": 0, "dd": 0}
    for i, key in enumerate(order):
        parts[key] = int(m.group(i + 1))
    return to_date_strict(parts["yyyy"], parts["MM"], parts["dd"])


def _normalize_date_text(s: str) -> str:
    return (
        re.sub(r"\s+", " ", _decode_percent_slash(s))
        .replace("／", "/")
        .translate(str.maketrans({c: "-" for c in "－ー―–—‐"}))
        .replace("年", "/")
        .replace("月", "/")
        .replace("日", "")
    )


def _month_number(word: str) -> int:
    return MONTHS.get(word.lower(), 0)


def _first_date(text: str, *, anchored: bool) -> Optional[date]:
    """Try every supported date shape against text.

    With anchored=True the whole text must be the date phrase.
    """
    s = _normalize_date_text(text).strip()

    def matches(regex: re.Pattern) -> Optional[re.Match]:
        if anchored:
            return regex.fullmatch(s)
        return regex.search(s)

    m = matches(RE_CONTIGUOUS)
    if m:
        dt = to_date_strict(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        if dt:
            return dt
    m = matches(RE_SEPARATED)
    if m:
        dt = to_date_strict(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        if dt:
            return dt
    m = matches(RE_MONTH_FIRST)
    if m and _month_number(m.group(1)):
        dt = to_date_strict(int(m.group(3)), _month_number(m.group(1)), int(m.group(2)))
        if dt:
            return dt
    m = matches(RE_DAY_FIRST)
    if m and _month_number(m.group(2)):
        dt = to_date_strict(int(m.group(3)), _month_number(m.group(2)), int(m.group(1)))
        if dt:
            return dt
    return None


def infer_journal_page_name(text: str, pattern: Optional[str] = None) -> Optional[str]:
    """Find a date inside text and return its journal page name (YYYY_MM_DD).

    The user's date pattern is tried first, then flexible detection of
    contiguous digits, separator-delimited dates, CJK year/month/day markers
    and English month-name phrases anywhere in the text.
    """
    if not text:
        return None
    if pattern:
        dt = parse_date_by_pattern(text, pattern)
        if dt:
            return ymd_underscore(dt.year, dt.month, dt.day)
    dt = _first_date(text, anchored=False)
    return ymd_underscore(dt.year, dt.month, dt.day) if dt else None


def journal_virtual_key(text: str) -> Optional[str]:
    """Return YYYYMMDD if the whole text names a single calendar date.

    Accepts a journals/ prefix, .md/.org extensions, '-', '_' or '/'
    separators, contiguous digits and natural-language date phrases.
    """
    if not text:
        return None
    no_ext = _strip_ext(_decode_percent_slash(text.strip()))
    m = RE_JOURNAL_ANYSEP.match(no_ext)
    if m:
        if to_date_strict(int(m.group(1)), int(m.group(2)), int(m.group(3))):
            return m.group(1) + m.group(2) + m.group(3)
        return None
    dt = _first_date(_strip_journals_prefix(no_ext), anchored=True)
    return f"{dt.year:04d}{dt.month:02d}{dt.day:02d}" if dt else None


def journal_forms(virtual_key: str) -> list[str]:
    """Expand a YYYYMMDD key into the file-name forms a journal may use."""
    y, m, d = virtual_key[0:4], virtual_key[4:6], virtual_key[6:8]
    underscored = f"{y}_{m}_{d}"
    return [
        f"journals/{underscored}",
        underscored,
        f"{y}/{m}/{d}",
        f"journals/{y}/{m}/{d}",
    ]
