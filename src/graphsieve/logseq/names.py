"""Page name <-> file name conversion and lookup candidates.

Logseq stores a page named ``Projects/Acme`` as ``Projects___Acme.md`` and
percent-encodes characters that are unsafe in file names. Links found in
page text, however, may carry any historical variant of that encoding, so
``build_candidates`` expands a single name into every base name worth
probing on disk.
"""

import re
from urllib.parse import unquote

from graphsieve.logseq.journal import journal_forms, journal_virtual_key

MAX_CANDIDATES = 48

OUTLINE_EXTENSIONS = (".md", ".org")

_DEVICE_NAMES = "CON|PRN|AUX|NUL|COM1|COM2|COM3|COM4|COM5|COM6|COM7|COM8|COM9|LPT1|LPT2|LPT3|LPT4|LPT5|LPT6|LPT7|LPT8|LPT9"

# Applied in order; decode applies its table in order too, mirroring encode
_ENCODE_STEPS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"/$"), ""),
    (re.compile(rf"^({_DEVICE_NAMES})$"), r"\1___"),
    (re.compile(r"\.$"), ".___"),
    (re.compile(r"_/_"), "%5F___%5F"),
    (re.compile(r"<"), "%3C"),
    (re.compile(r">"), "%3E"),
    (re.compile(r":"), "%3A"),
    (re.compile(r'"'), "%22"),
    (re.compile(r"/"), "___"),
    (re.compile(r"\\"), "%5C"),
    (re.compile(r"\|"), "%7C"),
    (re.compile(r"\?"), "%3F"),
    (re.compile(r"\*"), "%2A"),
    (re.compile(r"#"), "%23"),
    (re.compile(r"^\."), "%2E"),
]

_DECODE_STEPS: list[tuple[re.Pattern, str]] = [
    (re.compile(rf"^({_DEVICE_NAMES})___$"), r"\1"),
    (re.compile(r"\.___$"), "."),
    (re.compile(r"%5F___%5F"), "_/_"),
    (re.compile(r"%3C"), "<"),
    (re.compile(r"%3E"), ">"),
    (re.compile(r"%3A"), ":"),
    (re.compile(r"%22"), '"'),
    (re.compile(r"___"), "/"),
    (re.compile(r"%5C"), r"\\"),
    (re.compile(r"%7C"), "|"),
    (re.compile(r"%3F"), "?"),
    (re.compile(r"%2A"), "*"),
    (re.compile(r"%23"), "#"),
    (re.compile(r"%2E"), "."),
]

_EXT_RE = re.compile(r"\.(md|org)$", re.IGNORECASE)
_SUFFIX_RE = re.compile(r"[?#].*$")
_JOURNALS_PREFIX_RE = re.compile(r"^journals/", re.IGNORECASE)
_PCT_SLASH_RE = re.compile(r"%2F", re.IGNORECASE)


def encode_file_name(name: str) -> str:
    """Encode a page name into its file base name.

    Examples:
        >>> encode_file_name("Projects/Acme")
        'Projects___Acme'
        >>> encode_file_name("CON")
        'CON___'
    """
    if not name:
        return ""
    for pattern, repl in _ENCODE_STEPS:
        name = pattern.sub(repl, name)
    return name


def decode_file_name(base: str) -> str:
    """Decode a file base name (no extension) back into a page name."""
    if not base:
        return ""
    for pattern, repl in _DECODE_STEPS:
        base = pattern.sub(repl, base)
    return base


def has_outline_extension(file_name: str) -> bool:
    """True for .md/.org files (case-insensitive)."""
    return bool(_EXT_RE.search(file_name or ""))


def strip_outline_extension(file_name: str) -> str:
    """Drop a trailing .md/.org extension."""
    return _EXT_RE.sub("", file_name or "")


def page_name_from_file(file_name: str) -> str:
    """Canonical page name for a file name found on disk.

    A leading journals/ directory (from a probed candidate) is dropped.
    """
    return decode_file_name(strip_outline_extension(_JOURNALS_PREFIX_RE.sub("", file_name or "")))


def _toggle_journals(name: str) -> str:
    if _JOURNALS_PREFIX_RE.match(name):
        return _JOURNALS_PREFIX_RE.sub("", name)
    return "journals/" + name


def build_candidates(raw_name: str, prefer_journal: bool = False) -> list[str]:
    """Expand a page reference into ordered file base names to probe.

    Order of priority: the literal name, the name without extension and
    query/anchor suffix, its percent-decoded forms, slash <-> triple
    underscore variants, journals/ prefix toggles, calendar-date forms and
    finally the file-name-encoded variant of everything collected so far.
    When prefer_journal is set, calendar-date forms move to the front.

    Args:
        raw_name: Page name as written in a link or index record
        prefer_journal: Put journal date forms ahead of generic candidates

    Returns:
        Deduplicated candidates, at most MAX_CANDIDATES long
    """
    out: list[str] = []

    def add(s: str | None) -> None:
        if s is None:
            return
        s = s.strip()
        if s:
            out.append(s)

    literal = (raw_name or "").strip()
    if not literal:
        return []
    add(literal)

    n0 = _SUFFIX_RE.sub("", _EXT_RE.sub("", literal))
    # Extension may sit before the suffix (e.g. "page.md#anchor")
    n0 = _EXT_RE.sub("", n0)
    add(n0)

    decoded = unquote(n0)
    if decoded != n0:
        add(decoded)
    n1 = _PCT_SLASH_RE.sub("/", n0)
    if n1 != n0:
        add(n1)

    for base in (n0, n1, decoded):
        add(base.replace("/", "___"))
    for base in (n0, decoded):
        if "___" in base:
            add(base.replace("___", "/"))

    for base in (n0, n1):
        add(_toggle_journals(base))
    add("journals/" + _JOURNALS_PREFIX_RE.sub("", n0).replace("/", "___"))

    date_forms: list[str] = []
    for base in (n0, decoded):
        key = journal_virtual_key(base)
        if key:
            date_forms.extend(journal_forms(key))

    if prefer_journal and date_forms:
        out = date_forms + out
    else:
        out.extend(date_forms)

    for candidate in list(out):
        add(encode_file_name(candidate))

    return list(dict.fromkeys(out))[:MAX_CANDIDATES]
