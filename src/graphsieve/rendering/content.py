"""Linked content view: lines broken into inline segments.

Where the text views produce strings, ``render_content`` produces structured
lines a front end can display directly: page links that open another page,
external links, images resolved through the asset collaborator, and
placeholders for block references and embeds.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Union

import structlog

from graphsieve.logseq.journal import infer_journal_page_name, journal_virtual_key, parse_date_by_pattern
from graphsieve.logseq.parser import ContentNode
from graphsieve.models.filter_options import FilterOptions
from graphsieve.rendering.engine import walk
from graphsieve.services.assets import AssetResolver

logger = structlog.get_logger()


@dataclass(frozen=True)
class TextSegment:
    text: str


@dataclass(frozen=True)
class PageLink:
    """Internal link; target is the canonical page name to open."""

    target: str
    label: str


@dataclass(frozen=True)
class ExternalLink:
    url: str
    label: str


@dataclass(frozen=True)
class AssetLink:
    """Download-style link to a non-image asset (e.g. a PDF)."""

    uri: str
    label: str


@dataclass(frozen=True)
class ImageSegment:
    uri: str
    alt: str


@dataclass(frozen=True)
class RefPlaceholder:
    """Block reference ("ref") or embed ("embed") left for the host to expand."""

    kind: str
    ref_id: str


Segment = Union[TextSegment, PageLink, ExternalLink, AssetLink, ImageSegment, RefPlaceholder]


@dataclass(frozen=True)
class RenderedLine:
    depth: int
    segments: tuple[Segment, ...]

    @property
    def text(self) -> str:
        """Display text of the line (labels for links, alt text for images)."""
        parts = []
        for seg in self.segments:
            if isinstance(seg, TextSegment):
                parts.append(seg.text)
            elif isinstance(seg, (PageLink, ExternalLink, AssetLink)):
                parts.append(seg.label)
            elif isinstance(seg, ImageSegment):
                parts.append(seg.alt)
            else:
                parts.append(f"(({seg.ref_id}))")
        return "".join(parts)


_UUID = r"[0-9a-fA-F-]{36}"

_INLINE_RE = re.compile(
    r"(?P<image>!\[(?P<image_alt>[^\]]*)\]\((?P<image_src>[^)\s]+)(?:\s+\"[^\"]*\")?\))"
    r"|(?P<org>\[\[(?P<org_target>[^\]]+)\]\[(?P<org_label>[^\]]*)\]\])"
    r"|(?P<page>\[\[(?P<page_target>[^\]]+)\]\])"
    r"|(?P<md>\[(?P<md_label>[^\]]+)\]\((?P<md_url>[^)\s]+)\))"
    rf"|(?P<embed>\{{\{{\s*embed\s*(?:\(\((?P<embed_uuid>{_UUID})\)\)|\[\[(?P<embed_page>[^\]]+)\]\])\s*\}}\}})"
    rf"|(?P<ref>\(\((?P<ref_uuid>{_UUID})\)\))"
    r"|(?P<tag>(?:(?<=\s)|^)#(?:\[\[(?P<tag_long>[^\]]+)\]\]|(?P<tag_short>[^\s#.,;:!?()\[\]{}\"']+)))"
    r"|(?P<url>\bhttps?://[^\s<>()\[\]]+)",
    re.IGNORECASE,
)

_URL_LIKE_RE = re.compile(r"^[a-z][a-z0-9+.-]*://|^mailto:", re.IGNORECASE)
_ASSET_PREFIX_RE = re.compile(r"^(?:\.\./)+assets/|^assets/")
_PDF_RE = re.compile(r"\.pdf$", re.IGNORECASE)


def canonical_page_target(target: str, journal_pattern: Optional[str] = None) -> str:
    """Map a link target to the page it should open.

    A target that is itself a date (in the configured pattern or any of the
    recognized date shapes) maps to its journal page name.
    """
    target = target.strip()
    is_date = bool(journal_virtual_key(target))
    if not is_date and journal_pattern:
        is_date = parse_date_by_pattern(target, journal_pattern) is not None
    if is_date:
        return infer_journal_page_name(target, journal_pattern) or target
    return target


class _LineRenderer:
    """Splits one line into segments under a fixed set of options."""

    def __init__(self, options: FilterOptions, assets: Optional[AssetResolver], journal_pattern: Optional[str]):
        self.options = options
        self.assets = assets
        self.journal_pattern = journal_pattern

    def render(self, text: str) -> list[Segment]:
        segments: list[Segment] = []
        pos = 0
        for m in _INLINE_RE.finditer(text):
            if m.start() > pos:
                segments.append(TextSegment(text[pos:m.start()]))
            segments.extend(self._segment(m))
            pos = m.end()
        if pos < len(text):
            segments.append(TextSegment(text[pos:]))
        return _merge_text(segments)

    def _segment(self, m: re.Match) -> list[Segment]:
        opts = self.options
        if m.group("image"):
            return [self._image(m.group("image_src"), m.group("image_alt"))]
        if m.group("org"):
            return [self._link(m.group("org_target"), m.group("org_label") or m.group("org_target"))]
        if m.group("page"):
            return [self._link(m.group("page_target"), m.group("page_target"))]
        if m.group("md"):
            return [self._link(m.group("md_url"), m.group("md_label"))]
        if m.group("embed"):
            if opts.hide_embeds or opts.hide_references or opts.folder_mode:
                return []
            return [RefPlaceholder("embed", m.group("embed_uuid") or m.group("embed_page"))]
        if m.group("ref"):
            if opts.hide_references or opts.folder_mode:
                return []
            return [RefPlaceholder("ref", m.group("ref_uuid"))]
        if m.group("tag"):
            tag = m.group("tag_long") or m.group("tag_short")
            if opts.hide_page_refs:
                return [TextSegment(m.group("tag"))]
            return [PageLink(canonical_page_target(tag, self.journal_pattern), f"#{tag}")]
        url = m.group("url")
        return [ExternalLink(url, url)]

    def _link(self, target: str, label: str) -> Segment:
        if _ASSET_PREFIX_RE.match(target):
            return self._image(target, label)
        if _URL_LIKE_RE.match(target):
            return ExternalLink(target, label)
        if self.options.hide_page_refs:
            return TextSegment(label)
        return PageLink(canonical_page_target(target, self.journal_pattern), label)

    def _image(self, src: str, alt: str) -> Segment:
        if _URL_LIKE_RE.match(src):
            return ImageSegment(src, alt)
        if not _ASSET_PREFIX_RE.match(src):
            return TextSegment(alt or src)
        relative = _ASSET_PREFIX_RE.sub("", src)
        uri = self.assets.resolve(relative) if self.assets is not None else None
        if uri is None:
            logger.debug("asset_unresolved", path=relative)
            return TextSegment(alt or relative)
        if _PDF_RE.search(relative):
            return AssetLink(uri, alt or relative.rsplit("/", 1)[-1])
        return ImageSegment(uri, alt)


def _merge_text(segments: list[Segment]) -> list[Segment]:
    merged: list[Segment] = []
    for seg in segments:
        if isinstance(seg, TextSegment) and merged and isinstance(merged[-1], TextSegment):
            merged[-1] = TextSegment(merged[-1].text + seg.text)
        else:
            merged.append(seg)
    return merged


def render_content(
    nodes: Iterable[ContentNode],
    options: Any = None,
    assets: Optional[AssetResolver] = None,
    journal_pattern: Optional[str] = None,
) -> list[RenderedLine]:
    """Render a block tree as lines of inline segments.

    Args:
        nodes: Parsed block tree
        options: FilterOptions, a loose mapping, or None for defaults
        assets: Asset collaborator with resolve(relative_path) -> uri | None
        journal_pattern: User date pattern used to recognize journal link targets

    Returns:
        One RenderedLine per surviving line; lines that reduce to nothing
        (e.g. only a hidden embed) are omitted
    """
    opts = FilterOptions.coerce(options)
    renderer = _LineRenderer(opts, assets, journal_pattern)
    rendered: list[RenderedLine] = []
    for line in walk(nodes, opts):
        if line.is_reference:
            rendered.append(RenderedLine(line.depth, (RefPlaceholder(line.kind, line.ref_id or ""),)))
            continue
        segments = renderer.render(line.text)
        if any(not isinstance(seg, TextSegment) or seg.text.strip() for seg in segments):
            rendered.append(RenderedLine(line.depth, tuple(segments)))
    return rendered


def activate(segment: Segment, on_open_page: Callable[[str], object]) -> Optional[str]:
    """Follow a rendered link.

    Internal page links invoke the navigation callback with the canonical
    page name and return None; external and asset links are returned as a
    URL for the host to open. Other segments are inert.
    """
    if isinstance(segment, PageLink):
        on_open_page(segment.target)
        return None
    if isinstance(segment, ExternalLink):
        return segment.url
    if isinstance(segment, AssetLink):
        return segment.uri
    return None
