"""Locate the file backing a page name and load it.

Resolution never raises for a missing or unreadable file: both come back as
None (logged), and callers decide whether that is an error or an empty state.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional

import structlog

from graphsieve.logseq.names import (
    OUTLINE_EXTENSIONS,
    build_candidates,
    decode_file_name,
    has_outline_extension,
    strip_outline_extension,
)
from graphsieve.logseq.parser import parse
from graphsieve.models.preview import PreviewContent, PreviewState
from graphsieve.services.directory import DirectoryAccess

logger = structlog.get_logger()


@dataclass(frozen=True)
class ResolvedFile:
    """A page name resolved to a concrete file.

    Attributes:
        directory: Handle of the directory the file was found in
        picked_name: File name that matched (relative to directory, with extension)
        text: File contents
        last_modified: Modification time (epoch seconds)
    """

    directory: Any
    picked_name: str
    text: str
    last_modified: float


async def _read(access: DirectoryAccess, directory: Any, name: str) -> Optional[ResolvedFile]:
    try:
        data = await access.get_file(directory, name)
    except FileNotFoundError:
        return None
    except OSError as e:
        # Exists but unreadable: same as not found for the caller
        logger.warning("page_file_unreadable", directory=str(directory), name=name, error=str(e))
        return None
    return ResolvedFile(directory, name, data.text, data.last_modified)


async def resolve_file_from_dirs(
    access: DirectoryAccess,
    dirs: Iterable[Any],
    candidates: list[str],
    scan_fallback: bool = False,
) -> Optional[ResolvedFile]:
    """Probe directories for the first candidate that exists.

    Each directory is tried in order; within a directory every candidate is
    tried as base + '.md' then base + '.org'. With scan_fallback, a second
    pass enumerates each directory and compares every outline file's base
    name (raw and decoded) against the candidates. That pass is O(entries).

    Args:
        access: Directory collaborator
        dirs: Directory handles in priority order (None entries are skipped)
        candidates: Base names from build_candidates()
        scan_fallback: Enable the enumeration pass

    Returns:
        ResolvedFile for the first hit, or None
    """
    dirs = [d for d in dirs if d is not None]
    if not candidates:
        return None

    for directory in dirs:
        for base in candidates:
            for ext in OUTLINE_EXTENSIONS:
                hit = await _read(access, directory, base + ext)
                if hit is not None:
                    logger.debug("page_file_resolved", name=hit.picked_name, directory=str(directory))
                    return hit

    if not scan_fallback:
        return None

    wanted = set(candidates)
    for directory in dirs:
        try:
            entries = await access.list_entries(directory)
        except OSError as e:
            logger.warning("directory_list_failed", directory=str(directory), error=str(e))
            continue
        for entry in entries:
            if not entry.is_file or not has_outline_extension(entry.name):
                continue
            base = strip_outline_extension(entry.name)
            if base in wanted or decode_file_name(base) in wanted:
                hit = await _read(access, directory, entry.name)
                if hit is not None:
                    logger.debug("page_file_resolved_by_scan", name=entry.name, directory=str(directory))
                    return hit
    return None


async def locate_page_file(
    name: str,
    session,
    graph_id: Optional[str] = None,
    prefer_journal: bool = True,
    scan_fallback: bool = True,
    extra_dirs: Iterable[Any] = (),
) -> Optional[ResolvedFile]:
    """Resolve a page name within a session's graph.

    Args:
        name: Page name as written in the index or a link
        session: GraphSession owning the directory handles
        graph_id: Graph to search (default: the session's current graph)
        prefer_journal: Try calendar-date forms first
        scan_fallback: Fall back to enumerating directories
        extra_dirs: Additional directories probed last

    Returns:
        ResolvedFile, or None when no candidate exists
    """
    candidates = build_candidates(name, prefer_journal=prefer_journal)
    dirs = await session.search_dirs(graph_id, extra_dirs)
    resolved = await resolve_file_from_dirs(session.access, dirs, candidates, scan_fallback=scan_fallback)
    if resolved is None:
        logger.debug("page_not_found", name=name, candidates=len(candidates))
    return resolved


async def load_page(name: str, session, graph_id: Optional[str] = None) -> PreviewContent:
    """Resolve and parse a page.

    Returns:
        PreviewContent in state NOT_FOUND, EMPTY or LOADED
    """
    resolved = await locate_page_file(name, session, graph_id=graph_id)
    if resolved is None:
        return PreviewContent(name=name, state=PreviewState.NOT_FOUND)
    return PreviewContent.from_nodes(name, parse(resolved.text), resolved.picked_name)
