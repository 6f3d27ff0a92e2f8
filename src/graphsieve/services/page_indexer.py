"""Index builder: keeps the page metadata store in sync with a graph.

A rebuild captures a generation token when it starts. Every checkpoint
(after each directory listing, before each write, after each batch)
compares that token with the current generation; once a newer rebuild has
started, or stop() was called, the older rebuild returns without writing
anything else. No locks are involved.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import structlog

from graphsieve.logseq.journal import is_journal_name
from graphsieve.logseq.names import has_outline_extension, page_name_from_file
from graphsieve.models.page_record import PageRecord
from graphsieve.services.graph_session import GraphSession
from graphsieve.services.outliner_api import OutlinerSource, PageInfo
from graphsieve.services.page_locator import locate_page_file
from graphsieve.services.page_store import PageStore
from graphsieve.services.summary import (
    SUMMARY_MAX_CHARS,
    first_image,
    first_image_in_tree,
    summarize_text,
    summarize_tree,
)

logger = structlog.get_logger()

DEFAULT_BATCH_SIZE = 100
DEFAULT_BATCH_SLEEP = 0.3


class GenerationCounter:
    """Monotonic generation counter that mints cancellation tokens."""

    def __init__(self) -> None:
        self._current = 0
        self._stopped_through = 0

    @property
    def current(self) -> int:
        return self._current

    def next(self) -> "CancellationToken":
        """Start a new generation; every older token becomes cancelled."""
        self._current += 1
        return CancellationToken(self, self._current)

    def stop(self) -> None:
        """Cancel every token minted so far without starting a new generation."""
        self._stopped_through = self._current

    def is_current(self, generation: int) -> bool:
        return generation == self._current and generation > self._stopped_through


class CancellationToken:
    """Token captured by a rebuild; cancelled once superseded or stopped."""

    def __init__(self, counter: GenerationCounter, generation: int):
        self._counter = counter
        self.generation = generation

    @property
    def cancelled(self) -> bool:
        return not self._counter.is_current(self.generation)

    def __repr__(self) -> str:
        return f"CancellationToken(generation={self.generation}, cancelled={self.cancelled})"


class RebuildSuperseded(Exception):
    """Raised at a checkpoint when the rebuild's token is cancelled."""


@dataclass
class RebuildResult:
    """Outcome of one rebuild."""

    written: int = 0
    skipped: int = 0
    cancelled: bool = False
    duration: float = 0.0


class IndexBuilder:
    """Builds PageRecords for one graph.

    Example:
        >>> builder = IndexBuilder(PageStore(":memory:"), "fs_notes")
        >>> result = await builder.rebuild(session)
        >>> builder.in_progress
        False
    """

    def __init__(
        self,
        store: PageStore,
        graph_id: str,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_sleep: float = DEFAULT_BATCH_SLEEP,
        summary_max_chars: int = SUMMARY_MAX_CHARS,
        generations: Optional[GenerationCounter] = None,
    ):
        """
        Initialize the builder.

        Args:
            store: Metadata store to write to
            graph_id: Graph whose records this builder owns
            batch_size: Pages per batch when indexing from an outliner source
            batch_sleep: Pause between batches (seconds)
            summary_max_chars: Character budget for each page summary
            generations: Shared counter (one is created if omitted)
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive: {batch_size}")
        self.store = store
        self.graph_id = graph_id
        self.batch_size = batch_size
        self.batch_sleep = batch_sleep
        self.summary_max_chars = summary_max_chars
        self.generations = generations or GenerationCounter()
        self._running_generation: Optional[int] = None

    @property
    def in_progress(self) -> bool:
        """True while a rebuild is running."""
        return self._running_generation is not None

    def stop(self) -> None:
        """Make the running rebuild abandon its work at the next checkpoint."""
        self.generations.stop()
        logger.info("rebuild_stop_requested", graph_id=self.graph_id)

    @staticmethod
    def _checkpoint(token: CancellationToken) -> None:
        if token.cancelled:
            raise RebuildSuperseded()

    async def rebuild(
        self,
        source: Any,
        progress_callback: Optional[Callable[[int, int], None]] = None,
        session: Optional[GraphSession] = None,
    ) -> RebuildResult:
        """
        Rebuild the records of this builder's graph.

        Starting a rebuild supersedes any rebuild already running on the same
        generation counter. A superseded rebuild returns quietly with
        cancelled=True.

        Args:
            source: GraphSession (directory crawl) or OutlinerSource
            progress_callback: Optional callback(current, total)
            session: For outliner sources, a session used to cross-check
                     file modification times

        Returns:
            RebuildResult with counts of written and skipped pages
        """
        token = self.generations.next()
        self._running_generation = token.generation
        result = RebuildResult()
        started = time.monotonic()
        logger.info("rebuild_started", graph_id=self.graph_id, generation=token.generation)
        try:
            if isinstance(source, GraphSession):
                await self._rebuild_from_directories(source, token, result, progress_callback)
            else:
                await self._rebuild_from_outliner(source, token, result, progress_callback, session)
        except RebuildSuperseded:
            result.cancelled = True
            logger.debug("rebuild_superseded", graph_id=self.graph_id, generation=token.generation)
        finally:
            result.duration = time.monotonic() - started
            if self._running_generation == token.generation:
                self._running_generation = None
        if not result.cancelled:
            logger.info(
                "rebuild_completed",
                graph_id=self.graph_id,
                written=result.written,
                skipped=result.skipped,
                duration_seconds=round(result.duration, 3),
            )
        return result

    async def _rebuild_from_directories(
        self,
        session: GraphSession,
        token: CancellationToken,
        result: RebuildResult,
        progress_callback: Optional[Callable[[int, int], None]],
    ) -> None:
        access = session.access
        handles = session.handles(self.graph_id)

        self._checkpoint(token)
        self.store.delete_graph(self.graph_id)

        # (directory, is_journal_dir)
        dirs: list[tuple[Any, bool]] = [(handles.pages_dir, False)]
        nested = await access.get_subdirectory(handles.pages_dir, "journals")
        if nested is not None:
            dirs.append((nested, True))
        if handles.journals_dir is not None and handles.journals_dir != nested:
            dirs.append((handles.journals_dir, True))

        work: list[tuple[Any, str, bool]] = []
        for directory, is_journal_dir in dirs:
            try:
                entries = await access.list_entries(directory)
            except OSError as e:
                logger.warning("directory_list_failed", directory=str(directory), error=str(e))
                entries = []
            self._checkpoint(token)
            work.extend(
                (directory, entry.name, is_journal_dir)
                for entry in entries
                if entry.is_file and has_outline_extension(entry.name)
            )

        total = len(work)
        seen: set[str] = set()
        for index, (directory, file_name, is_journal_dir) in enumerate(work, 1):
            name = page_name_from_file(file_name)
            if not name or name in seen:
                result.skipped += 1
                continue
            self._checkpoint(token)
            try:
                data = await access.get_file(directory, file_name)
            except OSError as e:
                logger.warning("page_read_failed", directory=str(directory), name=file_name, error=str(e))
                result.skipped += 1
                continue
            summary = summarize_text(data.text, self.summary_max_chars) or [""]
            record = PageRecord(
                graph_id=self.graph_id,
                name=name,
                last_modified=data.last_modified,
                summary=summary,
                image=first_image(data.text),
                journal=is_journal_dir or is_journal_name(name),
            )
            self._checkpoint(token)
            self.store.upsert(record)
            seen.add(name)
            result.written += 1
            if progress_callback:
                progress_callback(index, total)

    async def _rebuild_from_outliner(
        self,
        source: OutlinerSource,
        token: CancellationToken,
        result: RebuildResult,
        progress_callback: Optional[Callable[[int, int], None]],
        session: Optional[GraphSession],
    ) -> None:
        pages = await source.list_pages_basic()
        self._checkpoint(token)

        unique: dict[str, PageInfo] = {}
        for info in pages:
            unique.setdefault(info.name, info)
        todo = list(unique.values())
        total = len(todo)
        logger.info("outliner_pages_listed", graph_id=self.graph_id, total=total, duplicates=len(pages) - total)

        for start in range(0, total, self.batch_size):
            for info in todo[start:start + self.batch_size]:
                await self._index_outliner_page(info, source, token, result, session)
            if progress_callback:
                progress_callback(min(start + self.batch_size, total), total)
            self._checkpoint(token)
            if start + self.batch_size < total:
                await asyncio.sleep(self.batch_sleep)
                self._checkpoint(token)

    async def _index_outliner_page(
        self,
        info: PageInfo,
        source: OutlinerSource,
        token: CancellationToken,
        result: RebuildResult,
        session: Optional[GraphSession],
    ) -> None:
        existing = self.store.get(self.graph_id, info.name)
        last_modified = info.updated_at
        if session is not None:
            resolved = await locate_page_file(info.name, session, graph_id=self.graph_id, scan_fallback=False)
            self._checkpoint(token)
            if resolved is not None:
                last_modified = resolved.last_modified
                if existing is not None and last_modified <= existing.last_modified:
                    result.skipped += 1
                    return

        nodes = await source.get_page_tree(info.uuid or info.name)
        if nodes is None and info.uuid:
            nodes = await source.get_page_tree(info.name)
        self._checkpoint(token)
        summary = summarize_tree(nodes or [], self.summary_max_chars)
        record = PageRecord(
            graph_id=self.graph_id,
            name=info.name,
            uuid=info.uuid,
            last_modified=last_modified,
            summary=summary,
            image=first_image_in_tree(nodes or []),
            archived=existing.archived if existing else False,
            favorite=existing.favorite if existing else False,
            journal=info.journal or is_journal_name(info.name),
        )
        if not record.has_nontrivial_summary():
            result.skipped += 1
            return
        self.store.upsert(record)
        result.written += 1

    async def ensure_page(self, name: str, session: GraphSession) -> Optional[PageRecord]:
        """Index a page on demand when it is opened but not yet in the store.

        The record is keyed by the page name of the resolved file, so opening
        a journal as "2025-01-16" finds the record the rebuild stored as
        "2025_01_16".

        Returns:
            The stored record (existing or new), or None if the page cannot
            be resolved
        """
        existing = self.store.get(self.graph_id, name)
        if existing is not None:
            return existing
        resolved = await locate_page_file(name, session, graph_id=self.graph_id)
        if resolved is None:
            logger.debug("ensure_page_unresolved", name=name)
            return None
        key = page_name_from_file(resolved.picked_name) or name
        existing = self.store.get(self.graph_id, key)
        if existing is not None:
            return existing
        record = PageRecord(
            graph_id=self.graph_id,
            name=key,
            last_modified=resolved.last_modified,
            summary=summarize_text(resolved.text, self.summary_max_chars) or [""],
            image=first_image(resolved.text),
            journal=is_journal_name(key) or is_journal_name(name),
        )
        self.store.upsert(record)
        logger.info("page_indexed_on_demand", graph_id=self.graph_id, name=key, requested=name)
        return record
