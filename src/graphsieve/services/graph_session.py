"""Per-session context holding directory handles for each open graph."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

import structlog

from graphsieve.services.directory import DirectoryAccess, LocalDirectoryAccess
from graphsieve.services.exceptions import GraphNotFoundError

logger = structlog.get_logger()


@dataclass(frozen=True)
class GraphHandles:
    """Directory handles for one graph.

    Attributes:
        graph_id: Index key for the graph
        pages_dir: Pages root (may itself contain a journals/ subdirectory)
        journals_dir: Optional sibling journals root
        assets_dir: Optional assets directory
    """

    graph_id: str
    pages_dir: Any
    journals_dir: Optional[Any] = None
    assets_dir: Optional[Any] = None


class GraphSession:
    """Explicit context passed to the resolver and index builder.

    A session owns a DirectoryAccess and the handles of every graph it has
    opened, keyed by graph id. There is no process-wide registry: two
    sessions never see each other's handles.

    Example:
        >>> session = GraphSession.for_local_graph(Path("~/notes").expanduser())
        >>> dirs = await session.search_dirs()
    """

    def __init__(self, access: DirectoryAccess):
        self.access = access
        self._graphs: dict[str, GraphHandles] = {}
        self.current_graph_id: Optional[str] = None

    @classmethod
    def for_local_graph(
        cls,
        graph_path: Path,
        graph_id: Optional[str] = None,
        journals_path: Optional[Path] = None,
    ) -> "GraphSession":
        """Open a Logseq graph directory on the local file system.

        Uses <graph>/pages as the pages root when it exists (otherwise the
        graph directory itself), <graph>/journals (or journals_path) as the
        sibling journals root and <graph>/assets for assets.

        Raises:
            GraphNotFoundError: If graph_path is not a directory
        """
        graph_path = Path(graph_path).expanduser()
        if not graph_path.is_dir():
            raise GraphNotFoundError(graph_path)

        pages_dir = graph_path / "pages"
        if not pages_dir.is_dir():
            pages_dir = graph_path

        journals_dir = Path(journals_path).expanduser() if journals_path else graph_path / "journals"
        if not journals_dir.is_dir() or journals_dir == pages_dir / "journals":
            journals_dir = None

        assets_dir = graph_path / "assets"
        session = cls(LocalDirectoryAccess())
        session.register(
            graph_id or f"fs_{graph_path.name}",
            pages_dir,
            journals_dir=journals_dir,
            assets_dir=assets_dir if assets_dir.is_dir() else None,
        )
        return session

    def register(
        self,
        graph_id: str,
        pages_dir: Any,
        journals_dir: Optional[Any] = None,
        assets_dir: Optional[Any] = None,
    ) -> GraphHandles:
        """Register (or replace) the handles for a graph and make it current."""
        handles = GraphHandles(graph_id, pages_dir, journals_dir, assets_dir)
        self._graphs[graph_id] = handles
        self.current_graph_id = graph_id
        logger.info(
            "graph_registered",
            graph_id=graph_id,
            pages_dir=str(pages_dir),
            journals_dir=str(journals_dir) if journals_dir is not None else None,
        )
        return handles

    def forget(self, graph_id: str) -> None:
        """Drop a graph's handles."""
        self._graphs.pop(graph_id, None)
        if self.current_graph_id == graph_id:
            self.current_graph_id = None

    def handles(self, graph_id: Optional[str] = None) -> GraphHandles:
        """Handles for graph_id (default: the current graph).

        Raises:
            KeyError: If the graph is not registered in this session
        """
        key = graph_id or self.current_graph_id
        if key is None or key not in self._graphs:
            raise KeyError(f"Graph not registered in session: {key}")
        return self._graphs[key]

    @property
    def graph_ids(self) -> list[str]:
        return list(self._graphs)

    async def search_dirs(
        self,
        graph_id: Optional[str] = None,
        extra_dirs: Iterable[Any] = (),
    ) -> list[Any]:
        """Directories to probe for a page, in priority order.

        Pages root, then its journals/ subdirectory (if present), then the
        sibling journals root (if configured), then extra_dirs.
        """
        handles = self.handles(graph_id)
        dirs: list[Any] = [handles.pages_dir]
        nested = await self.access.get_subdirectory(handles.pages_dir, "journals")
        if nested is not None:
            dirs.append(nested)
        if handles.journals_dir is not None:
            dirs.append(handles.journals_dir)
        dirs.extend(extra_dirs)
        # Same directory reached two ways is probed once
        unique: list[Any] = []
        for d in dirs:
            if d not in unique:
                unique.append(d)
        return unique
