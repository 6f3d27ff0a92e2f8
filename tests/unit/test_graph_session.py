"""Unit tests for GraphSession and local directory access."""

from pathlib import Path

import pytest

from graphsieve.services.directory import LocalDirectoryAccess
from graphsieve.services.exceptions import GraphNotFoundError
from graphsieve.services.graph_session import GraphSession


class TestGraphSession:
    """Tests for GraphSession."""

    def test_for_local_graph(self, graph_dir: Path):
        """Test handle discovery for a standard graph layout."""
        session = GraphSession.for_local_graph(graph_dir, graph_id="fs_notes")
        handles = session.handles()

        assert handles.graph_id == "fs_notes"
        assert handles.pages_dir == graph_dir / "pages"
        assert handles.journals_dir == graph_dir / "journals"
        assert handles.assets_dir == graph_dir / "assets"

    def test_default_graph_id(self, graph_dir: Path):
        """Test that the graph id defaults to the directory name."""
        session = GraphSession.for_local_graph(graph_dir)
        assert session.graph_ids == ["fs_notes"]

    def test_flat_graph(self, tmp_path: Path):
        """Test that a graph without pages/ uses its root as pages root."""
        (tmp_path / "Ideas.md").write_text("- idea\n")
        handles = GraphSession.for_local_graph(tmp_path, graph_id="flat").handles()

        assert handles.pages_dir == tmp_path
        assert handles.journals_dir is None
        assert handles.assets_dir is None

    def test_missing_graph(self, tmp_path: Path):
        """Test that a missing directory raises GraphNotFoundError."""
        with pytest.raises(GraphNotFoundError) as exc_info:
            GraphSession.for_local_graph(tmp_path / "missing")

        assert "missing" in str(exc_info.value)

    def test_unknown_graph(self, session):
        """Test that asking for an unregistered graph raises KeyError."""
        with pytest.raises(KeyError):
            session.handles("nope")

    def test_register_and_forget(self, session, tmp_path):
        """Test switching between registered graphs."""
        session.register("second", tmp_path)
        assert session.handles().graph_id == "second"

        session.forget("second")
        assert session.current_graph_id is None
        assert session.handles("fs_test").graph_id == "fs_test"

    @pytest.mark.asyncio
    async def test_search_dirs_order(self, session, graph_dir, tmp_path):
        """Test directory priority: pages, nested journals, sibling journals, extra."""
        (graph_dir / "pages" / "journals").mkdir()
        extra = tmp_path / "extra"

        dirs = await session.search_dirs(extra_dirs=[extra, graph_dir / "pages"])

        assert dirs == [
            graph_dir / "pages",
            graph_dir / "pages" / "journals",
            graph_dir / "journals",
            extra,
        ]


class TestLocalDirectoryAccess:
    """Tests for LocalDirectoryAccess."""

    @pytest.mark.asyncio
    async def test_list_entries(self, graph_dir):
        """Test sorted listing with file/directory kinds."""
        entries = await LocalDirectoryAccess().list_entries(graph_dir)

        assert [(e.name, e.is_file) for e in entries] == [
            ("assets", False),
            ("journals", False),
            ("pages", False),
        ]

    @pytest.mark.asyncio
    async def test_get_file(self, graph_dir):
        """Test reading a file with its modification time."""
        data = await LocalDirectoryAccess().get_file(graph_dir / "pages", "Ideas.md")

        assert data.text.startswith("- First idea")
        assert data.last_modified > 0

    @pytest.mark.asyncio
    async def test_get_file_rejects_traversal(self, graph_dir):
        """Test that '..' components are refused."""
        with pytest.raises(FileNotFoundError):
            await LocalDirectoryAccess().get_file(graph_dir / "pages", "../journals/2025_01_15.md")

    @pytest.mark.asyncio
    async def test_invalid_utf8_replaced(self, tmp_path):
        """Test that undecodable bytes do not raise."""
        (tmp_path / "bad.md").write_bytes(b"- caf\xe9\n")
        data = await LocalDirectoryAccess().get_file(tmp_path, "bad.md")

        assert data.text.startswith("- caf")

    @pytest.mark.asyncio
    async def test_subdirectory_and_mtime(self, graph_dir):
        """Test subdirectory lookup and modification times."""
        access = LocalDirectoryAccess()

        assert await access.get_subdirectory(graph_dir, "pages") == graph_dir / "pages"
        assert await access.get_subdirectory(graph_dir, "nothing") is None
        assert await access.last_modified(graph_dir / "pages", "Ideas.md") > 0
        assert await access.last_modified(graph_dir / "pages", "Nope.md") is None
