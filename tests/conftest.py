"""Shared pytest fixtures for graphsieve tests."""

from pathlib import Path

import pytest

from graphsieve.services.graph_session import GraphSession
from graphsieve.services.page_store import PageStore

GRAPH_ID = "fs_test"

# Minimal 1x1 PNG
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
    b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f"
    b"\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)


@pytest.fixture
def graph_dir(tmp_path: Path) -> Path:
    """Create a small Logseq graph: pages/, journals/ and assets/."""
    graph = tmp_path / "notes"
    pages = graph / "pages"
    journals = graph / "journals"
    assets = graph / "assets"
    for directory in (pages, journals, assets):
        directory.mkdir(parents=True)

    (pages / "Ideas.md").write_text("- First idea\n  - Detail\n- Second idea\n")
    (pages / "Projects___Acme.md").write_text(
        "title:: Projects/Acme\n"
        "- Project overview\n"
        "  id:: 6500b0a1-1111-2222-3333-444455556666\n"
        "  - Timeline\n"
        "- :LOGBOOK:\n"
        "  CLOCK: [2025-01-15 Wed 10:00]\n"
        "  :END:\n"
    )
    (pages / "Empty.md").write_text("")
    (pages / "Notes%3A Draft.md").write_text("---\nstatus: draft\n---\n- Draft body\n")

    (journals / "2025_01_15.md").write_text(
        "- Met with [[Projects/Acme]] team\n"
        "- ![diagram](../assets/diagram.png)\n"
    )
    (journals / "2025_01_16.md").write_text("- TODO follow up\n")

    (assets / "diagram.png").write_bytes(PNG_BYTES)
    (assets / "report.pdf").write_bytes(b"%PDF-1.4\n")
    return graph


@pytest.fixture
def session(graph_dir: Path) -> GraphSession:
    """GraphSession over the temporary graph."""
    return GraphSession.for_local_graph(graph_dir, graph_id=GRAPH_ID)


@pytest.fixture
def store():
    """In-memory page store, closed after the test."""
    page_store = PageStore(":memory:")
    yield page_store
    page_store.close()
