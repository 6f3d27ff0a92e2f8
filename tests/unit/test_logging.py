"""Unit tests for structlog configuration."""

import json

import pytest
import structlog

from graphsieve.utils.logging import configure_logging, get_logger


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_json_lines_at_info(self, tmp_path, monkeypatch):
        """Test that INFO events are written as JSON and DEBUG is filtered."""
        monkeypatch.delenv("GRAPHSIEVE_LOG_LEVEL", raising=False)
        configure_logging(tmp_path)
        logger = get_logger("graphsieve.test")

        logger.debug("page_not_found", name="Nope")
        logger.info("rebuild_started", graph_id="fs_test", generation=1)

        lines = (tmp_path / "graphsieve.log").read_text().splitlines()
        assert len(lines) == 1
        entry = json.loads(lines[0])
        assert entry["event"] == "rebuild_started"
        assert entry["graph_id"] == "fs_test"
        assert entry["level"] == "info"

    def test_debug_level_from_env(self, tmp_path, monkeypatch):
        """Test that GRAPHSIEVE_LOG_LEVEL=DEBUG lets debug events through."""
        monkeypatch.setenv("GRAPHSIEVE_LOG_LEVEL", "debug")
        configure_logging(tmp_path)

        get_logger("graphsieve.test").debug("page_file_resolved", name="Ideas.md")

        entry = json.loads((tmp_path / "graphsieve.log").read_text().splitlines()[0])
        assert entry["event"] == "page_file_resolved"

    def test_unknown_level_falls_back_to_info(self, tmp_path, monkeypatch):
        """Test that an invalid level name behaves like INFO."""
        monkeypatch.setenv("GRAPHSIEVE_LOG_LEVEL", "chatty")
        configure_logging(tmp_path / "logs")
        logger = get_logger("graphsieve.test")

        logger.debug("hover_preview_shown", name="X")
        logger.warning("page_file_unreadable", name="X.md")

        lines = (tmp_path / "logs" / "graphsieve.log").read_text().splitlines()
        assert [json.loads(line)["event"] for line in lines] == ["page_file_unreadable"]
