"""Structured logging setup for graphsieve.

Every module logs through structlog with snake_case event names and
key/value context. What each level carries:

- DEBUG: resolution details (``page_file_resolved``, ``page_not_found``,
  ``asset_unresolved``), hover timers (``hover_preview_shown``,
  ``hover_preview_hidden``) and superseded rebuilds (``rebuild_superseded``)
- INFO: rebuild lifecycle (``rebuild_started``, ``rebuild_completed``),
  on-demand indexing (``page_indexed_on_demand``) and config loading
- WARNING: partial reads and degraded sources (``page_file_unreadable``,
  ``directory_list_failed``, ``outliner_api_http_error``) and ignored
  environment overrides
- ERROR: configuration the CLI cannot use (``config_not_found``,
  ``config_validation_error``)

Missing pages are not warnings: the resolver reports them at DEBUG and the
caller decides whether an empty state is an error.
"""

import os
from pathlib import Path
from typing import Any

import structlog

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def configure_logging(log_dir: Path | None = None) -> None:
    """Send JSON log lines to ~/.cache/graphsieve/logs/graphsieve.log.

    The level comes from GRAPHSIEVE_LOG_LEVEL (default INFO; unknown values
    fall back to INFO). ``graphsieve --verbose`` sets it to DEBUG.

    Example:
        GRAPHSIEVE_LOG_LEVEL=DEBUG graphsieve resolve "2025-01-16"
        tail -f ~/.cache/graphsieve/logs/graphsieve.log | jq 'select(.event == "page_file_resolved")'
    """
    if log_dir is None:
        log_dir = Path.home() / ".cache" / "graphsieve" / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "graphsieve.log"

    log_level = os.environ.get("GRAPHSIEVE_LOG_LEVEL", "INFO").upper()
    if log_level not in LOG_LEVELS:
        log_level = "INFO"

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=open(log_file, "a")),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Structured logger for a module (``get_logger(__name__)``)."""
    return structlog.get_logger(name)
