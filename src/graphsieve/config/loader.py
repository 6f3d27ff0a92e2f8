"""Configuration loader with YAML and environment variable support.

This module reads ~/.config/graphsieve/config.yaml and lets GRAPHSIEVE_*
environment variables override individual settings.

Environment variables:
- GRAPHSIEVE_GRAPH_PATH: Override graph.graph_path
- GRAPHSIEVE_GRAPH_ID: Override graph.graph_id
- GRAPHSIEVE_JOURNALS_PATH: Override graph.journals_path
- GRAPHSIEVE_INDEX_DB_PATH: Override index.db_path
- GRAPHSIEVE_INDEX_BATCH_SIZE: Override index.batch_size
- GRAPHSIEVE_INDEX_SUMMARY_MAX_CHARS: Override index.summary_max_chars
- GRAPHSIEVE_API_ENABLED: Override api.enabled ("1"/"true"/"yes")
- GRAPHSIEVE_API_ENDPOINT: Override api.endpoint
- GRAPHSIEVE_API_TOKEN: Override api.token
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml

from graphsieve.models.config import Configuration

logger = structlog.get_logger()

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "graphsieve" / "config.yaml"

_STRING_OVERRIDES = {
    "GRAPHSIEVE_GRAPH_PATH": ("graph", "graph_path"),
    "GRAPHSIEVE_GRAPH_ID": ("graph", "graph_id"),
    "GRAPHSIEVE_JOURNALS_PATH": ("graph", "journals_path"),
    "GRAPHSIEVE_INDEX_DB_PATH": ("index", "db_path"),
    "GRAPHSIEVE_API_ENDPOINT": ("api", "endpoint"),
    "GRAPHSIEVE_API_TOKEN": ("api", "token"),
}

_INT_OVERRIDES = {
    "GRAPHSIEVE_INDEX_BATCH_SIZE": ("index", "batch_size"),
    "GRAPHSIEVE_INDEX_SUMMARY_MAX_CHARS": ("index", "summary_max_chars"),
}


def load_config(config_path: Optional[Path] = None) -> Configuration:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to config file. If None, uses ~/.config/graphsieve/config.yaml

    Returns:
        Validated Configuration object

    Raises:
        FileNotFoundError: If there is neither a config file nor a
            GRAPHSIEVE_GRAPH_PATH override
        ValueError: If the YAML is not a mapping
        pydantic.ValidationError: If values are invalid
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if config_path.exists():
        with config_path.open() as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file must contain a mapping: {config_path}")
        logger.info("config_loaded", path=str(config_path))
    else:
        # Env vars may still provide everything that is required
        data = {}

    data = _apply_env_overrides(data)

    if not data.get("graph", {}).get("graph_path"):
        raise FileNotFoundError(
            f"Configuration file not found at {config_path} and GRAPHSIEVE_GRAPH_PATH is not set.\n\n"
            "Create the file with at least:\n\n"
            "graph:\n"
            "  graph_path: ~/Documents/logseq-graph\n"
        )

    return Configuration(**data)


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides to configuration data.

    Environment variables use the format GRAPHSIEVE_SECTION_KEY; for example
    GRAPHSIEVE_API_TOKEN sets data['api']['token']. Invalid numbers are
    ignored.

    Args:
        data: Base configuration dictionary from YAML

    Returns:
        Configuration dictionary with environment overrides applied
    """
    for section in ("graph", "index", "hover", "api"):
        if not isinstance(data.get(section), dict):
            data[section] = {}

    for env_name, (section, key) in _STRING_OVERRIDES.items():
        if value := os.getenv(env_name):
            data[section][key] = value

    for env_name, (section, key) in _INT_OVERRIDES.items():
        if value := os.getenv(env_name):
            try:
                data[section][key] = int(value)
            except ValueError:
                logger.warning("config_env_override_ignored", variable=env_name, value=value)

    if value := os.getenv("GRAPHSIEVE_API_ENABLED"):
        data["api"]["enabled"] = value.strip().lower() in ("1", "true", "yes", "on")

    return data
