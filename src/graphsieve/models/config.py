"""Configuration models for graphsieve."""

import re
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from graphsieve.models.filter_options import FilterOptions


class GraphConfig(BaseModel):
    """Configuration for the Logseq graph location."""

    graph_path: str = Field(
        ...,
        description="Path to Logseq graph directory (contains pages/ and journals/)"
    )

    graph_id: Optional[str] = Field(
        default=None,
        description="Identifier used as the index key (defaults to 'fs_<directory name>')"
    )

    journals_path: Optional[str] = Field(
        default=None,
        description="Sibling journals directory (defaults to <graph_path>/journals when present)"
    )

    journal_date_pattern: str = Field(
        default="yyyy/MM/dd",
        description="Display pattern for journal titles (yyyy, MM, dd tokens)"
    )

    @field_validator('graph_path')
    @classmethod
    def validate_graph_path(cls, v: str) -> str:
        """Validate graph path exists and is a directory."""
        path = Path(v).expanduser()
        if not path.exists():
            raise ValueError(
                f"Graph path does not exist: {path}\n"
                f"Please create the directory or update config.yaml"
            )
        if not path.is_dir():
            raise ValueError(
                f"Graph path is not a directory: {path}\n"
                f"Please provide a valid directory path"
            )
        return str(path)

    @field_validator('journal_date_pattern')
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        """Require all three date tokens."""
        if not all(token in v for token in ("yyyy", "MM", "dd")):
            raise ValueError(f"Date pattern must contain yyyy, MM and dd: {v!r}")
        return v

    @property
    def resolved_graph_id(self) -> str:
        """Graph id, derived from the directory name when not configured."""
        if self.graph_id:
            return self.graph_id
        slug = re.sub(r"[^A-Za-z0-9_-]+", "_", Path(self.graph_path).name).strip("_")
        return f"fs_{slug or 'graph'}"

    model_config = {"frozen": True}


class IndexConfig(BaseModel):
    """Configuration for the page index."""

    batch_size: int = Field(
        default=100,
        ge=1,
        description="Pages processed per batch when indexing from the outliner API"
    )

    batch_sleep_ms: int = Field(
        default=300,
        ge=0,
        description="Pause between batches (milliseconds)"
    )

    summary_max_chars: int = Field(
        default=100,
        ge=1,
        description="Character cap for a page summary"
    )

    db_path: str = Field(
        default="~/.cache/graphsieve/pages.db",
        description="SQLite metadata store location (':memory:' for a throwaway index)"
    )

    @property
    def resolved_db_path(self) -> str:
        """db_path with ~ expanded (':memory:' is returned unchanged)."""
        if self.db_path == ":memory:":
            return self.db_path
        return str(Path(self.db_path).expanduser())

    model_config = {"frozen": True}


class HoverConfig(BaseModel):
    """Configuration for hover previews."""

    show_delay_ms: int = Field(default=1500, ge=0, description="Delay before a preview opens")
    min_visible_ms: int = Field(default=2000, ge=0, description="Minimum time an open preview stays visible")
    cache_max: int = Field(default=50, ge=1, description="Maximum cached previews")
    cache_ttl_ms: int = Field(default=120000, ge=1, description="Cached preview lifetime")

    model_config = {"frozen": True}


class ApiConfig(BaseModel):
    """Configuration for the Logseq HTTP API server (alternate metadata source)."""

    enabled: bool = Field(default=False, description="Index from the HTTP API instead of the files")
    endpoint: str = Field(default="http://127.0.0.1:12315", description="Logseq HTTP API server URL")
    token: str = Field(default="", description="Authorization token configured in Logseq")
    timeout: float = Field(default=10.0, gt=0, description="Request timeout (seconds)")

    model_config = {"frozen": True}


class Configuration(BaseModel):
    """Root configuration for graphsieve."""

    graph: GraphConfig = Field(..., description="Graph location settings")
    index: IndexConfig = Field(default_factory=IndexConfig, description="Index settings")
    hover: HoverConfig = Field(default_factory=HoverConfig, description="Hover preview settings")
    api: ApiConfig = Field(default_factory=ApiConfig, description="Logseq HTTP API settings")
    filters: FilterOptions = Field(default_factory=FilterOptions, description="Default view filters")

    @field_validator('filters', mode='before')
    @classmethod
    def coerce_filters(cls, v):
        """Accept loose filter mappings (camelCase or snake_case)."""
        return FilterOptions.coerce(v)

    model_config = {"frozen": True}
