"""Loaded-content model shared by page views and hover previews."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from graphsieve.logseq.parser import ContentNode


class PreviewState(Enum):
    """Load state of a page's content."""

    NOT_LOADED = "not_loaded"  # Nothing fetched yet
    NOT_FOUND = "not_found"  # No backing file could be resolved (or read)
    EMPTY = "empty"  # Resolved, but the page has no blocks
    LOADED = "loaded"  # Resolved with content


@dataclass(frozen=True)
class PreviewContent:
    """Result of loading a page for display.

    Attributes:
        name: Page name that was requested
        state: Load state (distinguishes not-loaded, not-found, empty and loaded)
        nodes: Parsed block tree (empty unless state is LOADED)
        picked: File name that was resolved, if any
    """

    name: str
    state: PreviewState = PreviewState.NOT_LOADED
    nodes: tuple[ContentNode, ...] = field(default_factory=tuple)
    picked: Optional[str] = None

    @classmethod
    def from_nodes(cls, name: str, nodes: list[ContentNode], picked: Optional[str]) -> "PreviewContent":
        """Build a LOADED or EMPTY result from parsed nodes."""
        state = PreviewState.LOADED if nodes else PreviewState.EMPTY
        return cls(name=name, state=state, nodes=tuple(nodes), picked=picked)

    @property
    def is_loaded(self) -> bool:
        """True once a fetch has completed (whatever its outcome)."""
        return self.state is not PreviewState.NOT_LOADED
