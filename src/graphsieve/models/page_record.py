"""Page record model persisted in the metadata store."""

from pydantic import BaseModel, Field


class PageRecord(BaseModel):
    """Index entry summarizing a single page of a graph.

    Primary key is (graph_id, name).
    """

    graph_id: str = Field(..., description="Graph identifier (e.g. 'fs_notes')")
    name: str = Field(..., description="Canonical page name")
    uuid: str = Field(default="", description="Page UUID from the outliner, empty for folder graphs")
    last_modified: float = Field(default=0.0, description="Modification time (epoch seconds)")
    summary: list[str] = Field(default_factory=list, description="Short summary lines")
    image: str = Field(default="", description="First image reference under assets/, if any")
    archived: bool = Field(default=False, description="Hidden from the main listing")
    favorite: bool = Field(default=False, description="Starred by the user")
    journal: bool = Field(default=False, description="Classified as a journal page")

    @property
    def key(self) -> tuple[str, str]:
        """Primary key (graph_id, name)."""
        return (self.graph_id, self.name)

    def has_nontrivial_summary(self) -> bool:
        """True when at least one summary line is neither blank nor a lone dash."""
        return any(line.strip() and line.strip() != "-" for line in self.summary)
