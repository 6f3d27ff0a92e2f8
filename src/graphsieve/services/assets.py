"""Asset resolution for rendered images and attachments."""

from pathlib import Path, PurePosixPath
from typing import Optional, Protocol


class AssetResolver(Protocol):
    def resolve(self, relative_path: str) -> Optional[str]:
        """Displayable URI for a path relative to assets/, or None."""
        ...


class LocalAssetResolver:
    """Resolves assets/ references to file:// URIs on the local file system."""

    def __init__(self, assets_dir: Optional[Path]):
        self.assets_dir = Path(assets_dir) if assets_dir is not None else None

    def resolve(self, relative_path: str) -> Optional[str]:
        if self.assets_dir is None or not relative_path:
            return None
        rel = PurePosixPath(relative_path.split("?", 1)[0].split("#", 1)[0])
        if rel.is_absolute() or ".." in rel.parts:
            return None
        path = self.assets_dir / rel
        if not path.is_file():
            return None
        return path.resolve().as_uri()
