"""Read-only directory access.

Everything that touches the file system goes through a DirectoryAccess, so
the resolver and index builder work the same against a local graph and
against test doubles. Handles are opaque to callers.
"""

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Optional, Protocol

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class DirEntry:
    """One entry of a directory listing."""

    name: str
    kind: str  # "file" or "directory"

    @property
    def is_file(self) -> bool:
        return self.kind == "file"


@dataclass(frozen=True)
class FileData:
    """Contents of a file with its modification time (epoch seconds)."""

    name: str
    text: str
    last_modified: float


class DirectoryAccess(Protocol):
    """Directory collaborator used by the resolver and the index builder."""

    async def list_entries(self, directory: Any) -> list[DirEntry]:
        """List the entries of a directory (non-recursive)."""
        ...

    async def get_file(self, directory: Any, name: str) -> FileData:
        """Read a file; raises FileNotFoundError / OSError on failure."""
        ...

    async def get_subdirectory(self, directory: Any, name: str) -> Optional[Any]:
        """Handle for a child directory, or None if it does not exist."""
        ...

    async def last_modified(self, directory: Any, name: str) -> Optional[float]:
        """Modification time of a file, or None if it does not exist."""
        ...


def _safe_relative(name: str) -> PurePosixPath:
    """Validate a relative file name (may contain '/' but never '..')."""
    rel = PurePosixPath(name)
    if rel.is_absolute() or ".." in rel.parts or not rel.parts:
        raise FileNotFoundError(f"Invalid relative path: {name}")
    return rel


class LocalDirectoryAccess:
    """DirectoryAccess over the local file system.

    Handles are pathlib.Path objects. Blocking calls run in a worker thread
    so the event loop stays responsive during large crawls.

    Example:
        >>> access = LocalDirectoryAccess()
        >>> entries = await access.list_entries(Path("~/notes/pages").expanduser())
    """

    async def list_entries(self, directory: Path) -> list[DirEntry]:
        return await asyncio.to_thread(self._list_entries_sync, Path(directory))

    @staticmethod
    def _list_entries_sync(directory: Path) -> list[DirEntry]:
        entries = []
        with os.scandir(directory) as it:
            for entry in it:
                if entry.is_dir():
                    kind = "directory"
                elif entry.is_file():
                    kind = "file"
                else:
                    continue
                entries.append(DirEntry(name=entry.name, kind=kind))
        return sorted(entries, key=lambda e: e.name)

    async def get_file(self, directory: Path, name: str) -> FileData:
        path = Path(directory) / _safe_relative(name)
        return await asyncio.to_thread(self._read_sync, path, name)

    @staticmethod
    def _read_sync(path: Path, name: str) -> FileData:
        if not path.is_file():
            raise FileNotFoundError(str(path))
        mtime = path.stat().st_mtime
        text = path.read_bytes().decode("utf-8", errors="replace")
        return FileData(name=name, text=text, last_modified=mtime)

    async def get_subdirectory(self, directory: Path, name: str) -> Optional[Path]:
        try:
            path = Path(directory) / _safe_relative(name)
        except FileNotFoundError:
            return None
        is_dir = await asyncio.to_thread(path.is_dir)
        return path if is_dir else None

    async def last_modified(self, directory: Path, name: str) -> Optional[float]:
        try:
            path = Path(directory) / _safe_relative(name)
            stat = await asyncio.to_thread(path.stat)
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("file_stat_failed", path=str(Path(directory) / name), error=str(e))
            return None
        return stat.st_mtime
