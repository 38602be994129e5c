"""Storage disk protocol and local filesystem implementation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class StorageDisk(Protocol):
    """Uniform contract over a named file store.

    Paths are relative to the disk root and always use ``/`` separators.
    """

    name: str

    def exists(self, path: str) -> bool:
        """Return True if a file or directory exists at path."""
        ...

    def all_files(self, prefix: str) -> list[str]:
        """Recursively list every file under prefix."""
        ...

    def delete(self, path: str) -> bool:
        """Delete the file at path. Returns False if nothing was deleted."""
        ...

    def put(self, path: str, data: bytes) -> None:
        """Write data to path, creating parent directories."""
        ...

    def read(self, path: str) -> bytes:
        """Read the file at path."""
        ...

    def absolute_path(self, path: str) -> Path:
        """Return the local filesystem location of path."""
        ...


@dataclass
class LocalDisk:
    """A disk backed by a directory on the local filesystem."""

    name: str
    root: Path

    def _resolve(self, rel_path: str) -> Path:
        """Resolve a disk-relative path, refusing traversal outside the root.

        Raises ValueError if the resolved path escapes the disk root.
        """
        candidate = PurePosixPath(rel_path.lstrip("/"))
        full_path = (self.root / candidate).resolve()
        if not full_path.is_relative_to(self.root.resolve()):
            raise ValueError(f"Path traversal detected: {rel_path}")
        return full_path

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def all_files(self, prefix: str) -> list[str]:
        base = self._resolve(prefix)
        if not base.is_dir():
            return []
        root = self.root.resolve()
        return sorted(
            p.relative_to(root).as_posix() for p in base.rglob("*") if p.is_file()
        )

    def delete(self, path: str) -> bool:
        full_path = self._resolve(path)
        if not full_path.is_file():
            return False
        full_path.unlink()
        logger.debug("Deleted %s from disk %s", path, self.name)
        return True

    def put(self, path: str, data: bytes) -> None:
        full_path = self._resolve(path)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_bytes(data)

    def read(self, path: str) -> bytes:
        return self._resolve(path).read_bytes()

    def absolute_path(self, path: str) -> Path:
        return self._resolve(path)
