"""Named storage disk registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

from backend.exceptions import UnknownDiskError
from backend.storage.disk import LocalDisk

if TYPE_CHECKING:
    from collections.abc import Iterator

    from backend.config import Settings
    from backend.storage.disk import StorageDisk


class DiskRegistry:
    """Resolve disk names to storage disks.

    Disks are registered explicitly; nothing is auto-discovered.
    """

    def __init__(self, disks: dict[str, StorageDisk] | None = None) -> None:
        self._disks: dict[str, StorageDisk] = dict(disks or {})

    @classmethod
    def from_settings(cls, settings: Settings) -> DiskRegistry:
        """Build a registry of local disks from the configured disk roots."""
        return cls(
            {
                name: LocalDisk(name=name, root=settings.disk_root(name))
                for name in settings.storage_disks
            }
        )

    def register(self, disk: StorageDisk) -> None:
        self._disks[disk.name] = disk

    def get(self, name: str) -> StorageDisk:
        """Return the disk registered under name.

        Raises UnknownDiskError if the name is not configured.
        """
        disk = self._disks.get(name)
        if disk is None:
            raise UnknownDiskError(name)
        return disk

    def names(self) -> list[str]:
        """Return the registered disk names."""
        return list(self._disks)

    def __contains__(self, name: object) -> bool:
        return name in self._disks

    def __iter__(self) -> Iterator[StorageDisk]:
        return iter(self._disks.values())
