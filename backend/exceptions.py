"""Application-level exception types.

Convention:
- ``InternalServerError``: for errors whose details must never reach clients.
  The global handler logs the full message at ERROR and returns a generic
  "Internal server error" (500) to the client.
- ``StorageError``: a disk operation failed. Mapped to 500 "Storage operation
  failed"; ``UnknownDiskError`` is the client-addressable subclass (422).
- ``TranslationError``: raised by translation backends only. The translator
  catches it (and anything else a backend raises) and returns the original text.
- ``ValueError``: for *business logic* validation errors that are safe to
  forward to clients. The global ``ValueError`` handler returns ``str(exc)``
  as the 422 detail.
"""

from __future__ import annotations


class InternalServerError(Exception):
    """Raised for internal errors whose details must not be exposed to clients."""


class StorageError(Exception):
    """Raised when a storage disk operation fails."""


class UnknownDiskError(StorageError):
    """Raised when a disk name is not configured."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown storage disk: {name!r}")
        self.name = name


class TranslationError(Exception):
    """Raised by a translation backend when the service call fails."""
