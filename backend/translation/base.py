"""Translation backend protocol."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TranslationBackend(Protocol):
    """A service that translates text between languages."""

    async def translate(self, text: str, target: str, source: str | None = None) -> str:
        """Translate text into target. source=None asks the service to auto-detect.

        May raise on network or service failure.
        """
        ...

    async def close(self) -> None:
        """Release any network resources."""
        ...


class NullTranslationBackend:
    """Backend used when translation is disabled: returns text unchanged."""

    async def translate(self, text: str, target: str, source: str | None = None) -> str:
        return text

    async def close(self) -> None:
        return None
