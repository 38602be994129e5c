"""Google Translate backend using the public web translation endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from backend.exceptions import TranslationError

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://translate.googleapis.com/translate_a/single"


def _extract_translation(payload: Any) -> str:
    """Join the translated segments of a ``translate_a/single`` response.

    The response is a nested JSON array; element 0 holds one
    ``[translated, original, ...]`` entry per sentence.
    """
    if not isinstance(payload, list) or not payload or not isinstance(payload[0], list):
        msg = "Unexpected translation response shape"
        raise TranslationError(msg)
    segments = [
        segment[0]
        for segment in payload[0]
        if isinstance(segment, list) and segment and isinstance(segment[0], str)
    ]
    if not segments:
        msg = "Translation response contained no text"
        raise TranslationError(msg)
    return "".join(segments)


class GoogleTranslateBackend:
    """Translate text through Google's ``gtx`` web client endpoint."""

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.endpoint = endpoint
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def translate(self, text: str, target: str, source: str | None = None) -> str:
        params = {
            "client": "gtx",
            "sl": source or "auto",
            "tl": target,
            "dt": "t",
            "q": text,
        }
        try:
            resp = await self._client.get(self.endpoint, params=params)
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPStatusError as exc:
            msg = f"Translation service returned HTTP {exc.response.status_code}"
            raise TranslationError(msg) from exc
        except httpx.HTTPError as exc:
            msg = f"Translation request failed: {exc}"
            raise TranslationError(msg) from exc
        except ValueError as exc:
            msg = "Translation service returned invalid JSON"
            raise TranslationError(msg) from exc
        return _extract_translation(payload)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
