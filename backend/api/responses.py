"""JSON response envelope with Accept-Language translation.

Every endpoint answers ``{"success": true, "message", "data", "meta"?}`` or
``{"success": false, "message", "errors"}``. When the client asks for a
language other than the default one, the message and selected data fields
are translated on the way out.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

if TYPE_CHECKING:
    from collections.abc import Sequence

    from fastapi import Request

    from backend.config import Settings
    from backend.services.translation_service import Translator


def extract_language_code(accept_language: str | None) -> str | None:
    """Return the primary language of an Accept-Language header.

    ``"fr-CA,fr;q=0.9,en;q=0.8"`` -> ``"fr"``.
    """
    if not accept_language:
        return None
    first = accept_language.split(",")[0].split(";")[0].split("-")[0]
    code = first.strip().lower()
    if not code or code == "*":
        return None
    return code


class Responder:
    """Build enveloped responses for one request."""

    def __init__(
        self,
        translator: Translator | None,
        language: str | None,
        default_language: str,
        fields: Sequence[str],
    ) -> None:
        self.translator = translator
        self.language = language
        self.default_language = default_language
        self.fields = list(fields)

    def _translation_target(self) -> tuple[Translator, str] | None:
        if (
            self.translator is None
            or self.language is None
            or self.language == self.default_language
        ):
            return None
        return self.translator, self.language

    async def _message(self, message: str) -> str:
        target = self._translation_target()
        if target is None:
            return message
        translator, language = target
        return await translator.translate(message, language)

    async def success(
        self,
        data: Any = None,
        message: str = "Operation successful",
        status_code: int = 200,
        meta: dict[str, Any] | None = None,
    ) -> JSONResponse:
        payload = jsonable_encoder(data)
        target = self._translation_target()
        if target is not None and payload:
            translator, language = target
            payload = await translator.translate_data(payload, language, self.fields)

        content: dict[str, Any] = {
            "success": True,
            "message": await self._message(message),
            "data": payload,
        }
        if meta:
            content["meta"] = meta
        return JSONResponse(status_code=status_code, content=content)

    async def paginated(
        self,
        items: Sequence[Any],
        *,
        total: int,
        page: int,
        per_page: int,
        message: str = "Data retrieved successfully",
    ) -> JSONResponse:
        start = (page - 1) * per_page
        meta = {
            "current_page": page,
            "last_page": max(1, math.ceil(total / per_page)),
            "per_page": per_page,
            "total": total,
            "from": start + 1 if items else None,
            "to": start + len(items) if items else None,
        }
        return await self.success(list(items), message, meta=meta)

    async def error(
        self,
        message: str = "An error occurred",
        errors: Any = None,
        status_code: int = 400,
    ) -> JSONResponse:
        translated_errors = errors
        target = self._translation_target()
        if target is not None and errors:
            translator, language = target
            if isinstance(errors, dict):
                translated_errors = await translator.translate_array(errors, language)
            elif isinstance(errors, str):
                translated_errors = await translator.translate(errors, language)

        return JSONResponse(
            status_code=status_code,
            content={
                "success": False,
                "message": await self._message(message),
                "errors": jsonable_encoder(translated_errors),
            },
        )


def build_responder(request: Request) -> Responder:
    """Create a responder from app state and the request's Accept-Language."""
    settings: Settings = request.app.state.settings
    translator: Translator | None = getattr(request.app.state, "translator", None)
    return Responder(
        translator=translator,
        language=extract_language_code(request.headers.get("Accept-Language")),
        default_language=settings.default_language,
        fields=settings.translate_fields,
    )
