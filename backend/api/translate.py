"""Translation API endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from backend.api.deps import get_responder, get_translator
from backend.api.responses import Responder
from backend.schemas.translate import (
    TranslateArrayRequest,
    TranslateDataRequest,
    TranslateTextRequest,
)
from backend.services.translation_service import Translator

router = APIRouter(prefix="/api/translate", tags=["translate"])


@router.post("")
async def translate_text(
    body: TranslateTextRequest,
    translator: Annotated[Translator, Depends(get_translator)],
    responder: Annotated[Responder, Depends(get_responder)],
) -> JSONResponse:
    """Translate one string. Falls back to the original text on failure."""
    translated = await translator.translate(body.text, body.target, body.source, body.use_cache)
    return await responder.success(
        {"text": body.text, "translated_text": translated, "target": body.target},
        "Text translated successfully",
    )


@router.post("/array")
async def translate_array(
    body: TranslateArrayRequest,
    translator: Annotated[Translator, Depends(get_translator)],
    responder: Annotated[Responder, Depends(get_responder)],
) -> JSONResponse:
    """Translate the string values of a flat mapping."""
    translated = await translator.translate_array(
        body.texts, body.target, body.source, body.use_cache
    )
    return await responder.success(
        {"translated": translated, "target": body.target}, "Texts translated successfully"
    )


@router.post("/data")
async def translate_data(
    body: TranslateDataRequest,
    translator: Annotated[Translator, Depends(get_translator)],
    responder: Annotated[Responder, Depends(get_responder)],
) -> JSONResponse:
    """Translate selected fields of nested data, preserving its shape."""
    translated = await translator.translate_data(
        body.data, body.target, body.fields, body.source, body.use_cache
    )
    return await responder.success(
        {"translated": translated, "target": body.target}, "Data translated successfully"
    )


@router.delete("/cache")
async def clear_translation_cache(
    translator: Annotated[Translator, Depends(get_translator)],
    responder: Annotated[Responder, Depends(get_responder)],
) -> JSONResponse:
    """Flush the translation cache."""
    translator.clear_cache()
    return await responder.success(None, "Translation cache cleared")
