"""Translation request schemas."""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, Field

LanguageCode = Annotated[
    str, Field(min_length=2, max_length=10, pattern=r"^[A-Za-z]{2,3}(-[A-Za-z0-9]+)?$")
]


class TranslateTextRequest(BaseModel):
    """Request to translate a single string."""

    text: str = Field(max_length=5000)
    target: LanguageCode
    source: LanguageCode | None = None
    use_cache: bool = True


class TranslateArrayRequest(BaseModel):
    """Request to translate the string values of a flat mapping."""

    texts: dict[str, Any]
    target: LanguageCode
    source: LanguageCode | None = None
    use_cache: bool = True


class TranslateDataRequest(BaseModel):
    """Request to translate string leaves of nested data."""

    data: Any
    target: LanguageCode
    fields: list[str] = Field(default_factory=list)
    source: LanguageCode | None = None
    use_cache: bool = True
