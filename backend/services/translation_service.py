"""Structured translation: cached, fail-open translation of nested data.

``Translator.translate_data`` walks mappings, sequences and object-like
values and translates string leaves. A non-empty field list restricts which
keys are translated; containers are always descended into, so a listed field
is found at any depth regardless of its parent's key.
"""

from __future__ import annotations

import copy
import dataclasses
import enum
import hashlib
import logging
import types
from collections.abc import Collection, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

if TYPE_CHECKING:
    from backend.services.cache_store import Cache
    from backend.translation.base import TranslationBackend

logger = logging.getLogger(__name__)

AUTO_SOURCE = "auto"
CACHE_KEY_PREFIX = "translation:"

_NOT_OBJECT_LIKE = (type, types.ModuleType, types.FunctionType, types.MethodType, enum.Enum)


@dataclass(frozen=True)
class TranslationConfig:
    """Translator configuration."""

    cache_minutes: int = 1440


def cache_key(text: str, target: str, source: str | None) -> str:
    """Deterministic cache key for a (text, target, source) triple."""
    digest = hashlib.md5(  # noqa: S324 - cache key, not a security boundary
        (text + target + (source or AUTO_SOURCE)).encode("utf-8")
    ).hexdigest()
    return CACHE_KEY_PREFIX + digest


def _is_named_tuple(value: object) -> bool:
    return isinstance(value, tuple) and hasattr(value, "_fields")


def _is_object_like(value: object) -> bool:
    if isinstance(value, BaseModel) or _is_named_tuple(value):
        return True
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return True
    return hasattr(value, "__dict__") and not isinstance(value, _NOT_OBJECT_LIKE)


def _is_container(value: object) -> bool:
    if isinstance(value, (str, bytes, bytearray)):
        return False
    return isinstance(value, (Mapping, list, tuple)) or _is_object_like(value)


class Translator:
    """Translate text and nested data through a backend, with caching."""

    def __init__(
        self,
        backend: TranslationBackend,
        cache: Cache,
        config: TranslationConfig | None = None,
    ) -> None:
        self.backend = backend
        self.cache = cache
        self._config = config or TranslationConfig()

    @property
    def config(self) -> TranslationConfig:
        return self._config

    def set_cache_duration(self, minutes: int) -> None:
        """Change the lifetime of entries cached from now on.

        Entries already in the cache keep their original expiry.
        """
        if minutes < 1:
            msg = "Cache duration must be at least one minute"
            raise ValueError(msg)
        self._config = dataclasses.replace(self._config, cache_minutes=minutes)

    def clear_cache(self) -> bool:
        """Flush the whole cache, not just translation entries."""
        return self.cache.flush()

    async def translate(
        self,
        text: str,
        target: str,
        source: str | None = None,
        use_cache: bool = True,
    ) -> str:
        """Translate text, returning the original text if the backend fails."""
        if not text:
            return text

        key = cache_key(text, target, source)
        if use_cache and self.cache.has(key):
            cached: str = self.cache.get(key)
            return cached

        try:
            translated = await self.backend.translate(text, target, source)
        except Exception as exc:
            logger.error(
                "Translation failed: %s (text=%r, target_language=%s, source_language=%s)",
                exc,
                text,
                target,
                source,
            )
            return text

        if use_cache:
            self.cache.put(key, translated, self._config.cache_minutes)
        return translated

    async def translate_array(
        self,
        texts: Mapping[Any, Any],
        target: str,
        source: str | None = None,
        use_cache: bool = True,
    ) -> dict[Any, Any]:
        """Translate every string value of a flat mapping. No recursion."""
        translated: dict[Any, Any] = {}
        for key, value in texts.items():
            if isinstance(value, str):
                translated[key] = await self.translate(value, target, source, use_cache)
            else:
                translated[key] = value
        return translated

    async def translate_data(
        self,
        data: Any,
        target: str,
        fields: Collection[str] = (),
        source: str | None = None,
        use_cache: bool = True,
    ) -> Any:
        """Return a translated copy of data with the same shape.

        Mappings come back as ``dict``; lists, tuples, named tuples,
        dataclasses, pydantic models and plain objects keep their type.
        Scalars and a bare top-level string pass through unchanged. A value
        that contains itself is returned as-is where it repeats.
        """
        return await self._translate_node(
            data, target, frozenset(fields), source, use_cache, frozenset()
        )

    async def _translate_node(
        self,
        data: Any,
        target: str,
        allowed: frozenset[str],
        source: str | None,
        use_cache: bool,
        path: frozenset[int],
    ) -> Any:
        if id(data) in path:
            return data
        path = path | {id(data)}

        if isinstance(data, Mapping):
            return await self._translate_items(
                dict(data.items()), target, allowed, source, use_cache, path
            )
        if _is_named_tuple(data):
            return await self._translate_object(data, target, allowed, source, use_cache, path)
        if isinstance(data, (list, tuple)):
            items = await self._translate_items(
                dict(enumerate(data)), target, allowed, source, use_cache, path
            )
            return type(data)(items.values())
        if _is_object_like(data):
            return await self._translate_object(data, target, allowed, source, use_cache, path)
        return data

    async def _translate_value(
        self,
        key: Any,
        value: Any,
        target: str,
        allowed: frozenset[str],
        source: str | None,
        use_cache: bool,
        path: frozenset[int],
    ) -> Any:
        if isinstance(value, str) and not isinstance(value, enum.Enum):
            if not allowed or key in allowed:
                return await self.translate(value, target, source, use_cache)
            return value
        if _is_container(value):
            return await self._translate_node(value, target, allowed, source, use_cache, path)
        return value

    async def _translate_items(
        self,
        items: dict[Any, Any],
        target: str,
        allowed: frozenset[str],
        source: str | None,
        use_cache: bool,
        path: frozenset[int],
    ) -> dict[Any, Any]:
        return {
            key: await self._translate_value(key, value, target, allowed, source, use_cache, path)
            for key, value in items.items()
        }

    async def _translate_object(
        self,
        obj: Any,
        target: str,
        allowed: frozenset[str],
        source: str | None,
        use_cache: bool,
        path: frozenset[int],
    ) -> Any:
        """Walk an object's public fields and rebuild it with translated values."""
        if isinstance(obj, BaseModel):
            values = {name: getattr(obj, name) for name in type(obj).model_fields}
        elif _is_named_tuple(obj):
            values = obj._asdict()
        elif dataclasses.is_dataclass(obj):
            values = {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj) if f.init}
        else:
            values = {k: v for k, v in vars(obj).items() if not k.startswith("_")}

        updates = await self._translate_items(values, target, allowed, source, use_cache, path)

        if isinstance(obj, BaseModel):
            return obj.model_copy(update=updates)
        if _is_named_tuple(obj):
            return obj._replace(**updates)
        if dataclasses.is_dataclass(obj):
            return dataclasses.replace(obj, **updates)
        clone = copy.copy(obj)
        for name, value in updates.items():
            setattr(clone, name, value)
        return clone
