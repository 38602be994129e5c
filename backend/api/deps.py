"""Shared API dependencies: settings, DB session, disks, translator, responder."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.responses import Responder, build_responder
from backend.config import Settings
from backend.services.translation_service import Translator
from backend.storage.registry import DiskRegistry


def get_settings(request: Request) -> Settings:
    """Get application settings from app state."""
    settings: Settings = request.app.state.settings
    return settings


def get_disks(request: Request) -> DiskRegistry:
    """Get the storage disk registry from app state."""
    disks: DiskRegistry = request.app.state.disks
    return disks


def get_translator(request: Request) -> Translator:
    """Get the shared translator from app state."""
    translator: Translator = request.app.state.translator
    return translator


def get_responder(request: Request) -> Responder:
    """Get a response builder bound to the request's language."""
    return build_responder(request)


async def get_session(request: Request) -> AsyncGenerator[AsyncSession]:
    """Get a database session."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session
