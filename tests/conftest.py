"""Shared test fixtures for the campus admin backend."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from backend.config import Settings
from backend.main import build_disks, create_app
from backend.models import Base
from backend.services.cache_store import InMemoryCache
from backend.services.translation_service import TranslationConfig, Translator
from backend.storage.registry import DiskRegistry

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path


class FakeTranslationBackend:
    """Deterministic backend: prefixes text with the target language.

    Set ``fail`` to make every call raise.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str | None]] = []
        self.fail = False
        self.closed = False

    async def translate(self, text: str, target: str, source: str | None = None) -> str:
        self.calls.append((text, target, source))
        if self.fail:
            raise RuntimeError("translation service unavailable")
        return f"[{target}] {text}"

    async def close(self) -> None:
        self.closed = True


@asynccontextmanager
async def create_test_client(
    settings: Settings, backend: FakeTranslationBackend | None = None
) -> AsyncGenerator[AsyncClient]:
    """Create an HTTP test client with a fully initialized app.

    Manually performs the work of the application lifespan (DB, disks,
    translator) because ASGITransport does not trigger it.
    """
    from backend.database import create_engine as create_db_engine

    app = create_app(settings)
    settings.validate_storage()

    engine, session_factory = create_db_engine(settings)
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.settings = settings

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app.state.disks = build_disks(settings)
    app.state.translator = Translator(
        backend or FakeTranslationBackend(),
        InMemoryCache(),
        TranslationConfig(cache_minutes=settings.translation_cache_minutes),
    )

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    await engine.dispose()


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    """Create a temporary storage root."""
    root = tmp_path / "storage"
    root.mkdir()
    return root


@pytest.fixture
def test_settings(storage_root: Path, tmp_path: Path) -> Settings:
    """Create test settings with temporary paths."""
    db_path = tmp_path / "test.db"
    return Settings(
        _env_file=None,
        debug=True,
        database_url=f"sqlite+aiosqlite:///{db_path}",
        storage_root=storage_root,
        translation_enabled=False,
    )


@pytest.fixture
def disks(test_settings: Settings) -> DiskRegistry:
    """Create the configured local disks under the temporary storage root."""
    return build_disks(test_settings)


@pytest.fixture
async def db_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine]:
    """Create a test database engine with the schema in place."""
    engine = create_async_engine(
        test_settings.database_url,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(
    db_engine: AsyncEngine,
) -> AsyncGenerator[AsyncSession]:
    """Create a test database session."""
    session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_backend() -> FakeTranslationBackend:
    return FakeTranslationBackend()


@pytest.fixture
def translator(fake_backend: FakeTranslationBackend) -> Translator:
    """Create a translator over the fake backend and a fresh cache."""
    return Translator(fake_backend, InMemoryCache())
