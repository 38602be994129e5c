"""FastAPI application entry point."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.api.health import router as health_router
from backend.api.responses import build_responder
from backend.api.translate import router as translate_router
from backend.api.uploads import router as uploads_router
from backend.config import Settings
from backend.database import create_engine, create_tables
from backend.exceptions import InternalServerError, StorageError, UnknownDiskError
from backend.services.cache_store import InMemoryCache
from backend.services.translation_service import TranslationConfig, Translator
from backend.storage.registry import DiskRegistry
from backend.translation.base import NullTranslationBackend
from backend.translation.google import GoogleTranslateBackend

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from fastapi.responses import JSONResponse

    from backend.translation.base import TranslationBackend

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool) -> None:
    """Configure application logging."""
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if debug else logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.INFO if debug else logging.WARNING)


def build_translator(settings: Settings) -> Translator:
    """Create the shared translator for the configured backend."""
    backend: TranslationBackend
    if settings.translation_enabled:
        backend = GoogleTranslateBackend(
            endpoint=settings.translation_endpoint,
            timeout=settings.translation_timeout_seconds,
        )
    else:
        backend = NullTranslationBackend()
    return Translator(
        backend,
        InMemoryCache(max_entries=settings.translation_cache_max_entries),
        TranslationConfig(cache_minutes=settings.translation_cache_minutes),
    )


def build_disks(settings: Settings) -> DiskRegistry:
    """Create the disk registry, making sure every disk root exists."""
    for name in settings.storage_disks:
        root = settings.disk_root(name)
        if not root.exists():
            logger.info("Creating storage directory for disk %s at %s", name, root)
            root.mkdir(parents=True)
    return DiskRegistry.from_settings(settings)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan: startup and shutdown."""
    settings: Settings = app.state.settings
    settings.validate_storage()
    _configure_logging(settings.debug)
    logger.info("Starting campus admin backend (debug=%s)", settings.debug)

    try:
        engine, session_factory = create_engine(settings)
        app.state.engine = engine
        app.state.session_factory = session_factory
    except Exception as exc:
        logger.critical(
            "Failed to initialize database: %s. Check database path and permissions.", exc
        )
        raise

    try:
        await create_tables(engine)
    except Exception as exc:
        logger.critical("Failed to create database schema: %s.", exc)
        raise

    try:
        app.state.disks = build_disks(settings)
    except Exception as exc:
        logger.critical(
            "Failed to initialize storage under %s: %s.", settings.storage_root, exc
        )
        raise

    translator = build_translator(settings)
    app.state.translator = translator

    yield

    try:
        await translator.backend.close()
    except Exception as exc:
        logger.error("Error during translation backend shutdown: %s", exc, exc_info=True)

    try:
        await engine.dispose()
    except Exception as exc:
        logger.error("Error during engine disposal: %s", exc, exc_info=True)

    logger.info("Campus admin backend stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = Settings()

    docs_enabled = settings.debug or settings.expose_docs

    app = FastAPI(
        title="Campus Admin",
        description="File uploads, storage reconciliation and response translation",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )
    app.state.settings = settings

    app.add_middleware(GZipMiddleware, minimum_size=500)

    cors_origins = (
        settings.cors_origins
        if settings.cors_origins
        else (["http://localhost:5173", "http://localhost:8000"] if settings.debug else [])
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(uploads_router)
    app.include_router(translate_router)

    # Global exception handlers: every failure leaves as an error envelope

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors: dict[str, str] = {}
        for err in exc.errors():
            loc = err.get("loc", ())
            field = str(loc[-1]) if loc else "unknown"
            errors.setdefault(field, err.get("msg", "Invalid value"))
        logger.warning(
            "RequestValidationError in %s %s: %s",
            request.method,
            request.url.path,
            errors,
        )
        return await build_responder(request).error("Validation failed", errors, 422)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        response = await build_responder(request).error(message, None, exc.status_code)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(UnknownDiskError)
    async def unknown_disk_handler(request: Request, exc: UnknownDiskError) -> JSONResponse:
        logger.warning("UnknownDiskError in %s %s: %s", request.method, request.url.path, exc)
        return await build_responder(request).error(str(exc), {"disk": str(exc)}, 422)

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        logger.error(
            "StorageError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return await build_responder(request).error("Storage operation failed", None, 500)

    @app.exception_handler(InternalServerError)
    async def internal_server_error_handler(
        request: Request, exc: InternalServerError
    ) -> JSONResponse:
        logger.error(
            "InternalServerError in %s %s: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
        )
        return await build_responder(request).error("Internal server error", None, 500)

    @app.exception_handler(OSError)
    async def os_error_handler(request: Request, exc: OSError) -> JSONResponse:
        if isinstance(exc, (ConnectionError, TimeoutError)):
            raise exc
        logger.error("OSError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return await build_responder(request).error("Storage operation failed", None, 500)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        logger.error("ValueError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        message = str(exc) or "Invalid value"
        return await build_responder(request).error(message, None, 422)

    @app.exception_handler(OperationalError)
    async def operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
        logger.error(
            "OperationalError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return await build_responder(request).error("Database temporarily unavailable", None, 503)

    return app


app = create_app()


def cli_entry() -> None:
    """CLI entry point for running the server."""
    import uvicorn

    settings: Settings = app.state.settings
    uvicorn.run(
        "backend.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
