"""Health check endpoint."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import get_disks, get_session
from backend.storage.registry import DiskRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

VERSION = "0.1.0"


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str
    disks: dict[str, str]


@router.get("/api/health", response_model=HealthResponse)
async def health_check(
    session: Annotated[AsyncSession, Depends(get_session)],
    disks: Annotated[DiskRegistry, Depends(get_disks)],
) -> HealthResponse:
    """Health check endpoint for monitoring and load balancers."""
    db_status = "ok"
    try:
        await session.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Health check database query failed", exc_info=True)
        db_status = "error"

    disk_status: dict[str, str] = {}
    for disk in disks:
        try:
            disk_status[disk.name] = "ok" if disk.exists("") else "missing"
        except Exception:
            logger.warning("Health check failed for disk %s", disk.name, exc_info=True)
            disk_status[disk.name] = "error"

    healthy = db_status == "ok" and all(s == "ok" for s in disk_status.values())
    return HealthResponse(
        status="ok" if healthy else "degraded",
        version=VERSION,
        database=db_status,
        disks=disk_status,
    )
