"""Upload API endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse, JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import get_disks, get_responder, get_session, get_settings
from backend.api.responses import Responder
from backend.config import Settings
from backend.models.upload import FileType, Upload
from backend.schemas.upload import UploadResponse, UploadUpdate
from backend.services.image_service import thumbnail_path
from backend.services.upload_service import (
    NewUpload,
    delete_upload,
    get_upload,
    list_uploads,
    store_upload,
    store_uploads,
    update_upload,
    upload_statistics,
)
from backend.storage.registry import DiskRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/uploads", tags=["uploads"])


async def _require_upload(session: AsyncSession, upload_id: int) -> Upload:
    upload = await get_upload(session, upload_id)
    if upload is None:
        raise HTTPException(status_code=404, detail="Upload not found")
    return upload


@router.get("")
async def list_uploads_endpoint(
    session: Annotated[AsyncSession, Depends(get_session)],
    responder: Annotated[Responder, Depends(get_responder)],
    user_id: int | None = Query(None),
    file_type: FileType | None = Query(None),
    disk: str | None = Query(None, max_length=50),
    search: str | None = Query(None, max_length=255),
    page: int = Query(1, ge=1),
    per_page: int = Query(15, ge=1, le=100),
) -> JSONResponse:
    """List live uploads, newest first."""
    uploads, total = await list_uploads(
        session,
        user_id=user_id,
        file_type=file_type,
        disk=disk,
        search=search,
        page=page,
        per_page=per_page,
    )
    return await responder.paginated(
        [UploadResponse.from_model(u) for u in uploads],
        total=total,
        page=page,
        per_page=per_page,
        message="Uploads retrieved successfully",
    )


def _thumbnail_sizes(settings: Settings) -> dict[str, int]:
    return dict(settings.thumbnail_sizes) if settings.generate_thumbnails else {}


async def _read_limited(file: UploadFile, max_bytes: int) -> bytes | None:
    """Read an uploaded file, or return None if it exceeds max_bytes."""
    data = await file.read(max_bytes + 1)
    if len(data) > max_bytes:
        return None
    return data


@router.post("", status_code=201)
async def create_upload_endpoint(
    session: Annotated[AsyncSession, Depends(get_session)],
    disks: Annotated[DiskRegistry, Depends(get_disks)],
    settings: Annotated[Settings, Depends(get_settings)],
    responder: Annotated[Responder, Depends(get_responder)],
    file: Annotated[UploadFile, File()],
    user_id: Annotated[int | None, Form()] = None,
    disk: Annotated[str | None, Form(max_length=50)] = None,
    folder: Annotated[str | None, Form(max_length=255)] = None,
    is_public: Annotated[bool, Form()] = False,
    generate_thumbnails: Annotated[bool, Form()] = True,
) -> JSONResponse:
    """Store an uploaded file and register it."""
    data = await _read_limited(file, settings.upload_max_bytes)
    if data is None:
        return await responder.error(
            "File upload failed: file is too large", {"file": "File is too large"}, 413
        )

    new = NewUpload(
        data=data,
        original_name=file.filename or "upload",
        mime_type=file.content_type or "application/octet-stream",
        disk=disk or settings.default_disk,
        folder=folder or settings.uploads_prefix,
        user_id=user_id,
        is_public=is_public,
        generate_thumbnails=generate_thumbnails,
    )
    try:
        upload = await store_upload(
            session,
            disks,
            new,
            max_bytes=settings.upload_max_bytes,
            thumbnail_sizes=_thumbnail_sizes(settings),
        )
    except ValueError as exc:
        return await responder.error(f"File upload failed: {exc}", None, 422)

    return await responder.success(
        UploadResponse.from_model(upload), "File uploaded successfully", status_code=201
    )


@router.post("/multiple", status_code=201)
async def create_uploads_endpoint(
    session: Annotated[AsyncSession, Depends(get_session)],
    disks: Annotated[DiskRegistry, Depends(get_disks)],
    settings: Annotated[Settings, Depends(get_settings)],
    responder: Annotated[Responder, Depends(get_responder)],
    files: Annotated[list[UploadFile], File()],
    user_id: Annotated[int | None, Form()] = None,
    disk: Annotated[str | None, Form(max_length=50)] = None,
    folder: Annotated[str | None, Form(max_length=255)] = None,
    is_public: Annotated[bool, Form()] = False,
    generate_thumbnails: Annotated[bool, Form()] = True,
) -> JSONResponse:
    """Store several files in one request.

    Rejected files are reported under ``failed`` and do not stop the others.
    """
    if len(files) > settings.max_files_per_request:
        return await responder.error(
            f"File upload failed: at most {settings.max_files_per_request} files per request",
            {"files": f"Too many files ({len(files)})"},
            422,
        )

    batch: list[NewUpload] = []
    failed: dict[str, str] = {}
    for file in files:
        name = file.filename or "upload"
        data = await _read_limited(file, settings.upload_max_bytes)
        if data is None:
            failed[name] = "File is too large"
            continue
        batch.append(
            NewUpload(
                data=data,
                original_name=name,
                mime_type=file.content_type or "application/octet-stream",
                disk=disk or settings.default_disk,
                folder=folder or settings.uploads_prefix,
                user_id=user_id,
                is_public=is_public,
                generate_thumbnails=generate_thumbnails,
            )
        )

    uploads, rejected = await store_uploads(
        session,
        disks,
        batch,
        max_bytes=settings.upload_max_bytes,
        thumbnail_sizes=_thumbnail_sizes(settings),
    )
    failed.update(rejected)
    if not uploads:
        return await responder.error("File upload failed: no file was accepted", failed, 422)

    return await responder.success(
        {"uploads": [UploadResponse.from_model(u) for u in uploads], "failed": failed},
        "Files uploaded successfully",
        status_code=201,
    )


@router.get("/statistics")
async def statistics_endpoint(
    session: Annotated[AsyncSession, Depends(get_session)],
    responder: Annotated[Responder, Depends(get_responder)],
    user_id: int | None = Query(None),
) -> JSONResponse:
    """Summarize live uploads."""
    stats = await upload_statistics(session, user_id=user_id)
    return await responder.success(stats, "Upload statistics retrieved successfully")


@router.get("/{upload_id}")
async def get_upload_endpoint(
    upload_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
    responder: Annotated[Responder, Depends(get_responder)],
) -> JSONResponse:
    """Get a single upload."""
    upload = await _require_upload(session, upload_id)
    return await responder.success(
        UploadResponse.from_model(upload), "Upload retrieved successfully"
    )


@router.patch("/{upload_id}")
async def update_upload_endpoint(
    upload_id: int,
    body: UploadUpdate,
    session: Annotated[AsyncSession, Depends(get_session)],
    responder: Annotated[Responder, Depends(get_responder)],
) -> JSONResponse:
    """Update an upload's display name, visibility or metadata."""
    upload = await _require_upload(session, upload_id)
    upload = await update_upload(
        session,
        upload,
        original_name=body.original_name,
        is_public=body.is_public,
        metadata=body.metadata,
    )
    return await responder.success(UploadResponse.from_model(upload), "Upload updated successfully")


@router.delete("/{upload_id}")
async def delete_upload_endpoint(
    upload_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
    disks: Annotated[DiskRegistry, Depends(get_disks)],
    responder: Annotated[Responder, Depends(get_responder)],
) -> JSONResponse:
    """Delete an upload's file and soft-delete its record."""
    upload = await _require_upload(session, upload_id)
    await delete_upload(session, disks, upload)
    return await responder.success(None, "Upload deleted successfully")


@router.get("/{upload_id}/download")
async def download_upload_endpoint(
    upload_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
    disks: Annotated[DiskRegistry, Depends(get_disks)],
) -> FileResponse:
    """Stream the stored file as an attachment."""
    upload = await _require_upload(session, upload_id)
    disk = disks.get(upload.disk)
    if not disk.exists(upload.file_path):
        logger.warning("Upload %d is registered but missing from disk %s", upload.id, upload.disk)
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(
        disk.absolute_path(upload.file_path),
        media_type=upload.mime_type,
        filename=upload.original_name,
    )


@router.get("/{upload_id}/thumbnail")
@router.get("/{upload_id}/thumbnail/{size}")
async def thumbnail_endpoint(
    upload_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
    disks: Annotated[DiskRegistry, Depends(get_disks)],
    size: str = "thumb",
) -> FileResponse:
    """Stream one of an image upload's thumbnails."""
    upload = await _require_upload(session, upload_id)
    if upload.file_type != FileType.IMAGE:
        raise HTTPException(status_code=400, detail="File is not an image")

    path = upload.thumbnail_paths.get(size)
    disk = disks.get(upload.disk)
    if path is None or path != thumbnail_path(upload.file_path, size) or not disk.exists(path):
        raise HTTPException(status_code=404, detail="Thumbnail not found")
    return FileResponse(disk.absolute_path(path), media_type=upload.mime_type)
