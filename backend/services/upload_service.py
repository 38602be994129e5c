"""Upload registry operations: store, list, update, delete, statistics."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select

from backend.models.upload import FileType, Upload, is_allowed_mime_type
from backend.services.datetime_service import format_iso
from backend.services.image_service import THUMBNAIL_SIZES, process_image, thumbnail_path
from backend.services.slug_service import generate_folder_path, generate_unique_file_name

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from backend.storage.registry import DiskRegistry

logger = logging.getLogger(__name__)

_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")

# written by the image pipeline, never by clients
_MANAGED_METADATA_KEYS = ("width", "height", "thumbnails")


def human_file_size(size: int) -> str:
    """Format a byte count, e.g. ``1536 -> "1.5 KB"``."""
    value = float(size)
    unit = 0
    while value > 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    rounded = round(value, 2)
    number = str(int(rounded)) if rounded == int(rounded) else str(rounded)
    return f"{number} {_SIZE_UNITS[unit]}"


@dataclass
class NewUpload:
    """An accepted file that is about to be stored."""

    data: bytes
    original_name: str
    mime_type: str
    disk: str
    folder: str = "uploads"
    user_id: int | None = None
    is_public: bool = False
    generate_thumbnails: bool = True


def validate_new_upload(upload: NewUpload, max_bytes: int) -> None:
    """Raise ValueError if the file may not be stored."""
    if not upload.data:
        raise ValueError("Uploaded file is empty")
    if len(upload.data) > max_bytes:
        raise ValueError(
            f"File size exceeds maximum allowed size of {human_file_size(max_bytes)}"
        )
    if not is_allowed_mime_type(upload.mime_type):
        raise ValueError(f"File MIME type not allowed: {upload.mime_type}")


async def store_upload(
    session: AsyncSession,
    disks: DiskRegistry,
    new: NewUpload,
    *,
    max_bytes: int,
    thumbnail_sizes: Mapping[str, int] = THUMBNAIL_SIZES,
) -> Upload:
    """Write the file to its disk and register it.

    Images are inspected and get square thumbnails unless
    ``new.generate_thumbnails`` is off. Every written file is removed again
    if the record cannot be committed.
    """
    validate_new_upload(new, max_bytes)
    disk = disks.get(new.disk)

    file_type = FileType.from_mime_type(new.mime_type)
    folder = generate_folder_path(new.folder, file_type.value)
    file_name = generate_unique_file_name(new.original_name)
    file_path = f"{folder}/{file_name}"

    disk.put(file_path, new.data)
    written = [file_path]
    metadata: dict[str, Any] = {}
    extension = PurePosixPath(new.original_name).suffix.lstrip(".")
    if extension:
        metadata["original_extension"] = extension.lower()
    if file_type is FileType.IMAGE and new.generate_thumbnails:
        info = process_image(disk, file_path, new.data, thumbnail_sizes)
        if info is not None:
            metadata.update(info.as_metadata())
            written.extend(info.thumbnails.values())

    upload = Upload(
        user_id=new.user_id,
        original_name=new.original_name,
        file_name=file_name,
        file_path=file_path,
        disk=new.disk,
        folder=folder,
        file_type=file_type.value,
        mime_type=new.mime_type,
        file_size=len(new.data),
        is_public=new.is_public,
        metadata_=metadata,
    )
    session.add(upload)
    try:
        await session.commit()
    except Exception:
        await session.rollback()
        for path in written:
            disk.delete(path)
        raise
    await session.refresh(upload)
    logger.info("Stored upload %d at %s:%s", upload.id, new.disk, file_path)
    return upload


async def store_uploads(
    session: AsyncSession,
    disks: DiskRegistry,
    batch: Sequence[NewUpload],
    *,
    max_bytes: int,
    thumbnail_sizes: Mapping[str, int] = THUMBNAIL_SIZES,
) -> tuple[list[Upload], dict[str, str]]:
    """Store several files, skipping the ones that are rejected.

    Returns the stored uploads and a map of rejected file name -> reason.
    """
    stored: list[Upload] = []
    rejected: dict[str, str] = {}
    for new in batch:
        try:
            stored.append(
                await store_upload(
                    session, disks, new, max_bytes=max_bytes, thumbnail_sizes=thumbnail_sizes
                )
            )
        except ValueError as exc:
            logger.warning("File upload failed for %s: %s", new.original_name, exc)
            rejected[new.original_name] = str(exc)
    return stored, rejected


def _live_uploads(
    *,
    user_id: int | None = None,
    file_type: FileType | None = None,
    disk: str | None = None,
    search: str | None = None,
) -> Any:
    stmt = select(Upload).where(Upload.deleted_at.is_(None))
    if user_id is not None:
        stmt = stmt.where(Upload.user_id == user_id)
    if file_type is not None:
        stmt = stmt.where(Upload.file_type == file_type.value)
    if disk is not None:
        stmt = stmt.where(Upload.disk == disk)
    if search:
        stmt = stmt.where(Upload.original_name.contains(search))
    return stmt


async def list_uploads(
    session: AsyncSession,
    *,
    user_id: int | None = None,
    file_type: FileType | None = None,
    disk: str | None = None,
    search: str | None = None,
    page: int = 1,
    per_page: int = 15,
) -> tuple[list[Upload], int]:
    """Return one page of live uploads, newest first, and the total match count."""
    stmt = _live_uploads(user_id=user_id, file_type=file_type, disk=disk, search=search)
    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = (await session.execute(count_stmt)).scalar_one()
    result = await session.execute(
        stmt.order_by(Upload.uploaded_at.desc(), Upload.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def get_upload(session: AsyncSession, upload_id: int) -> Upload | None:
    """Return a live upload by id."""
    upload = await session.get(Upload, upload_id)
    if upload is None or upload.is_deleted:
        return None
    return upload


async def update_upload(
    session: AsyncSession,
    upload: Upload,
    *,
    original_name: str | None = None,
    is_public: bool | None = None,
    metadata: dict[str, Any] | None = None,
) -> Upload:
    """Update the editable attributes of an upload.

    Replacing the metadata keeps the server-managed image entries
    (dimensions and thumbnails) of the stored record.
    """
    if original_name is not None:
        upload.original_name = original_name
    if is_public is not None:
        upload.is_public = is_public
    if metadata is not None:
        current = upload.metadata_ or {}
        merged = {k: v for k, v in metadata.items() if k not in _MANAGED_METADATA_KEYS}
        merged.update({k: current[k] for k in _MANAGED_METADATA_KEYS if k in current})
        upload.metadata_ = merged
    await session.commit()
    await session.refresh(upload)
    return upload


async def delete_upload(session: AsyncSession, disks: DiskRegistry, upload: Upload) -> None:
    """Delete the file and its thumbnails, then soft-delete the record.

    Only thumbnail paths derived from the upload's own file path are
    deleted; anything else recorded in the metadata is left alone.
    """
    disk = disks.get(upload.disk)
    disk.delete(upload.file_path)
    for size, path in upload.thumbnail_paths.items():
        if path != thumbnail_path(upload.file_path, size):
            logger.warning(
                "Ignoring %s thumbnail of upload %d outside its folder: %s", size, upload.id, path
            )
            continue
        if disk.delete(path):
            logger.debug("Deleted %s thumbnail of upload %d", size, upload.id)
    upload.soft_delete()
    await session.commit()
    logger.info("Deleted upload %d (%s:%s)", upload.id, upload.disk, upload.file_path)


async def _grouped_totals(
    session: AsyncSession, column: Any, user_id: int | None
) -> dict[str, dict[str, Any]]:
    stmt = (
        select(column, func.count(Upload.id), func.coalesce(func.sum(Upload.file_size), 0))
        .where(Upload.deleted_at.is_(None))
        .group_by(column)
    )
    if user_id is not None:
        stmt = stmt.where(Upload.user_id == user_id)
    rows = (await session.execute(stmt)).all()
    return {
        str(key): {
            "count": count,
            "total_size": total_size,
            "human_size": human_file_size(total_size),
        }
        for key, count, total_size in rows
    }


async def upload_statistics(session: AsyncSession, user_id: int | None = None) -> dict[str, Any]:
    """Summarize live uploads, optionally for a single owner."""
    totals = select(func.count(Upload.id), func.coalesce(func.sum(Upload.file_size), 0)).where(
        Upload.deleted_at.is_(None)
    )
    if user_id is not None:
        totals = totals.where(Upload.user_id == user_id)
    total_uploads, total_size = (await session.execute(totals)).one()

    recent_stmt = _live_uploads(user_id=user_id).order_by(Upload.uploaded_at.desc()).limit(5)
    recent = (await session.execute(recent_stmt)).scalars().all()

    return {
        "total_uploads": total_uploads,
        "total_size": total_size,
        "human_total_size": human_file_size(total_size),
        "by_type": await _grouped_totals(session, Upload.file_type, user_id),
        "by_disk": await _grouped_totals(session, Upload.disk, user_id),
        "recent_uploads": [
            {
                "id": u.id,
                "original_name": u.original_name,
                "file_type": u.file_type,
                "file_size": human_file_size(u.file_size),
                "uploaded_at": format_iso(u.uploaded_at),
            }
            for u in recent
        ],
    }
