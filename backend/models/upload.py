"""Uploaded file registry model."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from backend.models.base import Base
from backend.services.datetime_service import now_utc

_DOCUMENT_MIME_TYPES = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.ms-powerpoint",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "text/plain",
        "text/csv",
        "application/rtf",
    }
)

_ARCHIVE_MIME_TYPES = frozenset(
    {
        "application/zip",
        "application/x-rar-compressed",
        "application/x-7z-compressed",
        "application/x-tar",
        "application/gzip",
    }
)

_IMAGE_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "image/svg+xml",
        "image/bmp",
        "image/tiff",
    }
)

_VIDEO_MIME_TYPES = frozenset(
    {"video/mp4", "video/avi", "video/quicktime", "video/x-msvideo", "video/webm", "video/ogg"}
)

_AUDIO_MIME_TYPES = frozenset(
    {"audio/mpeg", "audio/wav", "audio/ogg", "audio/mp4", "audio/webm", "audio/flac"}
)


class FileType(enum.StrEnum):
    """Declared kind of an uploaded file."""

    IMAGE = "image"
    DOCUMENT = "document"
    VIDEO = "video"
    AUDIO = "audio"
    ARCHIVE = "archive"
    OTHER = "other"

    @classmethod
    def from_mime_type(cls, mime_type: str) -> FileType:
        """Classify a MIME type."""
        if mime_type.startswith("image/"):
            return cls.IMAGE
        if mime_type.startswith("video/"):
            return cls.VIDEO
        if mime_type.startswith("audio/"):
            return cls.AUDIO
        if mime_type in _DOCUMENT_MIME_TYPES:
            return cls.DOCUMENT
        if mime_type in _ARCHIVE_MIME_TYPES:
            return cls.ARCHIVE
        return cls.OTHER

    @property
    def allowed_mime_types(self) -> frozenset[str]:
        return _ALLOWED_MIME_TYPES[self]


_ALLOWED_MIME_TYPES: dict[FileType, frozenset[str]] = {
    FileType.IMAGE: _IMAGE_MIME_TYPES,
    FileType.DOCUMENT: _DOCUMENT_MIME_TYPES,
    FileType.VIDEO: _VIDEO_MIME_TYPES,
    FileType.AUDIO: _AUDIO_MIME_TYPES,
    FileType.ARCHIVE: _ARCHIVE_MIME_TYPES,
    FileType.OTHER: frozenset(),
}


def is_allowed_mime_type(mime_type: str) -> bool:
    """Return True if uploads of this MIME type are accepted."""
    return mime_type in FileType.from_mime_type(mime_type).allowed_mime_types


class Upload(Base):
    """A previously uploaded file. The bytes live on a storage disk."""

    __tablename__ = "uploads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    disk: Mapped[str] = mapped_column(String(50), nullable=False)
    folder: Mapped[str] = mapped_column(Text, nullable=False, default="uploads")
    file_type: Mapped[str] = mapped_column(String(20), nullable=False, default=FileType.OTHER)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # "metadata" is reserved on declarative classes
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now_utc
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now_utc
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now_utc, onupdate=now_utc
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index(
            "uq_uploads_disk_path_live",
            "disk",
            "file_path",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
        Index("idx_uploads_user_id", "user_id"),
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def thumbnail_paths(self) -> dict[str, str]:
        """Thumbnail size -> path, as recorded by the image pipeline."""
        thumbnails = (self.metadata_ or {}).get("thumbnails")
        if not isinstance(thumbnails, dict):
            return {}
        return {str(size): str(path) for size, path in thumbnails.items()}

    def soft_delete(self) -> None:
        """Hide the record from normal queries without purging it."""
        self.deleted_at = now_utc()
