"""Upload request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from backend.services.datetime_service import ensure_aware
from backend.services.upload_service import human_file_size

if TYPE_CHECKING:
    from backend.models.upload import Upload


class UploadResponse(BaseModel):
    """Upload detail response."""

    id: int
    user_id: int | None = None
    original_name: str
    file_name: str
    file_path: str
    file_type: str
    mime_type: str
    file_size: int = Field(ge=0)
    human_file_size: str
    disk: str
    folder: str
    is_public: bool
    download_url: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    thumbnails: dict[str, str] | None = None
    uploaded_at: datetime
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, upload: Upload) -> UploadResponse:
        thumbnails = upload.thumbnail_paths
        return cls(
            id=upload.id,
            user_id=upload.user_id,
            original_name=upload.original_name,
            file_name=upload.file_name,
            file_path=upload.file_path,
            file_type=upload.file_type,
            mime_type=upload.mime_type,
            file_size=upload.file_size,
            human_file_size=human_file_size(upload.file_size),
            disk=upload.disk,
            folder=upload.folder,
            is_public=upload.is_public,
            download_url=f"/api/uploads/{upload.id}/download",
            metadata=upload.metadata_ or {},
            thumbnails=thumbnails if upload.file_type == "image" and thumbnails else None,
            uploaded_at=ensure_aware(upload.uploaded_at),
            created_at=ensure_aware(upload.created_at),
            updated_at=ensure_aware(upload.updated_at),
        )


class UploadUpdate(BaseModel):
    """Request to update upload metadata."""

    original_name: str | None = Field(default=None, min_length=1, max_length=255)
    is_public: bool | None = None
    metadata: dict[str, Any] | None = None
