"""SQLAlchemy ORM models for the campus admin backend."""

from backend.models.base import Base
from backend.models.upload import FileType, Upload

__all__ = [
    "Base",
    "FileType",
    "Upload",
]
