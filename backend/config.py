"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Campus admin backend settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    debug: bool = False
    expose_docs: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///data/db/campus.db"

    # Storage
    storage_root: Path = Path("./storage")
    # disk name -> directory relative to storage_root
    storage_disks: dict[str, str] = Field(
        default_factory=lambda: {"local": "app", "public": "app/public"}
    )
    default_disk: str = "public"
    uploads_prefix: str = "uploads"
    upload_max_bytes: int = Field(default=10 * 1024 * 1024, ge=1)
    max_files_per_request: int = Field(default=10, ge=1)

    # Images
    generate_thumbnails: bool = True
    # size name -> square edge in pixels
    thumbnail_sizes: dict[str, int] = Field(
        default_factory=lambda: {"thumb": 150, "small": 300, "medium": 600}
    )

    # Reconciliation
    reconcile_disks: list[str] = Field(default_factory=lambda: ["public", "local"])
    thumbnail_marker: str = "/thumbnails/"

    # Translation
    translation_enabled: bool = True
    translation_endpoint: str = "https://translate.googleapis.com/translate_a/single"
    translation_timeout_seconds: float = Field(default=10.0, gt=0)
    translation_cache_minutes: int = Field(default=1440, ge=1)
    translation_cache_max_entries: int = Field(default=10_000, ge=1)
    default_language: str = "en"
    translate_fields: list[str] = Field(
        default_factory=lambda: ["message", "title", "description", "name", "remark", "remarks"]
    )

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)

    # CORS
    cors_origins: list[str] = Field(default_factory=list)

    def disk_root(self, name: str) -> Path:
        """Resolve the root directory of a configured disk."""
        return self.storage_root / self.storage_disks[name]

    def validate_storage(self) -> None:
        """Validate that disk references point at configured disks."""
        violations: list[str] = []
        if self.default_disk not in self.storage_disks:
            violations.append(f"DEFAULT_DISK {self.default_disk!r} is not a configured disk")
        unknown = [name for name in self.reconcile_disks if name not in self.storage_disks]
        if unknown:
            violations.append(f"RECONCILE_DISKS references unknown disks: {', '.join(unknown)}")
        if not self.uploads_prefix.strip("/"):
            violations.append("UPLOADS_PREFIX must not be empty")
        bad_sizes = [name for name, edge in self.thumbnail_sizes.items() if edge < 1]
        if bad_sizes:
            violations.append(f"THUMBNAIL_SIZES must be positive: {', '.join(bad_sizes)}")

        if violations:
            joined = "; ".join(violations)
            raise ValueError(f"Invalid storage configuration: {joined}")
