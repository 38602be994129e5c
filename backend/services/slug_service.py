"""Slug generation for stored upload file names and folders."""

from __future__ import annotations

import re
import unicodedata
import uuid
from datetime import date
from pathlib import PurePosixPath

MAX_SLUG_LENGTH = 80


def generate_file_slug(name: str) -> str:
    """Generate a filesystem-safe slug from an original file name stem.

    - Normalize unicode to ASCII (NFKD)
    - Lowercase, strip
    - Replace non-alphanumeric chars with hyphens
    - Collapse multiple hyphens
    - Strip leading/trailing hyphens
    - Truncate to 80 chars (don't cut mid-word if possible)
    - Return "file" for empty/whitespace-only input
    """
    text = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    text = text.lower().strip()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    text = text.strip("-")

    if not text:
        return "file"

    if len(text) > MAX_SLUG_LENGTH:
        truncated = text[:MAX_SLUG_LENGTH]
        last_hyphen = truncated.rfind("-")
        if last_hyphen > 0:
            truncated = truncated[:last_hyphen]
        text = truncated.rstrip("-")

    return text


def normalize_folder(folder: str) -> str:
    """Normalize a user-supplied folder to a relative posix path.

    Raises ValueError for empty folders or folders containing ``..``.
    """
    parts = [p for p in PurePosixPath(folder.strip()).parts if p not in ("/", ".")]
    if not parts:
        raise ValueError("Folder must not be empty")
    if ".." in parts:
        raise ValueError(f"Invalid folder: {folder}")
    return "/".join(parts)


def generate_unique_file_name(original_name: str) -> str:
    """Return ``{slug}_{uuid}.{ext}`` for an original file name."""
    original = PurePosixPath(original_name.replace("\\", "/")).name
    suffix = PurePosixPath(original).suffix.lower()
    stem = original[: -len(suffix)] if suffix else original
    return f"{generate_file_slug(stem)}_{uuid.uuid4()}{suffix}"


def generate_folder_path(base_folder: str, file_type: str, today: date | None = None) -> str:
    """Return ``{base}/{file_type}/{YYYY}/{MM}``."""
    day = today or date.today()
    return f"{normalize_folder(base_folder)}/{file_type}/{day:%Y}/{day:%m}"

