"""Image inspection and thumbnail generation for uploaded images."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from PIL import Image, ImageOps

if TYPE_CHECKING:
    from collections.abc import Mapping

    from backend.storage.disk import StorageDisk

logger = logging.getLogger(__name__)

# size name -> edge length of the square thumbnail, in pixels
THUMBNAIL_SIZES: dict[str, int] = {"thumb": 150, "small": 300, "medium": 600}

THUMBNAIL_QUALITY = 80

_FALLBACK_FORMAT = "PNG"
# thumbnails keep the source format when Pillow can write it
_WRITABLE_FORMATS = frozenset({"JPEG", "PNG", "GIF", "WEBP", "BMP", "TIFF"})


def thumbnail_path(file_path: str, size: str) -> str:
    """Return where the ``size`` thumbnail of ``file_path`` is stored.

    ``uploads/image/2026/10/cat_<uuid>.png`` with ``"small"`` ->
    ``uploads/image/2026/10/thumbnails/cat_<uuid>_small.png``.
    """
    original = PurePosixPath(file_path)
    return str(original.parent / "thumbnails" / f"{original.stem}_{size}{original.suffix}")


@dataclass
class ImageInfo:
    """Dimensions of a stored image and the thumbnails written for it."""

    width: int
    height: int
    thumbnails: dict[str, str] = field(default_factory=dict)

    def as_metadata(self) -> dict[str, object]:
        metadata: dict[str, object] = {"width": self.width, "height": self.height}
        if self.thumbnails:
            metadata["thumbnails"] = dict(self.thumbnails)
        return metadata


def _encode(image: Image.Image, fmt: str) -> bytes:
    buf = io.BytesIO()
    if fmt == "JPEG":
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        image.save(buf, format=fmt, quality=THUMBNAIL_QUALITY, optimize=True)
    else:
        image.save(buf, format=fmt)
    return buf.getvalue()


def process_image(
    disk: StorageDisk,
    file_path: str,
    data: bytes,
    sizes: Mapping[str, int] = THUMBNAIL_SIZES,
) -> ImageInfo | None:
    """Read image dimensions and write square thumbnails next to the file.

    Returns None when the bytes are not an image Pillow can decode. A size
    that fails to render is logged and left out of the result.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            image = img.copy()
            fmt = img.format or _FALLBACK_FORMAT
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        logger.warning("Image processing failed for %s: %s", file_path, exc)
        return None

    if fmt not in _WRITABLE_FORMATS:
        fmt = _FALLBACK_FORMAT
    info = ImageInfo(width=image.width, height=image.height)

    for size, edge in sizes.items():
        target = thumbnail_path(file_path, size)
        try:
            thumb = ImageOps.fit(image, (edge, edge), Image.Resampling.LANCZOS)
            disk.put(target, _encode(thumb, fmt))
        except (OSError, ValueError) as exc:
            logger.error("Thumbnail generation failed for size %s of %s: %s", size, file_path, exc)
            continue
        info.thumbnails[size] = target

    logger.debug(
        "Processed image %s (%dx%d), thumbnails: %s",
        file_path,
        info.width,
        info.height,
        ", ".join(info.thumbnails) or "none",
    )
    return info
