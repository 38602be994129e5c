"""Reconcile the upload registry against the files actually on disk.

Two independent passes:

- missing files: live records whose file no longer exists on their disk are
  soft-deleted;
- orphaned files: files under the uploads prefix of a scanned disk that no
  live record references are deleted from the disk.

Both passes accept ``dry_run``, in which case they only report what they
would do.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlalchemy import select

from backend.models.upload import Upload

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from backend.storage.registry import DiskRegistry

logger = logging.getLogger(__name__)

DEFAULT_UPLOADS_PREFIX = "uploads"
DEFAULT_THUMBNAIL_MARKER = "/thumbnails/"


@dataclass
class ReconcileReport:
    """Outcome of one reconciliation pass."""

    count: int = 0
    actions: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def record(self, action: str) -> None:
        self.count += 1
        self.actions.append(action)
        logger.info(action)


@dataclass
class ReconcileSummary:
    """Outcome of a full reconciliation run."""

    dry_run: bool
    missing_files: ReconcileReport
    orphaned_files: ReconcileReport

    @property
    def ok(self) -> bool:
        """Divergence is expected; only disk failures make a run unsuccessful."""
        return not self.missing_files.errors and not self.orphaned_files.errors

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


def _summarize(count: int, dry_run: bool, noun: str) -> None:
    if count == 0:
        logger.info("No orphaned %s found.", noun)
    else:
        action = "Would delete" if dry_run else "Deleted"
        logger.info("%s %d orphaned %s.", action, count, noun)


async def reconcile_missing_files(
    session: AsyncSession, disks: DiskRegistry, *, dry_run: bool
) -> ReconcileReport:
    """Remove registry records whose file is gone from its disk.

    Each record gets exactly one existence check. Storage errors and records
    naming an unconfigured disk propagate to the caller.
    """
    logger.info("Checking for database records with missing files...")
    report = ReconcileReport()

    result = await session.execute(
        select(Upload).where(Upload.deleted_at.is_(None)).order_by(Upload.id)
    )
    uploads = result.scalars().all()

    for upload in uploads:
        disk = disks.get(upload.disk)
        if disk.exists(upload.file_path):
            continue
        if dry_run:
            report.record(f"Would delete record: {upload.original_name} (ID: {upload.id})")
        else:
            upload.soft_delete()
            await session.commit()
            report.record(f"Deleted record: {upload.original_name} (ID: {upload.id})")

    _summarize(report.count, dry_run, "database records")
    return report


async def _find_live_upload(
    session: AsyncSession, disk_name: str, file_path: str
) -> Upload | None:
    result = await session.execute(
        select(Upload)
        .where(
            Upload.disk == disk_name,
            Upload.file_path == file_path,
            Upload.deleted_at.is_(None),
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def reconcile_orphaned_files(
    session: AsyncSession,
    disks: DiskRegistry,
    disk_names: Sequence[str],
    *,
    dry_run: bool,
    prefix: str = DEFAULT_UPLOADS_PREFIX,
    thumbnail_marker: str = DEFAULT_THUMBNAIL_MARKER,
) -> ReconcileReport:
    """Delete files under the uploads prefix that no live record references.

    Disks are scanned in the given order. A disk without the prefix is
    skipped. A failure on one disk is logged and recorded in
    ``report.errors``; the remaining disks are still scanned.
    """
    logger.info("Checking for orphaned files...")
    report = ReconcileReport()

    for disk_name in disk_names:
        try:
            disk = disks.get(disk_name)
            if not disk.exists(prefix):
                logger.debug("Disk %s has no %s directory, skipping", disk_name, prefix)
                continue

            for file_path in disk.all_files(prefix):
                # Generated thumbnails have no record of their own
                if thumbnail_marker in file_path:
                    continue

                if await _find_live_upload(session, disk_name, file_path) is not None:
                    continue

                if dry_run:
                    report.record(f"Would delete file: {file_path}")
                else:
                    disk.delete(file_path)
                    report.record(f"Deleted file: {file_path}")
        except Exception as exc:
            logger.error("Orphan scan failed on disk %s: %s", disk_name, exc, exc_info=exc)
            report.errors.append(f"{disk_name}: {exc}")

    _summarize(report.count, dry_run, "files")
    return report


async def reconcile(
    session: AsyncSession,
    disks: DiskRegistry,
    disk_names: Sequence[str],
    *,
    dry_run: bool,
    prefix: str = DEFAULT_UPLOADS_PREFIX,
    thumbnail_marker: str = DEFAULT_THUMBNAIL_MARKER,
) -> ReconcileSummary:
    """Run the missing-files pass, then the orphaned-files pass."""
    logger.info("Starting cleanup process...")

    missing = await reconcile_missing_files(session, disks, dry_run=dry_run)
    orphaned = await reconcile_orphaned_files(
        session,
        disks,
        disk_names,
        dry_run=dry_run,
        prefix=prefix,
        thumbnail_marker=thumbnail_marker,
    )

    logger.info("Cleanup process completed!")
    return ReconcileSummary(dry_run=dry_run, missing_files=missing, orphaned_files=orphaned)
