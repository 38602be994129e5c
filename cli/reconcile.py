"""CLI for reconciling the upload registry with storage disks."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict

from backend.config import Settings
from backend.database import create_engine, create_tables
from backend.services.reconcile_service import ReconcileSummary, reconcile
from backend.storage.registry import DiskRegistry

logger = logging.getLogger("cli.reconcile")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)-8s %(message)s",
        stream=sys.stderr,
        force=True,
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


async def run_reconcile(
    settings: Settings,
    *,
    dry_run: bool,
    disk_names: list[str] | None = None,
) -> ReconcileSummary:
    """Open the database, run both reconciliation passes and close everything."""
    settings.validate_storage()
    engine, session_factory = create_engine(settings)
    try:
        await create_tables(engine)
        disks = DiskRegistry.from_settings(settings)
        async with session_factory() as session:
            return await reconcile(
                session,
                disks,
                disk_names if disk_names else settings.reconcile_disks,
                dry_run=dry_run,
                prefix=settings.uploads_prefix,
                thumbnail_marker=settings.thumbnail_marker,
            )
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None, settings: Settings | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="campus-reconcile",
        description="Remove upload records whose files are gone and files no record references",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be deleted without deleting anything",
    )
    parser.add_argument("--json", action="store_true", help="Print the summary as JSON")
    parser.add_argument(
        "--disk",
        action="append",
        dest="disks",
        metavar="NAME",
        help="Disk to scan for orphaned files (repeatable; default: configured disks)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)
    if settings is None:
        settings = Settings()

    try:
        summary = asyncio.run(run_reconcile(settings, dry_run=args.dry_run, disk_names=args.disks))
    except Exception as exc:
        logger.error("Reconciliation failed: %s", exc)
        sys.exit(1)

    if args.json:
        print(json.dumps({**asdict(summary), "ok": summary.ok}, indent=2))
    sys.exit(summary.exit_code)


if __name__ == "__main__":
    main()
