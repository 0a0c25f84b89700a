"""
Orphaned-file sweep.

A submission writes its documents before committing the database rows.  If
the commit fails the files stay on disk with nothing referencing them.  This
sweep deletes files in the upload directory that

- no ``investor_files.file_path`` references, and
- were last modified more than ``ORPHAN_SWEEP_GRACE_SECONDS`` ago, so a
  request that has written its files but not yet committed is never raced.

Usage (e.g. from cron):
    python -m investor_intake.maintenance
"""

import asyncio
import logging
import os
import time
from dataclasses import dataclass, field
from functools import partial
from typing import Iterable, List, Optional, Set

from sqlalchemy.ext.asyncio import async_sessionmaker

from investor_intake.core.config import settings
from investor_intake.core.logging import setup_logging
from investor_intake.repositories.investor_file_repo import InvestorFileRepository

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    deleted: List[str] = field(default_factory=list)
    referenced: int = 0
    too_recent: int = 0
    failed: List[str] = field(default_factory=list)


def _canonical(path: str) -> str:
    return os.path.normcase(os.path.abspath(path))


def _scan_and_delete(
    upload_dir: str, referenced: Set[str], cutoff: float, dry_run: bool
) -> SweepReport:
    report = SweepReport()
    if not os.path.isdir(upload_dir):
        return report

    with os.scandir(upload_dir) as entries:
        for entry in entries:
            # Flat layout: subdirectories (e.g. seed samples) are not swept.
            if not entry.is_file(follow_symlinks=False):
                continue
            if _canonical(entry.path) in referenced:
                report.referenced += 1
                continue
            if entry.stat(follow_symlinks=False).st_mtime > cutoff:
                report.too_recent += 1
                continue
            if not dry_run:
                try:
                    os.remove(entry.path)
                except OSError:
                    logger.warning("Could not delete orphaned file %s", entry.path, exc_info=True)
                    report.failed.append(entry.path)
                    continue
            report.deleted.append(entry.path)
    return report


async def sweep_orphaned_files(
    session_factory: async_sessionmaker,
    upload_dir: Optional[str] = None,
    grace_seconds: Optional[int] = None,
    now: Optional[float] = None,
    dry_run: bool = False,
) -> SweepReport:
    """
    Delete unreferenced files older than the grace period.

    ``now`` is a POSIX timestamp (defaults to the current time).  With
    ``dry_run`` the report lists what would be deleted and nothing is removed.
    """
    upload_dir = upload_dir or settings.UPLOAD_DIR
    if grace_seconds is None:
        grace_seconds = settings.ORPHAN_SWEEP_GRACE_SECONDS
    cutoff = (now if now is not None else time.time()) - grace_seconds

    async with session_factory() as session:
        paths: Iterable[str] = await InvestorFileRepository(session).get_stored_paths()
    referenced = {_canonical(p) for p in paths}

    loop = asyncio.get_running_loop()
    report = await loop.run_in_executor(
        None, partial(_scan_and_delete, upload_dir, referenced, cutoff, dry_run)
    )

    logger.info(
        "Orphan sweep of %s: %d deleted, %d referenced, %d within grace period, %d failed%s",
        upload_dir,
        len(report.deleted),
        report.referenced,
        report.too_recent,
        len(report.failed),
        " (dry run)" if dry_run else "",
    )
    return report


async def main() -> None:
    from investor_intake.db.session import AsyncSessionLocal, engine

    try:
        await sweep_orphaned_files(AsyncSessionLocal)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(main())
