"""
Delete scan records together with their log entries.

Without arguments every barcode is wiped; `--barcode` (repeatable) limits the reset
to the given codes, e.g. after a test run on the shop floor.

Run:
- inside backend/: `uv run python scripts/reset_scans.py [--barcode ABC123 ...]`
- from repo root: `uv run python backend/scripts/reset_scans.py`
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import delete  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from core.log_config import configure_logging  # noqa: E402
from db.database import async_session_maker  # noqa: E402
from db.scan import ScanRecord  # noqa: E402
from db.scan_log import ScanLogEntry  # noqa: E402

logger = logging.getLogger("scripts.reset_scans")


async def reset_scans(db: AsyncSession, barcodes: Optional[Sequence[str]] = None) -> tuple[int, int]:
    """Returns (log entries deleted, records deleted). Log rows go first since they reference scans."""
    delete_logs = delete(ScanLogEntry)
    delete_scans = delete(ScanRecord)
    if barcodes:
        codes = sorted({b.strip() for b in barcodes if b and b.strip()})
        delete_logs = delete_logs.where(ScanLogEntry.barcode.in_(codes))
        delete_scans = delete_scans.where(ScanRecord.barcode.in_(codes))

    res_logs = await db.execute(delete_logs)
    res_scans = await db.execute(delete_scans)
    await db.commit()
    return int(res_logs.rowcount or 0), int(res_scans.rowcount or 0)


async def run(barcodes: Optional[Sequence[str]]) -> None:
    if async_session_maker is None:
        raise SystemExit("DATABASE_URL is not set")

    async with async_session_maker() as db:
        logs_n, scans_n = await reset_scans(db, barcodes)

    scope = ", ".join(barcodes) if barcodes else "all barcodes"
    logger.info("Reset %s: %d log entries, %d records deleted", scope, logs_n, scans_n)


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--barcode", action="append", help="Only reset this barcode (repeatable)")
    args = parser.parse_args()

    configure_logging()
    asyncio.run(run(args.barcode))
