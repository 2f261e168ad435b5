import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

"""
Copy the JSON file store (BARCODES_FILE) into the database.

- New barcodes are created with the file's quantity and timestamps, plus one log entry (delta = quantity).
- Barcodes already present in the database are left untouched.

Run:
- inside backend/: `uv run python scripts/import_barcodes_file.py --file data/barcodes.json`
- from repo root: `uv run python backend/scripts/import_barcodes_file.py`
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import select  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from core.config import settings  # noqa: E402
from core.log_config import configure_logging  # noqa: E402
from db.database import async_session_maker, create_db_and_tables  # noqa: E402
from db.file_store import BarcodeFileStore  # noqa: E402
from db.scan import ScanRecord, utcnow  # noqa: E402
from db.scan_log import SOURCE_TABLE_SCANS, ScanLogEntry  # noqa: E402

logger = logging.getLogger("scripts.import_barcodes_file")


def _parse_ts(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


async def import_entries(db: AsyncSession, entries: dict, default_responsible: str) -> tuple[int, int]:
    """Returns (created, skipped)."""
    existing_res = await db.execute(select(ScanRecord.barcode))
    existing = {row[0] for row in existing_res.all()}

    created = 0
    skipped = 0
    for barcode, entry in entries.items():
        barcode = (barcode or "").strip()
        if not barcode or barcode in existing:
            skipped += 1
            continue

        now = utcnow()
        first_scan = _parse_ts(entry.get("first_scan")) or now
        last_scan = _parse_ts(entry.get("last_scan")) or first_scan
        quantity = max(0, int(entry.get("quantity") or 0))
        responsible = entry.get("responsible") or default_responsible

        record = ScanRecord(
            barcode=barcode,
            quantity=quantity,
            first_scan=first_scan,
            last_scan=last_scan,
            responsible=responsible,
        )
        db.add(record)
        await db.flush()
        db.add(
            ScanLogEntry(
                scan_id=record.id,
                source_table=SOURCE_TABLE_SCANS,
                barcode=barcode,
                delta=quantity,
                quantity_after=quantity,
                actor_name=responsible,
            )
        )
        existing.add(barcode)
        created += 1

    await db.commit()
    return created, skipped


async def run(path: str, responsible: str) -> None:
    if async_session_maker is None:
        raise SystemExit("DATABASE_URL is not set")

    entries = BarcodeFileStore(path).read()
    logger.info("Read %d barcodes from %s", len(entries), path)

    await create_db_and_tables()
    async with async_session_maker() as db:
        created, skipped = await import_entries(db, entries, responsible)
    print(f"Imported scans: {created}, skipped: {skipped}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--file", default=settings.barcodes_file, help="Path of the JSON barcodes file")
    parser.add_argument("--responsible", default="import", help="Actor name for entries without one")
    args = parser.parse_args()

    configure_logging()
    asyncio.run(run(path=args.file, responsible=args.responsible))
