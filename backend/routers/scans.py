import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.counters import ScanRejected, initial_quantity
from db.database import STORE_UNAVAILABLE_ERRORS, StoreUnavailable, get_async_session
from db.scan import ScanRecord, utcnow
from db.scan_log import SOURCE_TABLE_SCANS, ScanLogEntry
from schemas.scans import ScanCreate, ScanLogRead, ScanRead, ScanTotals

logger = logging.getLogger(__name__)

router = APIRouter()

# Columns a scan hands back; plain values so nothing is lazily reloaded after a rollback.
_SNAPSHOT_COLUMNS = (
    ScanRecord.id,
    ScanRecord.barcode,
    ScanRecord.quantity,
    ScanRecord.first_scan,
    ScanRecord.last_scan,
    ScanRecord.responsible,
)


async def _find_record(db: AsyncSession, barcode: str) -> Optional[ScanRecord]:
    res = await db.execute(select(ScanRecord).where(ScanRecord.barcode == barcode))
    return res.scalar_one_or_none()


def _clamped_quantity(delta: int):
    # Evaluated by the database so concurrent scans of one barcode do not overwrite each other.
    new_quantity = ScanRecord.quantity + delta
    return case((new_quantity < 0, 0), else_=new_quantity)


async def _apply_scan(
    *,
    db: AsyncSession,
    barcode: str,
    responsible: str,
    increment: int,
    now: datetime,
) -> dict:
    """Apply the scan and return the resulting row as a plain dict (id, barcode, quantity, ...)."""
    record = await _find_record(db, barcode)

    if record is None:
        quantity = initial_quantity(increment)
        record = ScanRecord(
            barcode=barcode,
            quantity=quantity,
            first_scan=now,
            last_scan=now,
            responsible=responsible,
        )
        db.add(record)
        try:
            await db.flush()
            scan_id = record.id
            await db.commit()
            return {
                "id": scan_id,
                "barcode": barcode,
                "quantity": quantity,
                "first_scan": now,
                "last_scan": now,
                "responsible": responsible,
            }
        except IntegrityError:
            # Another request created the barcode first; apply this scan as an update.
            await db.rollback()
            record = await _find_record(db, barcode)
            if record is None:
                raise

    res = await db.execute(
        update(ScanRecord)
        .where(ScanRecord.id == record.id)
        .values(
            quantity=_clamped_quantity(increment),
            last_scan=now,
            responsible=responsible,
        )
        .returning(*_SNAPSHOT_COLUMNS)
        .execution_options(synchronize_session=False)
    )
    row = dict(res.mappings().one())
    await db.commit()
    return row


async def _log_scan_activity(
    *,
    db: AsyncSession,
    scan: dict,
    delta: int,
    actor_name: str,
) -> None:
    """Append the audit entry. Failures are logged and never reach the caller."""
    try:
        db.add(
            ScanLogEntry(
                scan_id=scan["id"],
                source_table=SOURCE_TABLE_SCANS,
                barcode=scan["barcode"],
                delta=delta,
                quantity_after=scan["quantity"],
                actor_name=actor_name,
            )
        )
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Failed to log scan activity for barcode %r", scan["barcode"])


@router.post("", response_model=ScanRead)
async def record_scan(
    payload: ScanCreate,
    db: AsyncSession = Depends(get_async_session),
):
    """
    Apply one scan to a barcode's running quantity.

    - Unknown barcode + positive increment creates the record with quantity = increment.
    - Known barcode: quantity = max(0, quantity + increment), responsible/last_scan updated.
    - A log entry with the requested delta and resulting quantity is appended afterwards.
    """
    if not payload.barcode or not payload.responsible:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Barcode and responsible are required",
        )

    try:
        scan = await _apply_scan(
            db=db,
            barcode=payload.barcode,
            responsible=payload.responsible,
            increment=payload.increment,
            now=utcnow(),
        )
    except ScanRejected as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except HTTPException:
        raise
    except STORE_UNAVAILABLE_ERRORS as e:
        raise StoreUnavailable() from e
    except Exception:
        await db.rollback()
        logger.exception("record_scan failed for barcode %r", payload.barcode)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process barcode scan",
        )

    logger.info(
        "scan barcode=%s delta=%+d quantity=%d by %s",
        scan["barcode"], payload.increment, scan["quantity"], payload.responsible,
    )
    await _log_scan_activity(
        db=db,
        scan=scan,
        delta=payload.increment,
        actor_name=payload.responsible,
    )
    return ScanRead(**scan)


@router.get("", response_model=List[ScanRead])
async def list_scans(db: AsyncSession = Depends(get_async_session)):
    """All scan records, most recently scanned first."""
    try:
        res = await db.execute(
            select(ScanRecord).order_by(ScanRecord.last_scan.desc(), ScanRecord.id.desc())
        )
        records = res.scalars().all()
    except STORE_UNAVAILABLE_ERRORS as e:
        raise StoreUnavailable() from e
    except Exception:
        logger.exception("list_scans failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch scan data",
        )
    return [ScanRead(**r.to_schema) for r in records]


@router.get("/logs", response_model=List[ScanLogRead])
async def list_scan_logs(
    barcode: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_async_session),
):
    barcode = (barcode or "").strip()
    if not barcode:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Barcode parameter is required",
        )

    try:
        res = await db.execute(
            select(ScanLogEntry)
            .where(ScanLogEntry.barcode == barcode)
            .where(ScanLogEntry.source_table == SOURCE_TABLE_SCANS)
            .order_by(ScanLogEntry.created_at.desc(), ScanLogEntry.id.desc())
            .limit(settings.scan_log_limit)
        )
        entries = res.scalars().all()
    except STORE_UNAVAILABLE_ERRORS as e:
        raise StoreUnavailable() from e
    except Exception:
        logger.exception("list_scan_logs failed for barcode %r", barcode)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch scan logs",
        )
    return [ScanLogRead(**e.to_schema) for e in entries]


@router.get("/totals", response_model=ScanTotals)
async def scan_totals(db: AsyncSession = Depends(get_async_session)):
    try:
        res = await db.execute(
            select(
                func.count(ScanRecord.id),
                func.coalesce(func.sum(ScanRecord.quantity), 0),
            )
        )
        total_codes, total_quantity = res.one()
    except STORE_UNAVAILABLE_ERRORS as e:
        raise StoreUnavailable() from e
    except Exception:
        logger.exception("scan_totals failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch totals",
        )
    return ScanTotals(
        total_codes=int(total_codes or 0),
        total_products_scanned=int(total_quantity or 0),
    )
