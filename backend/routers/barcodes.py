import logging
from typing import Dict

from fastapi import APIRouter, HTTPException, status

from core.config import settings
from core.counters import ScanRejected
from db.file_store import BarcodeFileStore
from db.scan import utcnow
from schemas.barcodes import BarcodeCreate, BarcodeEntry

logger = logging.getLogger(__name__)

router = APIRouter()


def _store() -> BarcodeFileStore:
    return BarcodeFileStore(settings.barcodes_file)


@router.get("", response_model=Dict[str, BarcodeEntry])
def list_barcodes():
    """Whole file store, keyed by barcode."""
    return _store().read()


@router.post("", response_model=BarcodeEntry)
def record_barcode(payload: BarcodeCreate):
    if not payload.barcode:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Barcode is required")

    try:
        entry = _store().scan(
            barcode=payload.barcode,
            responsible=payload.responsible or None,
            increment=payload.increment,
            now=utcnow(),
        )
    except ScanRejected as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception:
        logger.exception("record_barcode failed for barcode %r", payload.barcode)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process barcode",
        )
    return BarcodeEntry(**entry)
