from typing import Optional

from pydantic import BaseModel

from schemas.scans import ScanCreate


class BarcodeCreate(ScanCreate):
    """Same payload as a database scan; `responsible` is optional for the file store."""


class BarcodeEntry(BaseModel):
    barcode: str
    quantity: int
    first_scan: Optional[str] = None
    last_scan: Optional[str] = None
    responsible: Optional[str] = None
