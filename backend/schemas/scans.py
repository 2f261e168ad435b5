from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ScanCreate(BaseModel):
    # barcode/responsible are checked in the router so a blank value is a 400, not a 422
    barcode: Optional[str] = None
    responsible: Optional[str] = None
    increment: int = 1

    @field_validator("barcode", "responsible", mode="before")
    @classmethod
    def _strip_nullable(cls, v):
        if v is None:
            return None
        # scanners sometimes send numeric codes
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            v = str(v)
        if isinstance(v, str):
            return v.strip()
        return v


class ScanRead(BaseModel):
    barcode: str
    quantity: int
    first_scan: datetime
    last_scan: datetime
    responsible: Optional[str] = None


class ScanLogRead(BaseModel):
    id: int
    scan_id: int
    source_table: str
    barcode: str
    delta: int
    quantity_after: int
    actor_name: str
    created_at: datetime


class ScanTotals(BaseModel):
    total_codes: int = Field(serialization_alias="totalCodes")
    total_products_scanned: int = Field(serialization_alias="totalProductsScanned")
