from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from .database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScanRecord(Base):
    """Running quantity per barcode. Created on first scan, never deleted by the API."""
    __tablename__ = "scans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    barcode = Column(String, nullable=False, unique=True, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    first_scan = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_scan = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    responsible = Column(String, nullable=True)

    logs = relationship("ScanLogEntry", back_populates="scan")

    @property
    def to_schema(self):
        return {
            "barcode": self.barcode,
            "quantity": int(self.quantity or 0),
            "first_scan": self.first_scan,
            "last_scan": self.last_scan,
            "responsible": self.responsible,
        }
