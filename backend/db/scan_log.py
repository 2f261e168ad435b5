from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .scan import utcnow

SOURCE_TABLE_SCANS = "scans"


class ScanLogEntry(Base):
    """Append-only movement log; one row per applied scan."""
    __tablename__ = "scans_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    scan_id = Column(Integer, ForeignKey("scans.id", ondelete="CASCADE"), nullable=False, index=True)
    source_table = Column(Text, nullable=False, default=SOURCE_TABLE_SCANS)
    barcode = Column(String, nullable=False, index=True)

    delta = Column(Integer, nullable=False)  # signed, usually +1 / -1
    quantity_after = Column(Integer, nullable=False)
    actor_name = Column(String, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True)

    scan = relationship("ScanRecord", back_populates="logs")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "scan_id": self.scan_id,
            "source_table": self.source_table,
            "barcode": self.barcode,
            "delta": int(self.delta),
            "quantity_after": int(self.quantity_after),
            "actor_name": self.actor_name,
            "created_at": self.created_at,
        }
