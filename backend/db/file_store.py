"""
JSON-file barcode store for deployments without a database.

The file holds one object keyed by barcode; each value mirrors a `scans` row:
    {"barcode": ..., "quantity": ..., "first_scan": ..., "last_scan": ..., "responsible": ...}
"""

import json
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from core.counters import apply_delta, initial_quantity

logger = logging.getLogger(__name__)

_write_lock = threading.Lock()

# Older files used camelCase timestamp keys.
_LEGACY_KEYS = {"firstScanned": "first_scan", "lastScanned": "last_scan"}


def _normalize(barcode: str, entry: dict) -> dict:
    out = dict(entry)
    for old, new in _LEGACY_KEYS.items():
        if old in out:
            value = out.pop(old)
            out.setdefault(new, value)
    out.setdefault("barcode", barcode)
    out["quantity"] = int(out.get("quantity") or 0)
    out.setdefault("first_scan", None)
    out.setdefault("last_scan", None)
    out.setdefault("responsible", None)
    return out


class BarcodeFileStore:
    def __init__(self, path):
        self.path = Path(path)

    def read(self) -> Dict[str, dict]:
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("Could not read barcodes file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Barcodes file %s does not hold an object; ignoring it", self.path)
            return {}
        return {
            barcode: _normalize(barcode, entry)
            for barcode, entry in data.items()
            if isinstance(entry, dict)
        }

    def write(self, data: Dict[str, dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2)
        os.replace(tmp_path, self.path)

    def scan(self, barcode: str, responsible: Optional[str], increment: int, now: datetime) -> dict:
        """Apply one scan and persist the file. Raises ScanRejected for a non-positive first scan."""
        stamp = now.isoformat()
        with _write_lock:
            data = self.read()
            entry = data.get(barcode)
            if entry is None:
                entry = {
                    "barcode": barcode,
                    "quantity": initial_quantity(increment),
                    "first_scan": stamp,
                    "last_scan": stamp,
                    "responsible": responsible,
                }
            else:
                entry["quantity"] = apply_delta(entry["quantity"], increment)
                entry["last_scan"] = stamp
                if responsible:
                    entry["responsible"] = responsible
            data[barcode] = entry
            self.write(data)
        return entry
