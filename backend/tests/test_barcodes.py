import json
from datetime import datetime, timezone

import pytest

from core.config import settings
from core.counters import ScanRejected
from db.file_store import BarcodeFileStore


@pytest.fixture
def barcodes_file(tmp_path, monkeypatch):
    path = tmp_path / "data" / "barcodes.json"
    monkeypatch.setattr(settings, "barcodes_file", str(path))
    return path


async def test_empty_store_reads_as_empty_mapping(bare_client, barcodes_file):
    res = await bare_client.get("/barcodes")
    assert res.status_code == 200
    assert res.json() == {}


async def test_scan_creates_then_increments(bare_client, barcodes_file):
    first = await bare_client.post("/barcodes", json={"barcode": "ABC123", "responsible": "Alice"})
    assert first.status_code == 200
    assert first.json()["quantity"] == 1
    assert first.json()["first_scan"] == first.json()["last_scan"]

    second = await bare_client.post("/barcodes", json={"barcode": "ABC123"})
    assert second.json()["quantity"] == 2
    assert second.json()["responsible"] == "Alice"

    on_disk = json.loads(barcodes_file.read_text())
    assert on_disk["ABC123"]["quantity"] == 2

    listing = (await bare_client.get("/barcodes")).json()
    assert list(listing) == ["ABC123"]
    assert listing["ABC123"]["first_scan"] == first.json()["first_scan"]


async def test_decrement_clamps_at_zero(bare_client, barcodes_file):
    await bare_client.post("/barcodes", json={"barcode": "X"})
    res = await bare_client.post("/barcodes", json={"barcode": "X", "increment": -4})
    assert res.json()["quantity"] == 0


async def test_non_positive_first_scan_rejected(bare_client, barcodes_file):
    res = await bare_client.post("/barcodes", json={"barcode": "NEW", "increment": -1})
    assert res.status_code == 400
    assert not barcodes_file.exists()


async def test_barcode_required(bare_client, barcodes_file):
    res = await bare_client.post("/barcodes", json={"responsible": "Alice"})
    assert res.status_code == 400
    assert res.json()["detail"] == "Barcode is required"


def test_corrupt_file_reads_as_empty(tmp_path):
    path = tmp_path / "barcodes.json"
    path.write_text("{not json")
    assert BarcodeFileStore(path).read() == {}


def test_legacy_camel_case_keys_are_normalised(tmp_path):
    path = tmp_path / "barcodes.json"
    path.write_text(json.dumps({
        "111": {
            "barcode": "111",
            "quantity": 3,
            "lastScanned": "2025-01-02T10:00:00.000Z",
            "firstScanned": "2025-01-01T10:00:00.000Z",
        }
    }))
    store = BarcodeFileStore(path)
    entry = store.read()["111"]
    assert entry["first_scan"] == "2025-01-01T10:00:00.000Z"
    assert entry["last_scan"] == "2025-01-02T10:00:00.000Z"
    assert "lastScanned" not in entry

    now = datetime(2025, 2, 1, tzinfo=timezone.utc)
    updated = store.scan("111", "Bob", 1, now)
    assert updated["quantity"] == 4
    assert updated["first_scan"] == "2025-01-01T10:00:00.000Z"
    assert updated["last_scan"] == now.isoformat()


def test_store_rejects_non_positive_create(tmp_path):
    store = BarcodeFileStore(tmp_path / "barcodes.json")
    with pytest.raises(ScanRejected):
        store.scan("NEW", None, 0, datetime.now(timezone.utc))
