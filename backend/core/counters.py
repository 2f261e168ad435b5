"""Quantity arithmetic shared by the database and file-backed barcode stores."""


class ScanRejected(ValueError):
    """Raised when a scan cannot be applied (e.g. creating a record with a non-positive quantity)."""


def initial_quantity(increment: int) -> int:
    if increment <= 0:
        raise ScanRejected("Cannot create new record with non-positive quantity")
    return increment


def apply_delta(quantity: int, delta: int) -> int:
    # Quantities never go below zero.
    return max(0, int(quantity) + int(delta))
