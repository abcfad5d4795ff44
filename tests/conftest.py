"""
Pytest configuration and fixtures for GRN reconciliation tests.

Provides small purchase order / put-away / QC-fail sheets as row dicts.
"""

import sys
from pathlib import Path

import pytest

# Ensure src/ is on sys.path for local test runs without installation
_SRC = Path(__file__).resolve().parents[1] / "src"
if _SRC.exists() and str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))


def po_row(sku, qty, **extra):
    return {"Brand SKU Code": sku, "Quantity": qty, **extra}


def put_away_rows(sku, count, **extra):
    return [{"SKU ID": sku, **extra} for _ in range(count)]


def qc_rows(sku, count, **extra):
    return [{"SKU": sku, **extra} for _ in range(count)]


@pytest.fixture
def mixed_po():
    """
    A: over-received with partial QC failure
    B: short
    C: not received at all
    E: received exactly, QC clean
    F: received exactly once QC failures are added back
    """
    return [
        po_row("A", "10"),
        po_row("B", "5"),
        po_row("C", "4"),
        po_row("E", "2"),
        po_row("F", "3"),
    ]


@pytest.fixture
def mixed_put_away():
    # D was never ordered
    return (
        put_away_rows("A", 10, BIN="A1")
        + put_away_rows("B", 2, BIN="B1")
        + put_away_rows("D", 3)
        + put_away_rows("E", 2, BIN="E1")
        + put_away_rows("F", 2)
    )


@pytest.fixture
def mixed_qc_fail():
    return qc_rows("A", 2, Remarks="Stain") + qc_rows("F", 1, Remarks="Torn")
