"""
Per-SKU aggregation of the three GRN inputs.

Each function is a pure reduction: rows in, read-only mapping of
SKU key -> aggregate out. Nothing is shared between calls.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, NamedTuple

from .columns import (
    PO_COLUMNS,
    PUT_AWAY_COLUMNS,
    QC_FAIL_COLUMNS,
    ColumnAliasTable,
    SourceRow,
    as_source_row,
)
from .parsers import SKUNormalizer, is_header_token, parse_quantity

logger = logging.getLogger(__name__)

# PO columns carried through to the GRN line
PO_DETAIL_FIELDS = ("sno", "brand_sku", "knot_sku", "size", "colors", "unit_price", "amount")


class BinCount(NamedTuple):
    """Run-length entry: `count` units stored at bin `label`."""

    label: str
    count: int


class ReasonCount(NamedTuple):
    """Run-length entry: `count` units rejected for `reason`."""

    reason: str
    count: int


@dataclass(frozen=True)
class POAggregate:
    sku: str
    ordered_qty: int
    row: SourceRow  # First PO row seen for this SKU
    details: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PutAwayAggregate:
    sku: str
    received_qty: int
    bins: tuple[BinCount, ...] = field(default_factory=tuple)

    def bin_summary(self) -> str:
        """e.g. "A1 (3), B2 (1)"; empty when no bin was recorded."""
        return ", ".join(f"{b.label} ({b.count})" for b in self.bins)


@dataclass(frozen=True)
class QCFailAggregate:
    sku: str
    failed_qty: int
    reasons: tuple[ReasonCount, ...] = field(default_factory=tuple)

    def reason_summary(self) -> str:
        return ", ".join(f"{r.reason} ({r.count})" for r in self.reasons)


def _keyed_rows(
    rows: Iterable[Mapping[str, Any]],
    columns: ColumnAliasTable,
    normalizer: SKUNormalizer,
):
    """
    Yield (sku, row) for rows with a usable SKU.

    Rows without a SKU and header rows repeated mid-sheet are skipped.
    """
    skipped_blank = 0
    skipped_header = 0
    sku_columns = columns.aliases("sku")

    for raw in rows:
        row = as_source_row(raw)
        value = row.first(sku_columns)
        if value is None:
            skipped_blank += 1
            continue
        if is_header_token(value):
            skipped_header += 1
            continue
        yield normalizer.normalize(value), row

    if skipped_blank or skipped_header:
        logger.debug(
            "%s: skipped %d rows without SKU and %d repeated header rows",
            columns.name,
            skipped_blank,
            skipped_header,
        )


def aggregate_po(
    rows: Iterable[Mapping[str, Any]],
    columns: ColumnAliasTable = PO_COLUMNS,
    normalizer: SKUNormalizer | None = None,
) -> Mapping[str, POAggregate]:
    """
    Sum ordered quantity per SKU.

    The first row for a SKU is kept as its representative row (size, colour,
    price passthrough); later rows only add quantity. Missing or malformed
    quantities count as 0.
    """
    normalizer = normalizer or SKUNormalizer()
    ordered: dict[str, int] = {}
    first_rows: dict[str, SourceRow] = {}

    for sku, row in _keyed_rows(rows, columns, normalizer):
        if sku not in first_rows:
            first_rows[sku] = row
            ordered[sku] = 0
        ordered[sku] += parse_quantity(columns.lookup(row, "quantity"), 0)

    return MappingProxyType(
        {
            sku: POAggregate(
                sku,
                ordered[sku],
                row,
                MappingProxyType(
                    {f: row.text(columns.aliases(f)) for f in PO_DETAIL_FIELDS}
                ),
            )
            for sku, row in first_rows.items()
        }
    )


def aggregate_put_away(
    rows: Iterable[Mapping[str, Any]],
    columns: ColumnAliasTable = PUT_AWAY_COLUMNS,
    normalizer: SKUNormalizer | None = None,
) -> Mapping[str, PutAwayAggregate]:
    """
    Sum received units per SKU and tally the bins they were stored in.

    A row without a quantity is one unit. A row of quantity N at bin "A1"
    contributes N units to "A1".
    """
    normalizer = normalizer or SKUNormalizer()
    received: dict[str, int] = {}
    bins: dict[str, Counter] = {}

    for sku, row in _keyed_rows(rows, columns, normalizer):
        qty = parse_quantity(columns.lookup(row, "quantity"), 1)
        received[sku] = received.get(sku, 0) + qty
        tally = bins.setdefault(sku, Counter())
        label = row.text(columns.aliases("bin"))
        if label and qty > 0:
            tally[label] += qty

    return MappingProxyType(
        {
            sku: PutAwayAggregate(
                sku, qty, tuple(BinCount(label, n) for label, n in bins[sku].items())
            )
            for sku, qty in received.items()
        }
    )


def aggregate_qc_fail(
    rows: Iterable[Mapping[str, Any]],
    columns: ColumnAliasTable = QC_FAIL_COLUMNS,
    normalizer: SKUNormalizer | None = None,
) -> Mapping[str, QCFailAggregate]:
    """Sum failed units per SKU (one unit per row by default) with their reasons."""
    normalizer = normalizer or SKUNormalizer()
    failed: dict[str, int] = {}
    reasons: dict[str, Counter] = {}

    for sku, row in _keyed_rows(rows, columns, normalizer):
        qty = parse_quantity(columns.lookup(row, "quantity"), 1)
        failed[sku] = failed.get(sku, 0) + qty
        tally = reasons.setdefault(sku, Counter())
        reason = row.text(columns.aliases("reason"))
        if reason and qty > 0:
            tally[reason] += qty

    return MappingProxyType(
        {
            sku: QCFailAggregate(
                sku, qty, tuple(ReasonCount(r, n) for r, n in reasons[sku].items())
            )
            for sku, qty in failed.items()
        }
    )
