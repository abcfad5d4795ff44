"""
Reconciliation engine: ordered vs received vs QC-failed, per SKU.

Takes the three per-SKU aggregates, walks the union of every SKU seen
anywhere, and classifies each one. Output lines are immutable and owned by
the caller.
"""

import logging
from typing import Mapping
import pandas as pd

from .aggregation import POAggregate, PutAwayAggregate, QCFailAggregate
from .exceptions import MissingInputError
from .models import (
    GRNSettings,
    LineOrder,
    LineStatus,
    QCFailMode,
    QCStatus,
    ReconciledLine,
)

logger = logging.getLogger(__name__)

DEFAULT_REMARK = "All items received as ordered"


def union_skus(
    po: Mapping[str, POAggregate],
    put_away: Mapping[str, PutAwayAggregate],
    qc_fail: Mapping[str, QCFailAggregate],
    order: LineOrder = LineOrder.INPUT,
) -> list[str]:
    """
    Every SKU seen in any input, each once.

    INPUT order is PO first-seen order, then put-away-only SKUs, then
    QC-only SKUs. SKU order sorts the keys.
    """
    skus = list(dict.fromkeys([*po.keys(), *put_away.keys(), *qc_fail.keys()]))
    if order == LineOrder.SKU:
        skus.sort()
    return skus


def classify_status(ordered: int, received: int, shortage: int, excess: int) -> LineStatus:
    """Later rules override earlier ones."""
    status = LineStatus.RECEIVED
    if shortage > 0:
        status = LineStatus.SHORTAGE
    if excess > 0:
        status = LineStatus.EXCESS
    if received == 0:
        status = LineStatus.NOT_RECEIVED
    if ordered == 0 and received > 0:
        status = LineStatus.EXCESS_RECEIPT
    return status


def classify_qc(received: int, passed: int, failed: int) -> QCStatus:
    if failed > 0:
        if failed == received or passed == 0:
            return QCStatus.FAILED
        return QCStatus.PARTIAL
    if received > 0:
        return QCStatus.PASSED
    return QCStatus.NOT_PERFORMED


def build_remarks(
    ordered: int, received: int, failed: int, shortage: int, excess: int, not_ordered: int
) -> str:
    clauses = []
    if shortage > 0:
        clauses.append(f"Shortage: {shortage} units.")
    if excess > 0:
        clauses.append(f"Excess: {excess} units.")
    if failed > 0:
        clauses.append(f"QC Failed: {failed} units.")
    if not_ordered > 0:
        clauses.append(f"Not Ordered: {not_ordered} units.")
    if received == 0 and ordered > 0:
        clauses.append(f"Not Received: {ordered} units.")
    if not clauses and received > 0:
        return DEFAULT_REMARK
    return " ".join(clauses)


def _received_quantity(put_away_qty: int, failed: int, mode: QCFailMode) -> int:
    if mode == QCFailMode.SUBSET:
        # Rejected units were put away too; never count fewer than were rejected
        return max(put_away_qty, failed)
    return put_away_qty + failed


def reconcile_sku(
    sku: str,
    po: POAggregate | None,
    put_away: PutAwayAggregate | None,
    qc_fail: QCFailAggregate | None,
    mode: QCFailMode = QCFailMode.ADDITIVE,
) -> ReconciledLine:
    """Build the GRN line for one SKU. Any of the aggregates may be missing."""
    ordered = po.ordered_qty if po else 0
    failed = qc_fail.failed_qty if qc_fail else 0
    received = _received_quantity(put_away.received_qty if put_away else 0, failed, mode)
    passed = max(0, received - failed)

    shortage = max(0, ordered - received)
    excess = max(0, received - ordered)
    not_ordered = received if ordered == 0 else 0

    # SKUs missing from the PO show their key as the brand SKU
    passthrough = {"brand_sku": sku}
    if po is not None:
        details = po.details
        passthrough = {
            "sno": details.get("sno", ""),
            "brand_sku": details.get("brand_sku", ""),
            "knot_sku": details.get("knot_sku", ""),
            "size": details.get("size", ""),
            "color": details.get("colors", ""),
            "unit_price": details.get("unit_price", ""),
            "amount": details.get("amount", ""),
        }

    return ReconciledLine(
        sku=sku,
        **passthrough,
        ordered_qty=ordered,
        received_qty=received,
        passed_qc_qty=passed,
        failed_qc_qty=failed,
        shortage_qty=shortage,
        excess_qty=excess,
        not_ordered_qty=not_ordered,
        status=classify_status(ordered, received, shortage, excess),
        qc_status=classify_qc(received, passed, failed),
        remarks=build_remarks(ordered, received, failed, shortage, excess, not_ordered),
        bin_summary=put_away.bin_summary() if put_away else "",
        qc_fail_reasons=qc_fail.reason_summary() if qc_fail else "",
    )


def reconcile(
    po: Mapping[str, POAggregate],
    put_away: Mapping[str, PutAwayAggregate],
    qc_fail: Mapping[str, QCFailAggregate] | None = None,
    settings: GRNSettings | None = None,
) -> tuple[ReconciledLine, ...]:
    """
    Reconcile the three aggregates into one GRN line per SKU.

    Args:
        po: Output of aggregate_po(); must not be empty
        put_away: Output of aggregate_put_away(); must not be empty
        qc_fail: Output of aggregate_qc_fail(); optional

    Raises:
        MissingInputError: if the PO or put-away aggregate is empty
    """
    settings = settings or GRNSettings()
    qc_fail = qc_fail or {}

    if not po:
        raise MissingInputError("purchase_order")
    if not put_away:
        raise MissingInputError("put_away")

    lines = tuple(
        reconcile_sku(
            sku, po.get(sku), put_away.get(sku), qc_fail.get(sku), settings.qc_fail_mode
        )
        for sku in union_skus(po, put_away, qc_fail, settings.line_order)
    )

    logger.info(
        "Reconciled %d SKUs (%d on PO, %d put away, %d with QC failures)",
        len(lines),
        len(po),
        len(put_away),
        len(qc_fail),
    )
    return lines


def lines_to_frame(lines: tuple[ReconciledLine, ...] | list[ReconciledLine]) -> pd.DataFrame:
    """GRN lines as a DataFrame with export column labels, for the export layer."""
    columns = [f.alias for f in ReconciledLine.model_fields.values()]
    return pd.DataFrame([line.to_record() for line in lines], columns=columns)
