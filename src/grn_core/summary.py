"""
Summary statistics over a reconciled GRN.

Always recomputed from the lines; nothing is updated incrementally.
"""

from typing import Sequence
import pandas as pd

from .models import LineStatus, QCStatus, ReconciledLine, SummaryStats
from .reconciliation import lines_to_frame

QC_ISSUE_STATUSES = {QCStatus.FAILED.value, QCStatus.PARTIAL.value}


def percentage(numerator: int, denominator: int) -> int:
    """Whole-number percentage, halves rounded up; 0 when the denominator is 0."""
    if denominator <= 0:
        return 0
    return (200 * numerator + denominator) // (2 * denominator)


def summarize(lines: Sequence[ReconciledLine]) -> SummaryStats:
    """
    Reduce GRN lines to totals, per-status counts and rates.

    Returns SummaryStats with:
    - unit totals (ordered, received, shortage, excess, not ordered, QC pass/fail)
    - receipt accuracy (received / ordered) and QC pass rate (passed / received)
    - line counts per Status and per QC Status, zero counts included
    - issue breakdown: QC issues only, quantity issues only, both
    """
    df = lines_to_frame(lines)

    def total(column: str, mask: pd.Series | None = None) -> int:
        values = df[column] if mask is None else df.loc[mask, column]
        return int(values.sum())

    status_counts = (
        df["Status"].value_counts().reindex([s.value for s in LineStatus], fill_value=0)
    )
    qc_status_counts = (
        df["QC Status"].value_counts().reindex([s.value for s in QCStatus], fill_value=0)
    )

    has_qc_issue = df["QC Status"].isin(QC_ISSUE_STATUSES)
    has_qty_issue = df["Status"] != LineStatus.RECEIVED.value
    not_ordered = df["Status"] == LineStatus.EXCESS_RECEIPT.value
    complete = ~has_qty_issue & (df["QC Status"] == QCStatus.PASSED.value)

    total_ordered = total("Ordered Qty")
    total_received = total("Received Qty")
    total_passed = total("Passed QC Qty")

    return SummaryStats(
        total_items=len(df),
        total_ordered_units=total_ordered,
        total_received_units=total_received,
        total_shortage_units=total("Shortage Qty"),
        total_excess_units=total("Excess Qty"),
        total_not_ordered_units=total("Not Ordered Qty"),
        total_qc_passed_units=total_passed,
        total_qc_failed_units=total("Failed QC Qty"),
        receipt_accuracy=percentage(total_received, total_ordered),
        qc_pass_rate=percentage(total_passed, total_received),
        status_counts={k: int(v) for k, v in status_counts.items()},
        qc_status_counts={k: int(v) for k, v in qc_status_counts.items()},
        complete_items=int(complete.sum()),
        items_with_qc_issues_only=int((has_qc_issue & ~has_qty_issue).sum()),
        items_with_quantity_issues_only=int((has_qty_issue & ~has_qc_issue).sum()),
        items_with_both_issues=int((has_qc_issue & has_qty_issue).sum()),
        qc_passed_against_po=total("Passed QC Qty", ~not_ordered),
        qc_passed_not_ordered=total("Passed QC Qty", not_ordered),
    )
