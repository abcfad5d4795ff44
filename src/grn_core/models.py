"""
Typed records produced by the GRN engine.

Pydantic models keep the reconciled output immutable and carry the export
column labels as field aliases, so `model_dump(by_alias=True)` gives the
exact keys the export layer expects.
"""

from datetime import date, datetime
from enum import Enum
from typing import ClassVar
from pydantic import BaseModel, ConfigDict, Field

from .parsers import DateParser


class LineStatus(str, Enum):
    """Quantity classification of a reconciled line."""

    RECEIVED = "Received"
    SHORTAGE = "Shortage"
    EXCESS = "Excess"
    NOT_RECEIVED = "Not Received"
    EXCESS_RECEIPT = "Excess Receipt"  # Received but never ordered


class QCStatus(str, Enum):
    """Quality-control classification of a reconciled line."""

    NOT_PERFORMED = "Not Performed"
    PASSED = "Passed"
    PARTIAL = "Partial"
    FAILED = "Failed"


class SkuCodeType(str, Enum):
    """Which SKU code family is shown as the primary SKU."""

    BRAND = "BRAND"
    KNOT = "KNOT"


class QCFailMode(str, Enum):
    """How QC-fail rows relate to put-away rows."""

    ADDITIVE = "additive"  # Rejected units are extra to put-away
    SUBSET = "subset"  # Rejected units were already counted in put-away


class LineOrder(str, Enum):
    """Ordering of reconciled lines."""

    INPUT = "input"  # PO order, then put-away-only, then QC-only SKUs
    SKU = "sku"  # Sorted by normalized SKU


class GRNSettings(BaseModel):
    """Options for a reconciliation run."""

    model_config = ConfigDict(frozen=True)

    sku_code_type: SkuCodeType = Field(
        default=SkuCodeType.BRAND,
        description="SKU family displayed as primary; does not change the math",
    )
    qc_fail_mode: QCFailMode = QCFailMode.ADDITIVE
    line_order: LineOrder = LineOrder.INPUT


class ReconciledLine(BaseModel):
    """One GRN line per distinct SKU across the three inputs."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sno: str = Field(default="", alias="S.No")
    sku: str = Field(alias="SKU", description="Normalized SKU key")
    brand_sku: str = Field(default="", alias="Brand SKU")
    knot_sku: str = Field(default="", alias="KNOT SKU")
    size: str = Field(default="", alias="Size")
    color: str = Field(default="", alias="Color")
    unit_price: str = Field(default="", alias="Unit Price")
    amount: str = Field(default="", alias="Amount")
    ordered_qty: int = Field(alias="Ordered Qty")
    received_qty: int = Field(alias="Received Qty")
    passed_qc_qty: int = Field(alias="Passed QC Qty")
    failed_qc_qty: int = Field(alias="Failed QC Qty")
    shortage_qty: int = Field(alias="Shortage Qty")
    excess_qty: int = Field(alias="Excess Qty")
    not_ordered_qty: int = Field(alias="Not Ordered Qty")
    status: LineStatus = Field(alias="Status")
    qc_status: QCStatus = Field(alias="QC Status")
    remarks: str = Field(alias="Remarks")
    bin_summary: str = Field(default="", alias="Bin Summary")
    qc_fail_reasons: str = Field(default="", alias="QC Fail Reasons")

    def display_sku(self, sku_code_type: SkuCodeType = SkuCodeType.BRAND) -> str:
        """SKU to present as primary for the requested code family."""
        if sku_code_type == SkuCodeType.KNOT and self.knot_sku:
            return self.knot_sku
        return self.brand_sku or self.knot_sku or self.sku

    def to_record(self) -> dict:
        """Export-ready dict keyed by column label."""
        return self.model_dump(by_alias=True, mode="json")


class SummaryStats(BaseModel):
    """Totals and percentages over a GRN. Always recomputed from the lines."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    total_items: int = Field(alias="totalItems")
    total_ordered_units: int = Field(alias="totalOrderedUnits")
    total_received_units: int = Field(alias="totalReceivedUnits")
    total_shortage_units: int = Field(alias="totalShortageUnits")
    total_excess_units: int = Field(alias="totalExcessUnits")
    total_not_ordered_units: int = Field(alias="totalNotOrderedUnits")
    total_qc_passed_units: int = Field(alias="totalQcPassedUnits")
    total_qc_failed_units: int = Field(alias="totalQcFailedUnits")
    receipt_accuracy: int = Field(
        alias="receiptAccuracy", description="Received as % of ordered, 0 if nothing ordered"
    )
    qc_pass_rate: int = Field(
        alias="qcPassRate", description="QC passed as % of received, 0 if nothing received"
    )
    status_counts: dict[str, int] = Field(alias="statusCounts")
    qc_status_counts: dict[str, int] = Field(alias="qcStatusCounts")
    complete_items: int = Field(alias="completeItems")
    items_with_qc_issues_only: int = Field(alias="itemsWithQcIssuesOnly")
    items_with_quantity_issues_only: int = Field(alias="itemsWithQuantityIssuesOnly")
    items_with_both_issues: int = Field(alias="itemsWithBothIssues")
    qc_passed_against_po: int = Field(alias="qcPassedAgainstPo")
    qc_passed_not_ordered: int = Field(alias="qcPassedNotOrdered")

    @property
    def items_with_issues(self) -> int:
        return (
            self.items_with_qc_issues_only
            + self.items_with_quantity_issues_only
            + self.items_with_both_issues
        )


class GRNHeader(BaseModel):
    """Document-level metadata entered by the warehouse team."""

    po_number: str = ""
    brand_name: str = ""
    replenishment_number: str = ""
    inward_date: str = Field(default="", description="Date goods arrived, any common format")
    warehouse_no: str = ""
    qc_done_by: list[str] = Field(default_factory=list)
    verified_by: str = ""
    warehouse_manager_name: str = ""
    qc_performed: bool = False

    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = (
        "replenishment_number",
        "inward_date",
        "warehouse_no",
        "verified_by",
        "warehouse_manager_name",
    )

    def parsed_inward_date(self) -> datetime | None:
        return DateParser().parse(self.inward_date)

    def missing_fields(self) -> list[str]:
        """Required fields that are blank. `qc_done_by` is required only if QC ran."""
        missing = [f for f in self.REQUIRED_FIELDS if not str(getattr(self, f)).strip()]
        if self.qc_performed and not [p for p in self.qc_done_by if p.strip()]:
            missing.append("qc_done_by")
        return missing

    def document_number(self, on: date, prefix: str = "GRN-KNOT") -> str:
        """e.g. GRN-KNOT-20250531-BonkersCorner-R12"""
        brand = "".join(self.brand_name.split())
        return f"{prefix}-{on:%Y%m%d}-{brand}-{self.replenishment_number}"
