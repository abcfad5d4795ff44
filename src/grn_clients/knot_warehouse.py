"""
GRN generator for the KNOT warehouse inwarding process.

THIS FILE CONTAINS WAREHOUSE-SPECIFIC LOGIC:
- Which GRN header fields the warehouse team must fill in
- Document numbering (GRN-KNOT-<date>-<brand>-<replenishment>)
- Per-sheet column overrides chosen in the column-mapping step
- Quality checks run on every uploaded sheet

To adapt for a new warehouse:
1. Copy this file as a template
2. Update DOCUMENT_PREFIX and the header requirements
3. Pass column overrides for that warehouse's exports
4. The core aggregation, reconciliation and summary can be reused as-is
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Mapping
import pandas as pd

from grn_core.aggregation import aggregate_po, aggregate_put_away, aggregate_qc_fail
from grn_core.columns import (
    PO_COLUMNS,
    PUT_AWAY_COLUMNS,
    QC_FAIL_COLUMNS,
    ColumnAliasTable,
    SourceRow,
    as_source_row,
    rows_from_frame,
)
from grn_core.exceptions import HeaderValidationError, MissingInputError
from grn_core.models import GRNHeader, GRNSettings, ReconciledLine, SummaryStats
from grn_core.quality import DataQualityChecker, DataQualityReport
from grn_core.reconciliation import lines_to_frame, reconcile
from grn_core.summary import summarize

logger = logging.getLogger(__name__)

SheetData = pd.DataFrame | Iterable[Mapping[str, Any]] | None


@dataclass
class GRNReport:
    """Everything the export layer needs for one GRN."""

    lines: tuple[ReconciledLine, ...]
    summary: SummaryStats
    quality_reports: dict[str, DataQualityReport]
    header: GRNHeader | None = None
    document_number: str | None = None
    settings: GRNSettings = field(default_factory=GRNSettings)
    columns: dict[str, ColumnAliasTable] = field(default_factory=dict)

    def to_frame(self) -> pd.DataFrame:
        return lines_to_frame(self.lines)

    def display_sku(self, line: ReconciledLine) -> str:
        """Primary SKU for a line, per the run's SKU code type."""
        return line.display_sku(self.settings.sku_code_type)

    @property
    def has_critical_issues(self) -> bool:
        return any(r.has_critical_issues for r in self.quality_reports.values())


class KnotGRNGenerator:
    """
    Builds GRNs from the three sheets the KNOT warehouse uploads.

    Warehouse-specific handling:
    - PO sheets are keyed by Brand SKU Code; put-away and QC sheets by SKU ID
    - QC-fail sheet is optional (QC is not done for every inward)
    - Header must be complete before a GRN is issued
    - Users can remap columns per sheet when a brand's export is unusual

    Usage:
        generator = KnotGRNGenerator(column_mapping={"put_away": {"sku": "Item"}})
        report = generator.generate(po_df, put_away_df, qc_fail_df, header=header)
    """

    DOCUMENT_PREFIX = "GRN-KNOT"

    SOURCES = {
        "purchase_order": ("Purchase Order", PO_COLUMNS),
        "put_away": ("Put Away", PUT_AWAY_COLUMNS),
        "qc_fail": ("QC Fail", QC_FAIL_COLUMNS),
    }

    def __init__(
        self,
        settings: GRNSettings | None = None,
        column_mapping: Mapping[str, Mapping[str, str]] | None = None,
    ):
        """
        Args:
            settings: Reconciliation options (SKU display family, QC-fail mode, order)
            column_mapping: Per-sheet overrides, e.g. {"put_away": {"bin": "Rack"}}
        """
        self.settings = settings or GRNSettings()
        mapping = column_mapping or {}
        self.columns = {
            source: table.with_overrides(mapping.get(source))
            for source, (_, table) in self.SOURCES.items()
        }

    def detect_columns(self, source: str, headers: list[str]) -> dict[str, str]:
        """Which header each logical field will be read from, for the mapping step."""
        return self.columns[source].detect(headers)

    def generate(
        self,
        purchase_order: SheetData,
        put_away: SheetData,
        qc_fail: SheetData = None,
        header: GRNHeader | None = None,
        on: date | None = None,
    ) -> GRNReport:
        """
        Reconcile the uploaded sheets into a GRN.

        Raises:
            MissingInputError: PO or put-away sheet is empty
            HeaderValidationError: header given but required fields are blank
        """
        po_rows = self._as_rows(purchase_order)
        put_away_rows = self._as_rows(put_away)
        qc_rows = self._as_rows(qc_fail)

        if not po_rows:
            raise MissingInputError("purchase_order")
        if not put_away_rows:
            raise MissingInputError("put_away")

        document_number = None
        if header is not None:
            self._validate_header(header)
            document_number = header.document_number(
                on or date.today(), prefix=self.DOCUMENT_PREFIX
            )

        quality_reports = {
            "purchase_order": self._check_quality("purchase_order", po_rows),
            "put_away": self._check_quality("put_away", put_away_rows),
        }
        if qc_rows:
            quality_reports["qc_fail"] = self._check_quality("qc_fail", qc_rows)

        lines = reconcile(
            aggregate_po(po_rows, self.columns["purchase_order"]),
            aggregate_put_away(put_away_rows, self.columns["put_away"]),
            aggregate_qc_fail(qc_rows, self.columns["qc_fail"]),
            self.settings,
        )
        summary = summarize(lines)

        logger.info(
            "GRN %s: %d lines, %d/%d units received, QC pass rate %d%%",
            document_number or "(draft)",
            summary.total_items,
            summary.total_received_units,
            summary.total_ordered_units,
            summary.qc_pass_rate,
        )

        return GRNReport(
            lines=lines,
            summary=summary,
            quality_reports=quality_reports,
            header=header,
            document_number=document_number,
            settings=self.settings,
            columns=dict(self.columns),
        )

    def _as_rows(self, data: SheetData) -> list[SourceRow]:
        if data is None:
            return []
        if isinstance(data, pd.DataFrame):
            return rows_from_frame(data)
        return [as_source_row(row) for row in data]

    def _validate_header(self, header: GRNHeader) -> None:
        missing = header.missing_fields()
        if missing:
            raise HeaderValidationError(missing)
        if header.parsed_inward_date() is None:
            logger.warning("Inward date %r is not in a recognised format", header.inward_date)

    def _check_quality(self, source: str, rows: list[SourceRow]) -> DataQualityReport:
        label, _ = self.SOURCES[source]
        report = DataQualityChecker(label, self.columns[source]).run(rows)
        for issue in report.issues:
            if issue.severity in ("critical", "warning"):
                logger.warning("%s: %s", label, issue.description)
        return report
