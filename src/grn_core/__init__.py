# Core reusable components for Goods Received Note (GRN) reconciliation
# These work on already-parsed rows and can be reused across warehouses

import logging

from .columns import (
    ColumnAliasTable,
    SourceRow,
    PO_COLUMNS,
    PUT_AWAY_COLUMNS,
    QC_FAIL_COLUMNS,
    rows_from_frame,
)
from .parsers import DateParser, SKUNormalizer, normalize_sku, parse_quantity
from .aggregation import (
    BinCount,
    POAggregate,
    PutAwayAggregate,
    QCFailAggregate,
    aggregate_po,
    aggregate_put_away,
    aggregate_qc_fail,
)
from .models import (
    GRNHeader,
    GRNSettings,
    LineOrder,
    LineStatus,
    QCFailMode,
    QCStatus,
    ReconciledLine,
    SkuCodeType,
    SummaryStats,
)
from .reconciliation import reconcile, lines_to_frame
from .summary import summarize
from .quality import DataQualityChecker, DataQualityReport
from .exceptions import GRNError, MissingInputError, HeaderValidationError

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "ColumnAliasTable",
    "SourceRow",
    "PO_COLUMNS",
    "PUT_AWAY_COLUMNS",
    "QC_FAIL_COLUMNS",
    "rows_from_frame",
    "DateParser",
    "SKUNormalizer",
    "normalize_sku",
    "parse_quantity",
    "BinCount",
    "POAggregate",
    "PutAwayAggregate",
    "QCFailAggregate",
    "aggregate_po",
    "aggregate_put_away",
    "aggregate_qc_fail",
    "GRNHeader",
    "GRNSettings",
    "LineOrder",
    "LineStatus",
    "QCFailMode",
    "QCStatus",
    "ReconciledLine",
    "SkuCodeType",
    "SummaryStats",
    "reconcile",
    "lines_to_frame",
    "summarize",
    "DataQualityChecker",
    "DataQualityReport",
    "GRNError",
    "MissingInputError",
    "HeaderValidationError",
]
