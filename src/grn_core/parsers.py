"""
Parsers for the messy values found in warehouse spreadsheets.

These parsers handle:
- SKU codes typed with stray whitespace and mixed case
- Quantity cells that are blank, text, floats from Excel, or negative
- Inward dates in whichever format the team typed them
- Header rows repeated in the middle of a sheet
"""

import numbers
import re
from datetime import datetime
from typing import Any, Iterable, Mapping
import pandas as pd


# SKU-column header labels; a data row whose SKU cell holds one of these is a
# header row pasted mid-sheet.
HEADER_TOKENS = frozenset({"SKU", "SKU ID", "BRAND SKU CODE", "KNOT SKU CODE"})

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def is_blank(value: Any) -> bool:
    """True for None, NaN, and strings that are empty once trimmed."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def is_header_token(value: Any) -> bool:
    if is_blank(value):
        return False
    return str(value).strip().upper() in HEADER_TOKENS


def coerce_int(raw: Any) -> int | None:
    """
    Read an integer the way spreadsheet users mean it.

    Numbers are truncated ("12.0" from Excel is 12); text takes its leading
    integer ("7 pcs" is 7). Returns None when there is nothing to read.
    Sign is preserved.
    """
    if is_blank(raw) or isinstance(raw, bool):
        return None
    if isinstance(raw, numbers.Real):
        try:
            return int(raw)
        except (OverflowError, ValueError):
            return None
    match = _LEADING_INT.match(str(raw))
    if not match:
        return None
    return int(match.group(1))


def parse_quantity(raw: Any, default: int) -> int:
    """
    Parse a quantity cell into a non-negative integer.

    Args:
        raw: Cell value (str, number, None or NaN)
        default: Returned when the cell is blank or unparseable. Use 1 for
            per-unit sources (put-away, QC fail) and 0 for PO quantities.

    Negative values are clamped to 0.
    """
    value = coerce_int(raw)
    if value is None:
        return default
    return max(0, value)


class SKUNormalizer:
    """
    Normalizes SKU codes so the same product matches across files.

    "sku-1 " in the PO and "SKU-1" in the put-away sheet must land on the same
    key, so values are trimmed and upper-cased. Blank values have no key.
    """

    def __init__(self, uppercase: bool = True):
        self.uppercase = uppercase

    def normalize(self, sku: Any) -> str | None:
        """Normalize a single SKU value."""
        if is_blank(sku):
            return None

        # Spreadsheet readers turn integer codes into floats (1001 -> 1001.0)
        if isinstance(sku, float) and sku.is_integer():
            sku = int(sku)

        result = str(sku).strip()
        if self.uppercase:
            result = result.upper()
        return result

    def normalize_row(
        self, row: Mapping[str, Any], candidate_columns: Iterable[str]
    ) -> str | None:
        """
        Normalize the first non-blank SKU found across candidate columns.

        Columns are tried in priority order; None means the row has no SKU
        and must be skipped.
        """
        for column in candidate_columns:
            value = row.get(column)
            if not is_blank(value):
                return self.normalize(value)
        return None

    def normalize_series(self, series: pd.Series) -> pd.Series:
        """Normalize an entire pandas Series of SKUs."""
        return series.apply(self.normalize)


def normalize_sku(
    row: Mapping[str, Any], candidate_columns: Iterable[str]
) -> str | None:
    """Shortcut for SKUNormalizer().normalize_row()."""
    return SKUNormalizer().normalize_row(row, candidate_columns)


class DateParser:
    """
    Date parser that handles the formats warehouse teams actually type.

    To extend: Add new format patterns to DATE_FORMATS.
    """

    # Ordered by specificity; day-first formats before US ones (Indian warehouses)
    DATE_FORMATS = [
        "%Y-%m-%d",      # ISO: 2025-05-31
        "%d/%m/%Y",      # 31/05/2025
        "%d-%m-%Y",      # 31-05-2025
        "%d.%m.%Y",      # 31.05.2025
        "%d/%m/%y",      # 31/05/25
        "%d-%b-%Y",      # 31-May-2025
        "%d %b %Y",      # 31 May 2025
        "%m/%d/%Y",      # US: 05/31/2025
        "%Y/%m/%d",      # ISO slash: 2025/05/31
    ]

    def __init__(self, custom_formats: list[str] | None = None):
        """
        Args:
            custom_formats: Additional date formats to try (prepended to defaults)
        """
        self.formats = (custom_formats or []) + self.DATE_FORMATS
        self._cache: dict[str, datetime | None] = {}

    def parse(self, date_str: str | None) -> datetime | None:
        """Parse a date string, trying multiple formats."""
        if is_blank(date_str):
            return None

        date_str = str(date_str).strip()

        if date_str in self._cache:
            return self._cache[date_str]

        for fmt in self.formats:
            try:
                result = datetime.strptime(date_str, fmt)
                self._cache[date_str] = result
                return result
            except ValueError:
                continue

        self._cache[date_str] = None
        return None
