"""
Column alias tables and row access for the three GRN inputs.

Warehouse exports name the same field differently ("SKU ID" vs "SKU" vs
"Brand SKU Code"). Each file type gets a ColumnAliasTable listing the
acceptable headers per logical field, in priority order.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Sequence
import pandas as pd

from .parsers import is_blank


class SourceRow(Mapping[str, Any]):
    """Read-only view of one parsed spreadsheet row."""

    __slots__ = ("_fields",)

    def __init__(self, fields: Mapping[str, Any]):
        self._fields = MappingProxyType(dict(fields))

    def __getitem__(self, column: str) -> Any:
        return self._fields[column]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"SourceRow({dict(self._fields)!r})"

    def first(self, columns: Iterable[str]) -> Any | None:
        """First non-blank value across columns, or None."""
        for column in columns:
            value = self._fields.get(column)
            if not is_blank(value):
                return value
        return None

    def text(self, columns: Iterable[str]) -> str:
        """First non-blank value as trimmed text, "" when absent."""
        value = self.first(columns)
        if value is None:
            return ""
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return str(value).strip()


@dataclass(frozen=True)
class ColumnAliasTable:
    """
    Acceptable header names per logical field for one file type.

    Usage:
        table = PUT_AWAY_COLUMNS.with_overrides({"sku": "Item Code"})
        sku = table.lookup(row, "sku")
    """

    name: str
    fields: Mapping[str, tuple[str, ...]]

    def aliases(self, field: str) -> tuple[str, ...]:
        return self.fields.get(field, ())

    def lookup(self, row: Mapping[str, Any], field: str) -> Any | None:
        """First non-blank value for a logical field."""
        return as_source_row(row).first(self.aliases(field))

    def detect(self, headers: Sequence[str]) -> dict[str, str]:
        """Map each logical field to the first of its aliases present in headers."""
        present = {str(h).strip() for h in headers}
        detected = {}
        for field, aliases in self.fields.items():
            for alias in aliases:
                if alias in present:
                    detected[field] = alias
                    break
        return detected

    def with_overrides(self, mapping: Mapping[str, str] | None) -> "ColumnAliasTable":
        """
        Return a copy where user-chosen columns replace the default aliases.

        Unknown fields in the mapping are added, blank entries are ignored.
        """
        if not mapping:
            return self
        fields = dict(self.fields)
        for field, column in mapping.items():
            if column and str(column).strip():
                fields[field] = (str(column).strip(),)
        return ColumnAliasTable(name=self.name, fields=MappingProxyType(fields))


def _table(name: str, **fields: tuple[str, ...]) -> ColumnAliasTable:
    return ColumnAliasTable(name=name, fields=MappingProxyType(fields))


PO_COLUMNS = _table(
    "purchase_order",
    sku=("Brand SKU Code", "KNOT SKU Code", "SKU", "SKU ID"),
    brand_sku=("Brand SKU Code",),
    knot_sku=("KNOT SKU Code",),
    quantity=("Quantity",),
    sno=("Sno", "S.No"),
    size=("Size",),
    colors=("Colors", "Color"),
    unit_price=("Unit Price",),
    amount=("Amount",),
)

PUT_AWAY_COLUMNS = _table(
    "put_away",
    sku=("SKU ID", "SKU", "Brand SKU Code", "KNOT SKU Code"),
    quantity=("Quantity", "Put Away Quantity"),
    bin=("BIN", "Bin", "Bin Location", "BIN LOCATION"),
)

QC_FAIL_COLUMNS = _table(
    "qc_fail",
    sku=("SKU ID", "SKU", "Brand SKU Code", "KNOT SKU Code"),
    quantity=("Quantity", "Failed Quantity"),
    reason=("Remarks", "REMARK", "Remark", "Reason", "Status"),
)


def as_source_row(row: Mapping[str, Any]) -> SourceRow:
    if isinstance(row, SourceRow):
        return row
    return SourceRow(row)


def rows_from_frame(df: pd.DataFrame) -> list[SourceRow]:
    """
    Convert a loaded sheet into SourceRows.

    Header names are trimmed; NaN cells become None so blank checks are uniform.
    """
    frame = df.rename(columns=lambda c: str(c).strip())
    frame = frame.astype(object).where(frame.notna(), None)
    return [SourceRow(record) for record in frame.to_dict(orient="records")]
