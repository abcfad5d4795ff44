"""
Data quality checks for GRN input sheets.

Problems the engine recovers from on its own (rows without a SKU, repeated
header rows, unreadable or negative quantities) are still worth showing the
warehouse team. The checker reports them without changing the data.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping
import pandas as pd

from .columns import ColumnAliasTable
from .parsers import coerce_int, is_blank, is_header_token


@dataclass
class DataQualityIssue:
    """A single data quality issue found in an input sheet."""

    column: str
    issue_type: str  # e.g. "missing_sku", "header_row", "malformed_quantity"
    severity: str  # "critical", "warning", "info"
    count: int
    percentage: float
    sample_values: list[Any] = field(default_factory=list)
    description: str = ""


@dataclass
class DataQualityReport:
    """Summary report of data quality for a single input sheet."""

    source_name: str
    total_rows: int
    issues: list[DataQualityIssue] = field(default_factory=list)

    @property
    def critical_issues(self) -> list[DataQualityIssue]:
        return [i for i in self.issues if i.severity == "critical"]

    @property
    def warning_issues(self) -> list[DataQualityIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def has_critical_issues(self) -> bool:
        return len(self.critical_issues) > 0

    def summary(self) -> dict:
        """Return a summary dict for display."""
        return {
            "source": self.source_name,
            "total_rows": self.total_rows,
            "critical": len(self.critical_issues),
            "warnings": len(self.warning_issues),
            "info": len([i for i in self.issues if i.severity == "info"]),
        }


def resolve_column(df: pd.DataFrame, aliases: Iterable[str]) -> pd.Series:
    """First non-blank value per row across alias columns (None if none)."""
    result = pd.Series([None] * len(df), index=df.index, dtype=object)
    for column in aliases:
        if column not in df.columns:
            continue
        values = df[column]
        present = ~values.apply(is_blank)
        result = result.where(result.notna() | ~present, values)
    return result


class DataQualityChecker:
    """
    Quality checker for one GRN input sheet.

    Default checks, driven by the sheet's ColumnAliasTable:
    - Rows with no SKU in any SKU column
    - Header rows repeated mid-sheet
    - Quantity cells that are not numbers
    - Negative quantities (clamped to 0 by the engine)

    Extend by adding custom checks via add_check().
    """

    def __init__(self, source_name: str, columns: ColumnAliasTable):
        self.source_name = source_name
        self.columns = columns
        self._checks: list[Callable[[pd.DataFrame], list[DataQualityIssue]]] = []
        self._add_default_checks()

    def _add_default_checks(self):
        self.add_check(self._check_missing_sku)
        self.add_check(self._check_header_rows)
        if self.columns.aliases("quantity"):
            self.add_check(self._check_quantities)

    def add_check(
        self, check_fn: Callable[[pd.DataFrame], list[DataQualityIssue]]
    ) -> "DataQualityChecker":
        """Add a custom check function. Returns self for chaining."""
        self._checks.append(check_fn)
        return self

    def _issue(self, df, column, issue_type, severity, mask, description) -> DataQualityIssue:
        count = int(mask.sum())
        return DataQualityIssue(
            column=column,
            issue_type=issue_type,
            severity=severity,
            count=count,
            percentage=(count / len(df)) * 100,
            description=description.format(count=count),
        )

    def _check_missing_sku(self, df: pd.DataFrame) -> list[DataQualityIssue]:
        """Rows no SKU column resolves; blank and footer rows are expected."""
        aliases = self.columns.aliases("sku")
        if not any(a in df.columns for a in aliases):
            return [
                DataQualityIssue(
                    column=" / ".join(aliases),
                    issue_type="missing_column",
                    severity="critical",
                    count=len(df),
                    percentage=100.0,
                    description="No SKU column found; expected one of: " + ", ".join(aliases),
                )
            ]

        missing = resolve_column(df, aliases).isna()
        if not missing.any():
            return []
        pct = missing.sum() / len(df) * 100
        severity = "warning" if pct > 20 else "info"
        return [
            self._issue(
                df, aliases[0], "missing_sku", severity, missing,
                "{count:,} rows without a SKU were skipped",
            )
        ]

    def _check_header_rows(self, df: pd.DataFrame) -> list[DataQualityIssue]:
        sku = resolve_column(df, self.columns.aliases("sku"))
        mask = sku.apply(is_header_token)
        if not mask.any():
            return []
        issue = self._issue(
            df, "SKU", "header_row", "warning", mask,
            "{count:,} repeated header rows were skipped",
        )
        issue.sample_values = sku[mask].head(5).tolist()
        return [issue]

    def _check_quantities(self, df: pd.DataFrame) -> list[DataQualityIssue]:
        quantity = resolve_column(df, self.columns.aliases("quantity"))
        present = quantity.notna()
        parsed = quantity[present].apply(coerce_int)

        issues = []
        malformed = parsed.isna()
        if malformed.any():
            issue = self._issue(
                df, "Quantity", "malformed_quantity", "warning", malformed,
                "{count:,} quantities could not be read; defaults were used",
            )
            issue.sample_values = quantity[present][malformed].head(5).tolist()
            issues.append(issue)

        negative = parsed.notna() & (parsed.fillna(0) < 0)
        if negative.any():
            issue = self._issue(
                df, "Quantity", "negative_quantity", "warning", negative,
                "{count:,} negative quantities were counted as 0",
            )
            issue.sample_values = quantity[present][negative].head(5).tolist()
            issues.append(issue)
        return issues

    def run(self, rows: Iterable[Mapping[str, Any]] | pd.DataFrame) -> DataQualityReport:
        """Run all checks and return a quality report."""
        df = rows if isinstance(rows, pd.DataFrame) else pd.DataFrame.from_records(
            [dict(r) for r in rows]
        )
        all_issues = []
        if len(df) > 0:
            for check_fn in self._checks:
                all_issues.extend(check_fn(df))

        return DataQualityReport(
            source_name=self.source_name, total_rows=len(df), issues=all_issues
        )
