"""
Exceptions raised by the GRN reconciliation engine.

Only blocking problems are raised. Bad quantities and rows without a SKU are
recovered locally and show up in the data quality report instead.
"""


class GRNError(Exception):
    """Base exception for all GRN generation errors."""

    pass


class MissingInputError(GRNError):
    """Raised when a required input (purchase order or put-away) is empty."""

    LABELS = {
        "purchase_order": "Purchase Order",
        "put_away": "Put Away",
    }

    def __init__(self, source: str, message: str | None = None):
        self.source = source
        label = self.LABELS.get(source, source)
        super().__init__(message or f"Please upload a valid {label} sheet")


class HeaderValidationError(GRNError):
    """Raised when required GRN header fields are blank."""

    def __init__(self, missing_fields: list[str]):
        self.missing_fields = list(missing_fields)
        super().__init__(
            f"Please fill in all required fields: {', '.join(self.missing_fields)}"
        )
