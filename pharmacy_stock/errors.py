"""
Failures raised while parsing report workbooks and updating the stock ledger.

Every error carries a user-facing ``message`` and a machine ``detail`` string.
They propagate uncaught to the caller (CLI or web handler), which turns them
into a response with ``to_dict()``.
"""


class StockUpdateError(Exception):
    code = "stock_update_error"

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or message

    def to_dict(self) -> dict:
        return {"message": self.message, "error": self.detail, "code": self.code}


class StructuralError(StockUpdateError):
    """An expected sheet, header cell or column is missing."""

    code = "structural_error"


class SheetNotFoundError(StructuralError):
    code = "sheet_not_found"


class HeaderNotFoundError(StructuralError):
    code = "header_not_found"


class ValidationMismatchError(StockUpdateError):
    """A department or date embedded in a report disagrees with the expected value."""

    code = "validation_mismatch"


class DepartmentMismatchError(ValidationMismatchError):
    code = "department_mismatch"

    def __init__(self, report: str, expected: str, found: str):
        super().__init__(
            f"{report} is not for the selected department \"{expected}\". Found \"{found}\".",
            detail=f"{report}: expected department {expected!r}, found {found!r}",
        )
        self.expected = expected
        self.found = found


class DateMismatchError(ValidationMismatchError):
    code = "date_mismatch"

    def __init__(self, report: str, expected, found):
        super().__init__(
            f"{report} date ({found:%d-%m-%Y}) does not match the stock balance date ({expected:%d-%m-%Y}).",
            detail=f"{report}: expected {expected.isoformat()}, found {found.isoformat()}",
        )
        self.expected = expected
        self.found = found


class MissingInputError(StockUpdateError):
    """A required file, department or the item catalog was not supplied."""

    code = "missing_input"


class LedgerNotFoundError(StockUpdateError):
    """There are no ledger rows to patch."""

    code = "not_found"
