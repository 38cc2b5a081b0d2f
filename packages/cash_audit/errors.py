"""Exception hierarchy for ``cash_audit``.

Every failure is terminal for the operation that raised it; nothing here is
retried automatically. Callers (the CLI, the shell, ``AuditSession``) catch
these to report a message and return to the pre-operation state.
"""

from __future__ import annotations


class CashAuditError(Exception):
    """Base class for all package errors."""


class ImportFailure(CashAuditError):
    """A file import could not produce transactions."""


class UnsupportedFormatError(ImportFailure):
    def __init__(self, path: str) -> None:
        super().__init__(f"Unsupported file format: {path!r}. Please upload .csv, .xlsx or .xls")
        self.path = path


class ParseError(ImportFailure):
    """The file has a supported extension but could not be parsed."""


class MappingError(ImportFailure):
    """A row could not be mapped to a transaction; the whole batch is discarded."""

    def __init__(self, row_index: int, reason: str) -> None:
        super().__init__(f"Error processing data mapping at row {row_index}: {reason}")
        self.row_index = row_index


class NoValidRecordsError(ImportFailure):
    def __init__(self) -> None:
        super().__init__("No valid records found.")


class OperationInProgressError(CashAuditError):
    """An operation was triggered while the same operation is still in flight."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"{operation} is already in progress")
        self.operation = operation


class TransitionNotAllowedError(CashAuditError):
    """A working-paper status change is not permitted for the current role/status."""


__all__ = [
    "CashAuditError",
    "ImportFailure",
    "MappingError",
    "NoValidRecordsError",
    "OperationInProgressError",
    "ParseError",
    "TransitionNotAllowedError",
    "UnsupportedFormatError",
]
