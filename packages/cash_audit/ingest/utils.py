"""Ingest helper shared by the CLI, the shell and ``AuditSession``."""

from __future__ import annotations

from datetime import datetime
from os import PathLike

from ..errors import NoValidRecordsError
from ..models import Transaction
from ..normalizers import normalize_rows
from .readers import read_rows


def load_transactions_from_file(
    path: str | PathLike[str], *, now: datetime | None = None
) -> list[Transaction]:
    """Read a CSV/XLSX ledger and return canonical transactions.

    Raises :class:`~cash_audit.errors.UnsupportedFormatError`,
    :class:`~cash_audit.errors.ParseError` or
    :class:`~cash_audit.errors.MappingError` per failure kind, and
    :class:`~cash_audit.errors.NoValidRecordsError` when the file parsed but
    held no rows.
    """

    transactions = normalize_rows(read_rows(path), now=now)
    if not transactions:
        raise NoValidRecordsError()
    return transactions


__all__ = ["load_transactions_from_file"]
