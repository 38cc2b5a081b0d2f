"""File readers: CSV / XLSX / XLS → header-keyed rows.

Every reader returns ``list[dict[str, Any]]`` keyed by the header cells as
written in the file. CSV values are strings. Workbook values keep their cell
type (str, int/float, datetime or ``None``): ``.xlsx`` goes through openpyxl,
legacy BIFF ``.xls`` through xlrd. Only the first worksheet is read.
"""

from __future__ import annotations

import csv
import logging
import zipfile
from collections.abc import Iterable, Iterator, Sequence
from os import PathLike
from pathlib import Path
from typing import Any

import xlrd
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from xlrd.compdoc import CompDocError

from ..errors import ParseError, UnsupportedFormatError

CSV_EXTENSIONS: frozenset[str] = frozenset({".csv"})
WORKBOOK_EXTENSIONS: frozenset[str] = frozenset({".xlsx", ".xls"})
SUPPORTED_EXTENSIONS: frozenset[str] = CSV_EXTENSIONS | WORKBOOK_EXTENSIONS

# Locales with a decimal comma (id_ID among them) export ``;``-separated CSV.
CSV_DELIMITERS = ",;\t|"
_SNIFF_CHARS = 8192

_logger = logging.getLogger(__name__)


def _is_blank(values: Iterable[Any]) -> bool:
    return all(v is None or (isinstance(v, str) and v.strip() == "") for v in values)


def _header_keys(header_row: Sequence[Any]) -> list[str | None]:
    keys: list[str | None] = []
    seen: dict[str, int] = {}
    for cell in header_row:
        if cell is None or (isinstance(cell, str) and not cell.strip()):
            keys.append(None)
            continue
        name = str(cell)
        if name in seen:
            # Repeated headers get a numeric suffix so no column is lost.
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        else:
            seen[name] = 0
        keys.append(name)
    return keys


def _rows_from_grid(grid: Iterator[Sequence[Any]]) -> list[dict[str, Any]]:
    """First row is the header; blank rows and unnamed columns are dropped."""

    header = next(grid, None)
    if header is None:
        return []
    keys = _header_keys(header)
    rows: list[dict[str, Any]] = []
    for values in grid:
        if _is_blank(values):
            continue
        rows.append({k: v for k, v in zip(keys, values, strict=False) if k is not None})
    return rows


# ---- CSV ---------------------------------------------------------------------


def sniff_dialect(sample: str) -> type[csv.Dialect] | csv.Dialect:
    """Guess the delimiter from ``sample``; plain comma CSV when undecidable."""

    try:
        return csv.Sniffer().sniff(sample, delimiters=CSV_DELIMITERS)
    except csv.Error:
        return csv.excel


def read_csv_rows(path: str | PathLike[str]) -> list[dict[str, Any]]:
    """Read a CSV with a header row; blank lines are skipped."""

    p = Path(path)
    try:
        # utf-8-sig drops the BOM that spreadsheet exports prepend.
        with p.open(encoding="utf-8-sig", newline="") as f:
            dialect = sniff_dialect(f.read(_SNIFF_CHARS))
            f.seek(0)
            reader = csv.DictReader(f, dialect=dialect)
            rows: list[dict[str, Any]] = []
            for row in reader:
                # DictReader collects overflow cells under a ``None`` key.
                cleaned = {k: v for k, v in row.items() if k is not None}
                if _is_blank(cleaned.values()):
                    continue
                rows.append(cleaned)
    except (csv.Error, UnicodeDecodeError) as e:
        raise ParseError(f"Error parsing CSV file {p.name!r}: {e}") from e
    _logger.debug("read_csv:dialect file=%s delimiter=%r", p.name, dialect.delimiter)
    return rows


# ---- Workbooks ---------------------------------------------------------------


def _read_xlsx_rows(p: Path) -> list[dict[str, Any]]:
    with p.open("rb") as fh:
        wb = load_workbook(fh, read_only=True, data_only=True)
        try:
            if not wb.worksheets:
                return []
            if len(wb.worksheets) > 1:
                _logger.info(
                    "read_workbook:extra_sheets_ignored file=%s total=%d",
                    p.name,
                    len(wb.worksheets),
                )
            return _rows_from_grid(wb.worksheets[0].iter_rows(values_only=True))
        finally:
            wb.close()


def _xls_value(cell: xlrd.sheet.Cell, datemode: int) -> Any:
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
        return None
    if cell.ctype == xlrd.XL_CELL_DATE:
        return xlrd.xldate_as_datetime(cell.value, datemode)
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return bool(cell.value)
    return cell.value


def _read_xls_rows(p: Path) -> list[dict[str, Any]]:
    book = xlrd.open_workbook(file_contents=p.read_bytes())
    try:
        if book.nsheets == 0:
            return []
        if book.nsheets > 1:
            _logger.info(
                "read_workbook:extra_sheets_ignored file=%s total=%d", p.name, book.nsheets
            )
        sheet = book.sheet_by_index(0)
        grid = (
            [_xls_value(c, book.datemode) for c in sheet.row(i)] for i in range(sheet.nrows)
        )
        return _rows_from_grid(grid)
    finally:
        book.release_resources()


def read_workbook_rows(path: str | PathLike[str]) -> list[dict[str, Any]]:
    """Read the first worksheet of an ``.xlsx`` or ``.xls`` workbook.

    Missing or unreadable files propagate as ``FileNotFoundError`` /
    ``PermissionError``; anything the workbook library rejects is a
    :class:`ParseError`.
    """

    p = Path(path)
    try:
        if p.suffix.lower() == ".xls":
            return _read_xls_rows(p)
        return _read_xlsx_rows(p)
    except (FileNotFoundError, PermissionError):
        raise
    except (
        xlrd.XLRDError,
        CompDocError,
        InvalidFileException,
        zipfile.BadZipFile,
        KeyError,
        ValueError,
        OSError,
    ) as e:
        raise ParseError(f"Error parsing Excel file {p.name!r}: {e}") from e


def read_rows(path: str | PathLike[str]) -> list[dict[str, Any]]:
    """Dispatch on file extension; unsupported extensions fail before any I/O."""

    p = Path(path)
    ext = p.suffix.lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFormatError(str(path))
    if ext in CSV_EXTENSIONS:
        rows = read_csv_rows(p)
    else:
        rows = read_workbook_rows(p)
    _logger.info("read_rows:done file=%s rows=%d", p.name, len(rows))
    return rows


__all__ = [
    "CSV_DELIMITERS",
    "SUPPORTED_EXTENSIONS",
    "read_csv_rows",
    "read_rows",
    "read_workbook_rows",
    "sniff_dialect",
]
