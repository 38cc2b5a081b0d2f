"""File ingestion: CSV/XLSX/XLS readers and the file → transactions helper."""

from .readers import SUPPORTED_EXTENSIONS, read_csv_rows, read_rows, read_workbook_rows
from .utils import load_transactions_from_file

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "load_transactions_from_file",
    "read_csv_rows",
    "read_rows",
    "read_workbook_rows",
]
