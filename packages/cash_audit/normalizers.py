"""Spreadsheet row → canonical :class:`~cash_audit.models.Transaction` mapping.

Client ledgers arrive with English or Indonesian headers (``Date`` /
``Tanggal``, ``Amount`` / ``Nilai`` / ``Nominal``, ...). Each target field is
resolved through an ordered alias chain declared in :data:`FIELD_RULES`; the
first alias holding a present value wins, otherwise the field default applies.
Adding a header variant is a data change to that table.

The batch is all-or-nothing: if any row cannot be mapped, :class:`MappingError`
is raised and no transaction is returned.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import MappingError
from .models import RawRow, Transaction, TransactionType

_logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Alias table
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FieldRule:
    """Ordered header aliases for one canonical field.

    ``default`` receives the batch clock (epoch milliseconds) and the row index
    so generated defaults stay unique within a batch.
    """

    field: str
    aliases: tuple[str, ...]
    default: Callable[[int, int], Any]


def _today(now_ms: int, _index: int) -> str:
    return datetime.fromtimestamp(now_ms / 1000).date().isoformat()


def _generated_ref(now_ms: int, index: int) -> str:
    return f"IMP-{now_ms}-{index}"


FIELD_RULES: tuple[FieldRule, ...] = (
    FieldRule("date", ("Date", "date", "Tanggal"), _today),
    FieldRule(
        "description",
        ("Description", "description", "Keterangan"),
        lambda _t, _i: "Imported Transaction",
    ),
    FieldRule("reference_no", ("ReferenceNo", "ref", "No Bukti", "Ref"), _generated_ref),
    FieldRule("amount", ("Amount", "amount", "Nilai", "Nominal"), lambda _t, _i: "0"),
    FieldRule("type", ("Type", "type", "Tipe"), lambda _t, _i: "DEBIT"),
    FieldRule(
        "counterparty",
        ("Counterparty", "counterparty", "Lawan Transaksi", "Vendor"),
        lambda _t, _i: "General",
    ),
    FieldRule("account_code", ("Account", "accountCode", "Akun"), lambda _t, _i: "0-0000"),
)

# Words that name the credit side outright; checked before the D/IN heuristic
# because both contain a "D".
_CREDIT_WORDS: tuple[str, ...] = ("CREDIT", "KREDIT")

_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]+")
_FLOAT_PREFIX_RE = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def _is_present(value: Any) -> bool:
    # Empty strings, zero, False and NaN fall through to the next alias.
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return value != ""
    if isinstance(value, (int, float, Decimal)):
        if isinstance(value, float) and math.isnan(value):
            return False
        return value != 0
    return True


def resolve_field(row: RawRow, rule: FieldRule, *, now_ms: int, index: int) -> Any:
    """Return the first present aliased value in ``row`` or the rule default."""

    for alias in rule.aliases:
        value = row.get(alias)
        if _is_present(value):
            return value
    return rule.default(now_ms, index)


def _to_text(value: Any) -> str:
    if isinstance(value, datetime):
        if value.time() == datetime.min.time():
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_amount(value: Any) -> Decimal:
    """Coerce a raw amount cell to a non-negative ``Decimal``.

    Text keeps only digits, ``.`` and ``-`` and is read up to the first
    character that can no longer extend a number, so ``"Rp 1.500.000,-"``
    reads as ``1.5``. Anything that does not yield a finite number is ``0``.
    The sign is discarded.
    """

    if isinstance(value, str):
        cleaned = _NON_NUMERIC_RE.sub("", value)
        m = _FLOAT_PREFIX_RE.match(cleaned)
        if not m:
            return Decimal(0)
        number = Decimal(m.group(0))
    elif isinstance(value, bool):
        number = Decimal(int(value))
    elif isinstance(value, (int, Decimal)):
        number = Decimal(value)
    elif isinstance(value, float):
        if not math.isfinite(value):
            return Decimal(0)
        number = Decimal(str(value))
    else:
        try:
            number = Decimal(str(value))
        except InvalidOperation:
            return Decimal(0)
    if not number.is_finite():
        return Decimal(0)
    return abs(number)


def classify_type(value: Any) -> TransactionType:
    """Classify a raw type cell as DEBIT or CREDIT.

    Explicit credit words win; otherwise any ``D`` or ``IN`` in the uppercased
    text means DEBIT ("Debit", "DR", "IN", "Cash In"), and everything else
    is CREDIT ("Out", "CR").
    """

    text = _to_text(value).upper()
    if any(word in text for word in _CREDIT_WORDS):
        return TransactionType.CREDIT
    if "D" in text or "IN" in text:
        return TransactionType.DEBIT
    return TransactionType.CREDIT


# ---------------------------------------------------------------------------
# Row / batch normalization
# ---------------------------------------------------------------------------


def normalize_row(row: RawRow, *, index: int, now_ms: int) -> Transaction:
    if not isinstance(row, Mapping):
        raise TypeError(f"expected a mapping of header -> value, got {type(row).__name__}")
    values = {
        rule.field: resolve_field(row, rule, now_ms=now_ms, index=index) for rule in FIELD_RULES
    }
    return Transaction(
        id=f"IMP-{now_ms}-{index}",
        date=_to_text(values["date"]),
        description=_to_text(values["description"]),
        reference_no=_to_text(values["reference_no"]),
        amount=parse_amount(values["amount"]),
        type=classify_type(values["type"]),
        account_code=_to_text(values["account_code"]),
        counterparty=_to_text(values["counterparty"]),
    )


def normalize_rows(rows: Iterable[RawRow], *, now: datetime | None = None) -> list[Transaction]:
    """Map raw rows to canonical transactions, preserving length and order.

    Parameters
    ----------
    rows:
        Header-keyed rows as produced by :func:`cash_audit.ingest.read_rows`.
    now:
        Clock used for generated ids, references and the default date.
        Defaults to the current time; one reading is shared by the batch.
    """

    now_ms = int((now or datetime.now()).timestamp() * 1000)
    out: list[Transaction] = []
    for index, row in enumerate(rows):
        try:
            out.append(normalize_row(row, index=index, now_ms=now_ms))
        except (TypeError, ValueError, ArithmeticError) as e:
            _logger.error("normalize:row_failed index=%d error=%s", index, e.__class__.__name__)
            raise MappingError(index, str(e)) from e
    _logger.info("normalize:done rows=%d", len(out))
    return out


__all__ = [
    "FIELD_RULES",
    "FieldRule",
    "classify_type",
    "normalize_row",
    "normalize_rows",
    "parse_amount",
    "resolve_field",
]
