"""Dashboard KPIs and plain-text renderings of the vouching worksheet.

``summarize`` computes the cash position and risk counts from the current
transaction list; ``render_dashboard`` and ``render_worksheet`` return strings
and leave printing to the caller.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from .models import RiskLevel, Transaction, TransactionType

OPENING_BALANCE: Decimal = Decimal(150_000_000)
UNKNOWN_PERIOD = "unknown"

_DATE_FORMATS: tuple[str, ...] = ("%Y-%m-%d", "%Y/%m/%d", "%d/%m/%Y", "%d-%m-%Y")


@dataclass(frozen=True, slots=True)
class MonthlyFlow:
    period: str  # YYYY-MM, or "unknown"
    inflow: Decimal
    outflow: Decimal


@dataclass(frozen=True, slots=True)
class DashboardSummary:
    cash_balance: Decimal
    total_inflow: Decimal
    total_outflow: Decimal
    high_risk_count: int
    anomaly_count: int
    pending_count: int
    transaction_count: int
    monthly: tuple[MonthlyFlow, ...]


def period_of(date_text: str) -> str:
    s = date_text.strip().split(" ")[0].split("T")[0]
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).strftime("%Y-%m")
        except ValueError:
            continue
    return UNKNOWN_PERIOD


def summarize(
    transactions: Sequence[Transaction], *, opening_balance: Decimal = OPENING_BALANCE
) -> DashboardSummary:
    """Compute dashboard KPIs. DEBIT is cash in, CREDIT is cash out."""

    inflow = Decimal(0)
    outflow = Decimal(0)
    by_period: dict[str, list[Decimal]] = {}
    for tx in transactions:
        bucket = by_period.setdefault(period_of(tx.date), [Decimal(0), Decimal(0)])
        if tx.type is TransactionType.DEBIT:
            inflow += tx.amount
            bucket[0] += tx.amount
        else:
            outflow += tx.amount
            bucket[1] += tx.amount

    periods = sorted(p for p in by_period if p != UNKNOWN_PERIOD)
    if UNKNOWN_PERIOD in by_period:
        periods.append(UNKNOWN_PERIOD)

    return DashboardSummary(
        cash_balance=opening_balance + inflow - outflow,
        total_inflow=inflow,
        total_outflow=outflow,
        high_risk_count=sum(1 for tx in transactions if tx.risk_level is RiskLevel.HIGH),
        anomaly_count=sum(1 for tx in transactions if tx.anomaly_flag),
        pending_count=sum(1 for tx in transactions if tx.is_pending),
        transaction_count=len(transactions),
        monthly=tuple(
            MonthlyFlow(period=p, inflow=by_period[p][0], outflow=by_period[p][1])
            for p in periods
        ),
    )


def format_idr(amount: Decimal) -> str:
    """Format as Indonesian rupiah: ``IDR 1.500.000`` (``,`` for decimals)."""

    q = amount.quantize(Decimal("0.01"))
    whole, _, frac = f"{q:,.2f}".partition(".")
    whole = whole.replace(",", ".")
    return f"IDR {whole}" if frac == "00" else f"IDR {whole},{frac}"


def _table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))
    lines = [
        "  ".join(h.ljust(widths[i]) for i, h in enumerate(headers)).rstrip(),
        "  ".join("-" * w for w in widths),
    ]
    for row in rows:
        lines.append("  ".join(c.ljust(widths[i]) for i, c in enumerate(row)).rstrip())
    return "\n".join(lines)


def render_dashboard(summary: DashboardSummary) -> str:
    lines = [
        "Executive Dashboard: Cash Position",
        f"  Current Cash Balance : {format_idr(summary.cash_balance)}",
        f"  Inflow               : {format_idr(summary.total_inflow)}",
        f"  Outflow              : {format_idr(summary.total_outflow)}",
        f"  High Risk Tx         : {summary.high_risk_count}",
        f"  Anomalies            : {summary.anomaly_count}",
        f"  Pending Analysis     : {summary.pending_count} of {summary.transaction_count}",
    ]
    if summary.monthly:
        lines.append("")
        lines.append(
            _table(
                ("Period", "Inflow", "Outflow"),
                [(m.period, format_idr(m.inflow), format_idr(m.outflow)) for m in summary.monthly],
            )
        )
    if summary.high_risk_count:
        lines.append("")
        lines.append(
            f"Audit Alerts: {summary.high_risk_count} transactions flagged as High Risk "
            "requiring immediate vouching."
        )
    return "\n".join(lines)


def _risk_cell(tx: Transaction) -> str:
    if tx.is_pending:
        return "Pending"
    flag = " !" if tx.anomaly_flag else ""
    return f"{tx.risk_level} ({tx.risk_score}){flag}"


def render_worksheet(transactions: Sequence[Transaction]) -> str:
    """Render the vouching worksheet as a fixed-width table."""

    headers = (
        "ID", "Date", "Ref", "Description", "Counterparty", "Account", "Type", "Amount", "Risk"
    )
    rows = [
        (
            tx.id,
            tx.date,
            tx.reference_no,
            tx.description,
            tx.counterparty,
            tx.account_code,
            str(tx.type),
            format_idr(tx.amount),
            _risk_cell(tx),
        )
        for tx in transactions
    ]
    return _table(headers, rows)


__all__ = [
    "DashboardSummary",
    "MonthlyFlow",
    "OPENING_BALANCE",
    "format_idr",
    "period_of",
    "render_dashboard",
    "render_worksheet",
    "summarize",
]
