from __future__ import annotations

from decimal import Decimal

import pytest

from cash_audit.models import Transaction, TransactionType
from cash_audit.reporting import (
    OPENING_BALANCE,
    format_idr,
    period_of,
    render_dashboard,
    render_worksheet,
    summarize,
)
from cash_audit.seed import seed_transactions


def test_seed_ledger_summary():
    summary = summarize(seed_transactions())

    assert summary.total_inflow == Decimal(25_000_000)
    assert summary.total_outflow == Decimal(69_000_000)
    assert summary.cash_balance == OPENING_BALANCE + Decimal(25_000_000) - Decimal(69_000_000)
    assert summary.high_risk_count == 1
    assert summary.anomaly_count == 1
    assert summary.pending_count == 3
    assert summary.transaction_count == 5
    assert [m.period for m in summary.monthly] == ["2023-10"]


def test_monthly_flows_sorted_with_unknown_dates_last():
    txs = [
        Transaction("A", "not a date", "x", "r1", Decimal(1), TransactionType.DEBIT, "1", "c"),
        Transaction("B", "05/11/2023", "x", "r2", Decimal(2), TransactionType.CREDIT, "1", "c"),
        Transaction("C", "2023-10-31", "x", "r3", Decimal(3), TransactionType.DEBIT, "1", "c"),
    ]
    summary = summarize(txs, opening_balance=Decimal(0))
    assert [(m.period, m.inflow, m.outflow) for m in summary.monthly] == [
        ("2023-10", Decimal(3), Decimal(0)),
        ("2023-11", Decimal(0), Decimal(2)),
        ("unknown", Decimal(1), Decimal(0)),
    ]
    assert summary.cash_balance == Decimal(2)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("2023-10-05", "2023-10"),
        ("2023/10/05", "2023-10"),
        ("05/10/2023", "2023-10"),
        ("2023-10-05T08:00:00", "2023-10"),
        ("2023-10-05 08:00:00", "2023-10"),
        ("", "unknown"),
    ],
)
def test_period_of(text, expected):
    assert period_of(text) == expected


def test_format_idr():
    assert format_idr(Decimal(106_000_000)) == "IDR 106.000.000"
    assert format_idr(Decimal("1500000.5")) == "IDR 1.500.000,50"
    assert format_idr(Decimal(0)) == "IDR 0"


def test_dashboard_mentions_balance_and_alerts():
    text = render_dashboard(summarize(seed_transactions()))
    assert "IDR 106.000.000" in text
    assert "Pending Analysis     : 3 of 5" in text
    assert "Audit Alerts: 1 transactions flagged as High Risk" in text


def test_dashboard_without_high_risk_has_no_alert():
    text = render_dashboard(summarize(seed_transactions()[:2]))
    assert "Audit Alerts" not in text


def test_worksheet_shows_pending_and_scored_rows():
    text = render_worksheet(seed_transactions())
    lines = text.splitlines()
    assert lines[0].split() == [
        "ID",
        "Date",
        "Ref",
        "Description",
        "Counterparty",
        "Account",
        "Type",
        "Amount",
        "Risk",
    ]
    assert len(lines) == 2 + 5
    tx3 = next(line for line in lines if line.startswith("TX003"))
    assert tx3.endswith("High (85) !")
    assert "IDR 55.000.000" in tx3
    tx5 = next(line for line in lines if line.startswith("TX005"))
    assert tx5.endswith("Medium (55)")
    tx1 = next(line for line in lines if line.startswith("TX001"))
    assert tx1.endswith("Pending")
