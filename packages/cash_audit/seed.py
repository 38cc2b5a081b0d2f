"""Demo ledger loaded into a fresh session."""

from __future__ import annotations

from decimal import Decimal

from .models import RiskLevel, Transaction, TransactionType


def seed_transactions() -> list[Transaction]:
    return [
        Transaction(
            id="TX001",
            date="2023-10-01",
            description="Office Supplies",
            reference_no="BKK-001",
            amount=Decimal(1_500_000),
            type=TransactionType.CREDIT,
            account_code="6-1000",
            counterparty="CV Maju Jaya",
        ),
        Transaction(
            id="TX002",
            date="2023-10-02",
            description="Sales Revenue",
            reference_no="BKM-001",
            amount=Decimal(25_000_000),
            type=TransactionType.DEBIT,
            account_code="4-1000",
            counterparty="PT Clients Indo",
        ),
        Transaction(
            id="TX003",
            date="2023-10-05",
            description="Consulting Fee",
            reference_no="BKK-002",
            amount=Decimal(55_000_000),
            type=TransactionType.CREDIT,
            account_code="6-2000",
            counterparty="Mr. Expert",
            risk_score=85,
            risk_level=RiskLevel.HIGH,
            anomaly_flag=True,
        ),
        Transaction(
            id="TX004",
            date="2023-10-06",
            description="Utility Bill",
            reference_no="BKK-003",
            amount=Decimal(2_500_000),
            type=TransactionType.CREDIT,
            account_code="6-3000",
            counterparty="PLN",
        ),
        Transaction(
            id="TX005",
            date="2023-10-07",
            description="Unknown Payment",
            reference_no="BKK-004",
            amount=Decimal(10_000_000),
            type=TransactionType.CREDIT,
            account_code="6-9999",
            counterparty="Unknown",
            risk_score=55,
            risk_level=RiskLevel.MEDIUM,
            anomaly_flag=False,
        ),
    ]


__all__ = ["seed_transactions"]
