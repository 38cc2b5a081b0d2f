"""Data models and type aliases for ``cash_audit``.

``Transaction`` is the canonical record produced by the import normalizer and
enriched by the risk analyzer. Amounts are ``Decimal`` and always
non-negative; direction lives in ``type``.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class TransactionType(StrEnum):
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class RiskLevel(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class KKPStatus(StrEnum):
    """Working-paper (KKP) document status."""

    DRAFT = "Draft"
    IN_PROGRESS = "In Progress"
    FINISH = "Finish"
    APPROVED = "Approved"


class UserRole(StrEnum):
    JUNIOR = "Junior Auditor"
    SENIOR = "Senior Auditor"
    MANAGER = "Manager"
    PARTNER = "Partner"


class TaskStatus(StrEnum):
    TODO = "TODO"
    DOING = "DOING"
    DONE = "DONE"


# ---------------------------------------------------------------------------
# Core records
# ---------------------------------------------------------------------------

# A raw spreadsheet row: header -> cell value (str, number, date or None).
type RawRow = Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class Transaction:
    """A canonical cash transaction.

    The risk fields are either all set (analysed) or all ``None`` ("Pending").
    Records are immutable; :meth:`with_risk` returns an enriched copy.
    """

    id: str
    date: str
    description: str
    reference_no: str
    amount: Decimal
    type: TransactionType
    account_code: str
    counterparty: str
    risk_score: int | None = None
    risk_level: RiskLevel | None = None
    anomaly_flag: bool | None = None

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(f"Transaction.amount must be non-negative, got {self.amount}")
        risk = (self.risk_score, self.risk_level, self.anomaly_flag)
        if any(v is None for v in risk) and not all(v is None for v in risk):
            raise ValueError(
                "risk_score, risk_level and anomaly_flag must be set together "
                f"(transaction {self.id!r})"
            )
        if self.risk_score is not None and not 0 <= self.risk_score <= 100:
            raise ValueError(f"risk_score must be within [0,100], got {self.risk_score}")

    @property
    def is_pending(self) -> bool:
        return self.risk_level is None

    def with_risk(self, result: RiskAnalysisResult) -> Transaction:
        return replace(
            self,
            risk_score=result.risk_score,
            risk_level=result.risk_level,
            anomaly_flag=result.is_anomaly,
        )


class RiskAnalysisResult(BaseModel):
    """One scored transaction, as returned by a risk scorer.

    Accepts both the camelCase wire names used in the model's JSON output
    (``transactionId``, ``riskScore``, ``riskLevel``, ``isAnomaly``) and the
    Python field names.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    transaction_id: str = Field(alias="transactionId", min_length=1)
    risk_score: int = Field(alias="riskScore", ge=0, le=100)
    risk_level: RiskLevel = Field(alias="riskLevel")
    reasoning: str = ""
    is_anomaly: bool = Field(alias="isAnomaly")

    @field_validator("risk_score", mode="before")
    @classmethod
    def _round_score(cls, v: Any) -> Any:
        # Models return numbers; keep the integer contract.
        if isinstance(v, float):
            if not math.isfinite(v):
                raise ValueError("riskScore must be a finite number")
            return int(round(v))
        return v

    @field_validator("risk_level", mode="before")
    @classmethod
    def _normalize_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().capitalize()
        return v


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    assignee: str
    status: TaskStatus
    due_date: str


@dataclass(frozen=True, slots=True)
class ChatMessage:
    id: str
    sender: str
    content: str
    timestamp: str


type Transactions = Sequence[Transaction]
type RiskResults = Sequence[RiskAnalysisResult]


__all__ = [
    "ChatMessage",
    "KKPStatus",
    "RawRow",
    "RiskAnalysisResult",
    "RiskLevel",
    "RiskResults",
    "Task",
    "TaskStatus",
    "Transaction",
    "TransactionType",
    "Transactions",
    "UserRole",
]
