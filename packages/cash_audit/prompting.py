"""Prompt construction and transaction serialization for risk analysis (CAAT).

This module builds:
- A deterministic JSON serialization of transactions with a fixed field order
  (camelCase wire names).
- The system and user prompts for the risk-scoring task.
- The strict ``response_format`` (JSON Schema) object for the OpenAI
  Responses API.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from decimal import Decimal
from typing import Any

from openai.types.responses.response_format_text_json_schema_config_param import (
    ResponseFormatTextJSONSchemaConfigParam,
)

from .models import RiskLevel, Transaction

BEGIN_MARKER = "BEGIN_TRANSACTIONS_JSON"
END_MARKER = "END_TRANSACTIONS_JSON"

# (wire name, attribute name)
TRANSACTION_FIELD_ORDER: tuple[tuple[str, str], ...] = (
    ("id", "id"),
    ("date", "date"),
    ("description", "description"),
    ("referenceNo", "reference_no"),
    ("amount", "amount"),
    ("type", "type"),
    ("accountCode", "account_code"),
    ("counterparty", "counterparty"),
)

RISK_SIGNALS: tuple[str, ...] = (
    "Round numbers (often potential fraud).",
    "Weekend transactions.",
    "Unusually high amounts.",
    "Duplicate amounts or references.",
)


def _json_amount(amount: Decimal) -> int | float:
    return int(amount) if amount == amount.to_integral_value() else float(amount)


def transaction_to_wire(tx: Transaction) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for wire, attr in TRANSACTION_FIELD_ORDER:
        value = getattr(tx, attr)
        if isinstance(value, Decimal):
            value = _json_amount(value)
        elif attr == "type":
            value = str(value)
        out[wire] = value
    return out


def serialize_transactions_to_json(transactions: Sequence[Transaction]) -> str:
    """Serialize transactions to a JSON array with a fixed field order."""

    return json.dumps([transaction_to_wire(tx) for tx in transactions], ensure_ascii=False)


def build_system_instructions() -> str:
    return (
        "You are an audit analyst applying computer-assisted audit techniques to cash "
        "transactions. Score every transaction you are given exactly once, using its "
        "transactionId verbatim. Output JSON only that conforms to the specified schema."
    )


def build_user_content(transactions_json: str) -> str:
    """Build the user prompt: the risk signals to look for plus the delimited JSON."""

    signals = "\n".join(f"{i}. {s}" for i, s in enumerate(RISK_SIGNALS, start=1))
    levels = ", ".join(level.value for level in RiskLevel)
    return (
        "Analyze the following cash transactions for audit risks.\n"
        "Look for:\n"
        f"{signals}\n\n"
        "For each transaction return its transactionId, a riskScore (0-100), "
        f"a riskLevel ({levels}), a reasoning string, and a boolean isAnomaly.\n\n"
        f"{BEGIN_MARKER}\n{transactions_json}\n{END_MARKER}"
    )


def build_response_format() -> ResponseFormatTextJSONSchemaConfigParam:
    """Return the strict JSON Schema response_format object.

    The Responses API requires an object at the top level, so the per-transaction
    results are wrapped under ``"results"``.
    """

    result: ResponseFormatTextJSONSchemaConfigParam = {
        "type": "json_schema",
        "name": "transaction_risk_analysis",
        "schema": {
            "type": "object",
            "properties": {
                "results": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "transactionId": {"type": "string"},
                            "riskScore": {"type": "number", "minimum": 0, "maximum": 100},
                            "riskLevel": {
                                "type": "string",
                                "enum": [level.value for level in RiskLevel],
                            },
                            "reasoning": {"type": "string"},
                            "isAnomaly": {"type": "boolean"},
                        },
                        "required": [
                            "transactionId",
                            "riskScore",
                            "riskLevel",
                            "reasoning",
                            "isAnomaly",
                        ],
                        "additionalProperties": False,
                    },
                }
            },
            "required": ["results"],
            "additionalProperties": False,
        },
        "strict": True,
    }
    return result


__all__ = [
    "BEGIN_MARKER",
    "END_MARKER",
    "RISK_SIGNALS",
    "build_response_format",
    "build_system_instructions",
    "build_user_content",
    "serialize_transactions_to_json",
    "transaction_to_wire",
]
