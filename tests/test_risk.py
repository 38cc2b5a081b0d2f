from __future__ import annotations

import json
from decimal import Decimal
from types import SimpleNamespace
from typing import Any

import pytest
from pydantic import ValidationError

import cash_audit.risk as risk_mod
from cash_audit import (
    LocalRiskScorer,
    OpenAIRiskScorer,
    RiskAnalysisResult,
    RiskLevel,
    Settings,
    Transaction,
    TransactionType,
    analyze_transactions_risk,
    build_risk_scorer,
    merge_risk_results,
)
from cash_audit.prompting import serialize_transactions_to_json
from cash_audit.risk import parse_risk_results
from tests.helpers.openai_stub import OpenAIStub, RawResponseStub, text_response


def _tx(i: int, amount: int | str = 1_000_000, **kw: Any) -> Transaction:
    return Transaction(
        id=kw.pop("id", f"TX{i:03d}"),
        date="2023-10-01",
        description=f"Transaction {i}",
        reference_no=f"BKK-{i:03d}",
        amount=Decimal(amount),
        type=kw.pop("type", TransactionType.CREDIT),
        account_code="6-1000",
        counterparty="Vendor",
        **kw,
    )


def _decide(item: dict[str, Any]) -> tuple[float, str, str, bool]:
    if item["amount"] >= 10_000_000:
        return 70, "High", "Large round amount", True
    return 5, "Low", "Routine", False


# ---- Local fallback ----------------------------------------------------------


def test_local_scorer_threshold_is_strictly_greater_than_fifty_million():
    above, at = _tx(1, 50_000_001), _tx(2, 50_000_000)
    high, low = LocalRiskScorer().score([above, at])

    assert high.transaction_id == "TX001"
    assert high.risk_score == 85
    assert high.risk_level is RiskLevel.HIGH
    assert high.is_anomaly is True
    assert high.reasoning == "High value transaction"

    assert low.transaction_id == "TX002"
    assert low.risk_score == 10
    assert low.risk_level is RiskLevel.LOW
    assert low.is_anomaly is False


def test_local_scorer_is_deterministic_and_scores_everything():
    txs = [_tx(i, amount=i * 7_000_000) for i in range(1, 21)]
    first = LocalRiskScorer().score(txs)
    second = LocalRiskScorer().score(txs)
    assert first == second
    assert [r.transaction_id for r in first] == [tx.id for tx in txs]


def test_build_risk_scorer_picks_implementation_from_credential():
    assert isinstance(build_risk_scorer(Settings()), LocalRiskScorer)

    scorer = build_risk_scorer(Settings(openai_api_key="sk-test", model="m-x", max_batch=3))
    assert isinstance(scorer, OpenAIRiskScorer)
    assert scorer.model == "m-x"
    assert scorer.max_batch == 3


def test_analyze_without_credential_uses_local_analysis():
    results = analyze_transactions_risk([_tx(1, 60_000_000), _tx(2, 100)])
    assert [(r.transaction_id, r.risk_level) for r in results] == [
        ("TX001", RiskLevel.HIGH),
        ("TX002", RiskLevel.LOW),
    ]


# ---- Hosted model ------------------------------------------------------------


def test_openai_scorer_request_shape_and_results(monkeypatch: pytest.MonkeyPatch):
    calls: list[dict[str, Any]] = []
    stub = OpenAIStub(_decide, calls)
    created: list[dict[str, Any]] = []

    def _fake_openai(**kwargs: Any) -> OpenAIStub:
        created.append(kwargs)
        return stub

    monkeypatch.setattr(risk_mod, "OpenAI", _fake_openai)

    scorer = build_risk_scorer(Settings(openai_api_key="sk-test"))
    results = analyze_transactions_risk([_tx(1, 15_000_000), _tx(2, 250_000)], scorer=scorer)

    assert created == [{"api_key": "sk-test"}]
    assert len(calls) == 1
    call = calls[0]
    assert call["model"] == "gpt-4.1-mini"
    assert "JSON" in call["instructions"]
    fmt = call["text"]["format"]
    assert fmt["type"] == "json_schema"
    assert fmt["name"] == "transaction_risk_analysis"
    assert fmt["strict"] is True
    item_schema = fmt["schema"]["properties"]["results"]["items"]
    assert set(item_schema["required"]) == {
        "transactionId",
        "riskScore",
        "riskLevel",
        "reasoning",
        "isAnomaly",
    }
    assert item_schema["properties"]["riskLevel"]["enum"] == ["Low", "Medium", "High"]

    assert [(r.transaction_id, r.risk_score, r.risk_level, r.is_anomaly) for r in results] == [
        ("TX001", 70, RiskLevel.HIGH, True),
        ("TX002", 5, RiskLevel.LOW, False),
    ]


def test_openai_scorer_submits_only_the_leading_batch():
    calls: list[dict[str, Any]] = []
    txs = [_tx(i) for i in range(1, 21)]
    scorer = OpenAIRiskScorer(client=OpenAIStub(_decide, calls))

    results = scorer.score(txs)

    assert len(calls) == 1
    submitted = json.loads(
        calls[0]["input"].split("BEGIN_TRANSACTIONS_JSON\n", 1)[1].rsplit(
            "\nEND_TRANSACTIONS_JSON", 1
        )[0]
    )
    assert [item["id"] for item in submitted] == [f"TX{i:03d}" for i in range(1, 16)]
    assert len(results) == 15

    merged = merge_risk_results(txs, results)
    assert [tx.is_pending for tx in merged] == [False] * 15 + [True] * 5


def test_openai_scorer_with_no_transactions_makes_no_call():
    calls: list[dict[str, Any]] = []
    assert OpenAIRiskScorer(client=OpenAIStub(_decide, calls)).score([]) == []
    assert calls == []


def test_openai_scorer_rejects_non_positive_batch():
    with pytest.raises(ValueError):
        OpenAIRiskScorer(max_batch=0)


def test_unknown_and_duplicate_ids_are_dropped():
    body = {
        "results": [
            {"transactionId": "TX001", "riskScore": 40, "riskLevel": "Medium",
             "reasoning": "first", "isAnomaly": False},
            {"transactionId": "TX999", "riskScore": 99, "riskLevel": "High",
             "reasoning": "invented", "isAnomaly": True},
            {"transactionId": "TX001", "riskScore": 90, "riskLevel": "High",
             "reasoning": "second", "isAnomaly": True},
        ]
    }
    scorer = OpenAIRiskScorer(client=RawResponseStub(text_response(body)))
    results = scorer.score([_tx(1), _tx(2)])
    assert len(results) == 1
    assert results[0].reasoning == "first"
    assert results[0].risk_level is RiskLevel.MEDIUM


def test_results_accept_bare_list_and_normalize_level_and_score():
    body = [
        {"transactionId": "TX001", "riskScore": 72.6, "riskLevel": " high ",
         "reasoning": "Weekend posting", "isAnomaly": True},
    ]
    (r,) = parse_risk_results(body, submitted_ids=["TX001"])
    assert r.risk_score == 73
    assert r.risk_level is RiskLevel.HIGH


# Only ``output_text`` is read; a payload elsewhere in the response is ignored.
_ONE_LOW_RESULT = {
    "results": [
        {"transactionId": "TX001", "riskScore": 12, "riskLevel": "Low",
         "reasoning": "ok", "isAnomaly": False}
    ]
}


@pytest.mark.parametrize(
    "client",
    [
        RawResponseStub(error=RuntimeError("connection reset")),
        RawResponseStub(text_response("not json at all")),
        RawResponseStub(text_response({"unexpected": True})),
        RawResponseStub(
            text_response(
                {
                    "results": [
                        {"transactionId": "TX001", "riskScore": 150, "riskLevel": "High",
                         "reasoning": "", "isAnomaly": True}
                    ]
                }
            )
        ),
        RawResponseStub(SimpleNamespace(output_text=None, output=[])),
        RawResponseStub(
            SimpleNamespace(
                output_text="",
                output=[
                    SimpleNamespace(content=[SimpleNamespace(text=json.dumps(_ONE_LOW_RESULT))])
                ],
            )
        ),
    ],
    ids=[
        "transport",
        "invalid-json",
        "missing-results",
        "score-out-of-range",
        "no-text",
        "empty-output-text",
    ],
)
def test_analysis_failures_return_empty_list(client: RawResponseStub):
    results = analyze_transactions_risk([_tx(1)], scorer=OpenAIRiskScorer(client=client))
    assert results == []
    assert len(client.calls) == 1


# ---- Result model and merging ------------------------------------------------


def test_risk_result_accepts_wire_and_python_names():
    wire = RiskAnalysisResult.model_validate(
        {"transactionId": "A", "riskScore": 50, "riskLevel": "Medium", "isAnomaly": False}
    )
    py = RiskAnalysisResult(
        transaction_id="A", risk_score=50, risk_level="Medium", is_anomaly=False
    )
    assert wire == py
    assert wire.reasoning == ""

    with pytest.raises(ValidationError):
        RiskAnalysisResult.model_validate(
            {"transactionId": "A", "riskScore": 50, "riskLevel": "Severe", "isAnomaly": False}
        )


def test_merge_preserves_order_length_and_unmatched_records():
    txs = [_tx(1), _tx(2), _tx(3, risk_score=55, risk_level=RiskLevel.MEDIUM, anomaly_flag=False)]
    results = [
        RiskAnalysisResult(
            transaction_id="TX002", risk_score=90, risk_level=RiskLevel.HIGH, is_anomaly=True
        ),
        RiskAnalysisResult(
            transaction_id="TX404", risk_score=10, risk_level=RiskLevel.LOW, is_anomaly=False
        ),
    ]

    merged = merge_risk_results(txs, results)

    assert [tx.id for tx in merged] == ["TX001", "TX002", "TX003"]
    assert merged[0] == txs[0]
    assert merged[0].is_pending
    assert (merged[1].risk_score, merged[1].risk_level, merged[1].anomaly_flag) == (
        90,
        RiskLevel.HIGH,
        True,
    )
    assert merged[1].description == txs[1].description
    assert merged[2] == txs[2]


def test_merge_with_no_results_is_identity():
    txs = [_tx(1), _tx(2)]
    assert merge_risk_results(txs, []) == txs


def test_transaction_rejects_partial_risk_fields():
    with pytest.raises(ValueError):
        _tx(1, risk_score=10)


def test_wire_serialization_uses_camel_case_and_numeric_amounts():
    items = json.loads(serialize_transactions_to_json([_tx(1, 1_500_000), _tx(2, "1.5")]))
    assert list(items[0]) == [
        "id",
        "date",
        "description",
        "referenceNo",
        "amount",
        "type",
        "accountCode",
        "counterparty",
    ]
    assert items[0]["amount"] == 1_500_000
    assert isinstance(items[0]["amount"], int)
    assert items[1]["amount"] == 1.5
    assert items[0]["type"] == "CREDIT"
