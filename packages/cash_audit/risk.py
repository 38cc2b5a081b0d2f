"""Transaction risk scoring (CAAT) and result merging.

Public API:
    - :class:`RiskScorer` protocol and its two implementations,
      :class:`OpenAIRiskScorer` (hosted model) and :class:`LocalRiskScorer`
      (deterministic fallback)
    - :func:`build_risk_scorer`: pick an implementation from settings
    - :func:`analyze_transactions_risk`: run a scorer, degrading to ``[]``
    - :func:`merge_risk_results`: apply results onto a transaction list

No side effects occur at import time (no client creation, no environment
reads).
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any, Protocol

from openai import OpenAI
from pydantic import BaseModel, ConfigDict, ValidationError

from . import prompting
from .models import RiskAnalysisResult, RiskLevel, Transaction
from .settings import DEFAULT_MAX_BATCH, DEFAULT_MODEL, Settings, load_settings

HIGH_VALUE_THRESHOLD: Decimal = Decimal(50_000_000)

_logger = logging.getLogger(__name__)


class RiskScorer(Protocol):
    def score(self, transactions: Sequence[Transaction]) -> list[RiskAnalysisResult]: ...


# ---- Local fallback ----------------------------------------------------------


class LocalRiskScorer:
    """Deterministic scorer used when no model credential is configured.

    Transactions strictly above ``threshold`` score 85/High and are flagged;
    everything else scores 10/Low.
    """

    def __init__(self, threshold: Decimal = HIGH_VALUE_THRESHOLD) -> None:
        self.threshold = threshold

    def score(self, transactions: Sequence[Transaction]) -> list[RiskAnalysisResult]:
        results: list[RiskAnalysisResult] = []
        for tx in transactions:
            high = tx.amount > self.threshold
            results.append(
                RiskAnalysisResult(
                    transaction_id=tx.id,
                    risk_score=85 if high else 10,
                    risk_level=RiskLevel.HIGH if high else RiskLevel.LOW,
                    reasoning="High value transaction" if high else "No risk indicators",
                    is_anomaly=high,
                )
            )
        return results


# ---- Hosted model ------------------------------------------------------------


class _RiskBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    results: list[RiskAnalysisResult]


def _response_json(resp: Any) -> Any:
    text = getattr(resp, "output_text", None)
    if not isinstance(text, str) or not text:
        raise ValueError("model response carried no output_text")
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"model output is not JSON: {e.msg}") from e


def parse_risk_results(
    body: Any, *, submitted_ids: Sequence[str]
) -> list[RiskAnalysisResult]:
    """Validate the model payload and keep results for submitted transactions only.

    ``body`` is either ``{"results": [...]}`` (the strict schema shape) or a
    bare list of result objects. Results naming an id that was not submitted
    are dropped; for duplicate ids the first result wins. Raises ``ValueError``
    (including pydantic's ``ValidationError``) when the payload does not match.
    """

    if isinstance(body, list):
        body = {"results": body}
    if not isinstance(body, Mapping):
        raise ValueError("Invalid response: expected a JSON object at top level")

    parsed = _RiskBody.model_validate(body)
    allowed = set(submitted_ids)
    seen: set[str] = set()
    out: list[RiskAnalysisResult] = []
    for item in parsed.results:
        if item.transaction_id not in allowed:
            _logger.warning("risk:unknown_transaction_id id=%s", item.transaction_id)
            continue
        if item.transaction_id in seen:
            _logger.warning("risk:duplicate_transaction_id id=%s", item.transaction_id)
            continue
        seen.add(item.transaction_id)
        out.append(item)
    return out


class OpenAIRiskScorer:
    """Scores a leading batch of transactions with the OpenAI Responses API.

    Only the first ``max_batch`` transactions are submitted per call; the rest
    are left unscored. The client is created lazily on the first call unless
    one is injected.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        max_batch: int = DEFAULT_MAX_BATCH,
        client: Any | None = None,
    ) -> None:
        if max_batch <= 0:
            raise ValueError("max_batch must be a positive integer")
        self.api_key = api_key
        self.model = model
        self.max_batch = max_batch
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def score(self, transactions: Sequence[Transaction]) -> list[RiskAnalysisResult]:
        subset = list(transactions[: self.max_batch])
        if not subset:
            return []

        user_content = prompting.build_user_content(
            prompting.serialize_transactions_to_json(subset)
        )
        _logger.info(
            "risk:llm_request model=%s submitted=%d skipped=%d",
            self.model,
            len(subset),
            max(0, len(transactions) - len(subset)),
        )

        t0 = time.perf_counter()
        resp = self._get_client().responses.create(
            model=self.model,
            instructions=prompting.build_system_instructions(),
            input=user_content,
            text={"format": prompting.build_response_format()},
        )
        results = parse_risk_results(
            _response_json(resp), submitted_ids=[tx.id for tx in subset]
        )
        _logger.info(
            "risk:llm_done results=%d latency_ms=%.2f",
            len(results),
            (time.perf_counter() - t0) * 1000.0,
        )
        return results


# ---- Orchestration -----------------------------------------------------------


def build_risk_scorer(settings: Settings) -> RiskScorer:
    """Return the hosted scorer when a credential is configured, else the local one."""

    if settings.has_credential:
        return OpenAIRiskScorer(
            api_key=settings.openai_api_key,
            model=settings.model,
            max_batch=settings.max_batch,
        )
    _logger.warning("risk:no_api_key using deterministic local analysis")
    return LocalRiskScorer()


def analyze_transactions_risk(
    transactions: Sequence[Transaction],
    *,
    scorer: RiskScorer | None = None,
    settings: Settings | None = None,
) -> list[RiskAnalysisResult]:
    """Score ``transactions``; any scorer failure yields ``[]``.

    An empty result means "nothing updated": callers keep their existing risk
    fields. The failure is logged, not raised.
    """

    if scorer is None:
        scorer = build_risk_scorer(settings or load_settings())
    try:
        return scorer.score(list(transactions))
    except (ValidationError, ValueError) as e:
        _logger.error("risk:analysis_unparseable error=%s", e)
        return []
    except Exception as e:  # noqa: BLE001
        _logger.error("risk:analysis_failed error=%s: %s", e.__class__.__name__, e)
        return []


def merge_risk_results(
    transactions: Sequence[Transaction], results: Sequence[RiskAnalysisResult]
) -> list[Transaction]:
    """Apply results by transaction id; order, length and unmatched records are preserved."""

    by_id: dict[str, RiskAnalysisResult] = {}
    for r in results:
        by_id.setdefault(r.transaction_id, r)
    return [tx.with_risk(by_id[tx.id]) if tx.id in by_id else tx for tx in transactions]


__all__ = [
    "HIGH_VALUE_THRESHOLD",
    "LocalRiskScorer",
    "OpenAIRiskScorer",
    "RiskScorer",
    "analyze_transactions_risk",
    "build_risk_scorer",
    "merge_risk_results",
    "parse_risk_results",
]
