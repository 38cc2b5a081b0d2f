"""Session state container with reducer-style transitions.

``SessionState`` is immutable; every change goes through :func:`reduce` with
one of the action records below. :class:`AuditSession` is the single writer:
it owns the current state, runs the user-triggered operations (file import,
system sync, CAAT) and guards each against re-entrant triggering with the
matching in-flight flag. A failed operation leaves the transaction list as it
was and clears its flag.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import datetime
from os import PathLike

from .errors import OperationInProgressError
from .ingest import load_transactions_from_file
from .models import RiskAnalysisResult, Transaction
from .risk import RiskScorer, analyze_transactions_risk, build_risk_scorer, merge_risk_results
from .settings import Settings, load_settings
from .sync import simulate_system_sync

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionState:
    transactions: tuple[Transaction, ...] = ()
    importing: bool = False
    analyzing: bool = False


# ---- Actions -----------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TransactionsAppended:
    transactions: tuple[Transaction, ...]


@dataclass(frozen=True, slots=True)
class RiskResultsMerged:
    results: tuple[RiskAnalysisResult, ...]


@dataclass(frozen=True, slots=True)
class ImportStarted:
    pass


@dataclass(frozen=True, slots=True)
class ImportFinished:
    pass


@dataclass(frozen=True, slots=True)
class AnalysisStarted:
    pass


@dataclass(frozen=True, slots=True)
class AnalysisFinished:
    pass


type Action = (
    TransactionsAppended
    | RiskResultsMerged
    | ImportStarted
    | ImportFinished
    | AnalysisStarted
    | AnalysisFinished
)


def reduce(state: SessionState, action: Action) -> SessionState:
    """Return the state that results from applying ``action`` to ``state``."""

    if isinstance(action, TransactionsAppended):
        return replace(state, transactions=state.transactions + tuple(action.transactions))
    if isinstance(action, RiskResultsMerged):
        if not action.results:
            return state
        merged = merge_risk_results(state.transactions, action.results)
        return replace(state, transactions=tuple(merged))
    if isinstance(action, ImportStarted):
        return replace(state, importing=True)
    if isinstance(action, ImportFinished):
        return replace(state, importing=False)
    if isinstance(action, AnalysisStarted):
        return replace(state, analyzing=True)
    if isinstance(action, AnalysisFinished):
        return replace(state, analyzing=False)
    raise TypeError(f"unknown action: {action!r}")


# ---- Session -----------------------------------------------------------------


class AuditSession:
    """In-memory audit session owning the transaction list."""

    def __init__(
        self,
        transactions: Iterable[Transaction] = (),
        *,
        settings: Settings | None = None,
        scorer: RiskScorer | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._state = SessionState(transactions=tuple(transactions))
        self._settings = settings
        self._scorer = scorer
        self._sleep = sleep

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return self._state.transactions

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = load_settings()
        return self._settings

    def dispatch(self, action: Action) -> SessionState:
        self._state = reduce(self._state, action)
        return self._state

    # ---- Operations ----------------------------------------------------------

    def _begin_import(self, operation: str) -> None:
        if self._state.importing:
            raise OperationInProgressError(operation)
        self.dispatch(ImportStarted())

    def import_file(
        self, path: str | PathLike[str], *, now: datetime | None = None
    ) -> list[Transaction]:
        """Import a CSV/XLSX ledger and append its transactions.

        Any :class:`~cash_audit.errors.ImportFailure` propagates after the
        in-flight flag is cleared; nothing is appended in that case.
        """

        self._begin_import("import")
        try:
            imported = load_transactions_from_file(path, now=now)
            self.dispatch(TransactionsAppended(tuple(imported)))
            _logger.info(
                "session:import_done added=%d total=%d", len(imported), len(self.transactions)
            )
            return imported
        finally:
            self.dispatch(ImportFinished())

    def sync_from_system(self, *, now: datetime | None = None) -> Transaction:
        self._begin_import("sync")
        try:
            tx = simulate_system_sync(
                len(self.transactions),
                delay=self.settings.sync_delay_sec,
                sleep=self._sleep,
                now=now,
            )
            self.dispatch(TransactionsAppended((tx,)))
            return tx
        finally:
            self.dispatch(ImportFinished())

    def run_caat(self) -> list[RiskAnalysisResult]:
        """Score the current transactions and merge the results.

        Returns the results applied; an empty list means nothing was updated.
        """

        if self._state.analyzing:
            raise OperationInProgressError("CAAT analysis")
        self.dispatch(AnalysisStarted())
        try:
            if self._scorer is None:
                self._scorer = build_risk_scorer(self.settings)
            results = analyze_transactions_risk(self.transactions, scorer=self._scorer)
            self.dispatch(RiskResultsMerged(tuple(results)))
            _logger.info("session:caat_done results=%d", len(results))
            return results
        finally:
            self.dispatch(AnalysisFinished())


__all__ = [
    "Action",
    "AnalysisFinished",
    "AnalysisStarted",
    "AuditSession",
    "ImportFinished",
    "ImportStarted",
    "RiskResultsMerged",
    "SessionState",
    "TransactionsAppended",
    "reduce",
]
