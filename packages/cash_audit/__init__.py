"""Public interface for the ``cash_audit`` package.

Re-exports the import normalizer, the risk analyzer and the session state
container as the stable import surface. Besides a ``NullHandler`` on the
package logger there is no runtime logic here.
"""

import logging

from .errors import (
    CashAuditError,
    ImportFailure,
    MappingError,
    NoValidRecordsError,
    OperationInProgressError,
    ParseError,
    TransitionNotAllowedError,
    UnsupportedFormatError,
)
from .ingest import load_transactions_from_file, read_rows
from .models import (
    ChatMessage,
    KKPStatus,
    RiskAnalysisResult,
    RiskLevel,
    Task,
    TaskStatus,
    Transaction,
    TransactionType,
    UserRole,
)
from .normalizers import FIELD_RULES, FieldRule, normalize_rows
from .risk import (
    LocalRiskScorer,
    OpenAIRiskScorer,
    RiskScorer,
    analyze_transactions_risk,
    build_risk_scorer,
    merge_risk_results,
)
from .settings import Settings, load_settings
from .state import AuditSession, SessionState, reduce
from .workflow import KKPWorkflow

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Import
    "FIELD_RULES",
    "FieldRule",
    "load_transactions_from_file",
    "normalize_rows",
    "read_rows",
    # Risk
    "LocalRiskScorer",
    "OpenAIRiskScorer",
    "RiskScorer",
    "analyze_transactions_risk",
    "build_risk_scorer",
    "merge_risk_results",
    # State / workflow / config
    "AuditSession",
    "KKPWorkflow",
    "SessionState",
    "Settings",
    "load_settings",
    "reduce",
    # Models
    "ChatMessage",
    "KKPStatus",
    "RiskAnalysisResult",
    "RiskLevel",
    "Task",
    "TaskStatus",
    "Transaction",
    "TransactionType",
    "UserRole",
    # Errors
    "CashAuditError",
    "ImportFailure",
    "MappingError",
    "NoValidRecordsError",
    "OperationInProgressError",
    "ParseError",
    "TransitionNotAllowedError",
    "UnsupportedFormatError",
]
