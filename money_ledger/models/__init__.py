"""
Data Models Package

This package contains all Pydantic models used by the money ledger.
All data flowing between the ledger and the remote store passes through
these schemas.
"""

from money_ledger.models.ledger import (
    AuthUser,
    Category,
    CategoryInput,
    CategoryOperationError,
    Currency,
    DateFormat,
    Language,
    LedgerError,
    LedgerErrorCode,
    LedgerSnapshot,
    LedgerStatus,
    Notice,
    OperationResult,
    Session,
    Transaction,
    TransactionInput,
    TransactionType,
    UserPreferences,
)
from money_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "AuthUser",
    "Category",
    "CategoryInput",
    "CategoryOperationError",
    "Currency",
    "DateFormat",
    "Language",
    "LedgerError",
    "LedgerErrorCode",
    "LedgerSnapshot",
    "LedgerStatus",
    "Notice",
    "OperationResult",
    "Session",
    "Transaction",
    "TransactionInput",
    "TransactionType",
    "UserPreferences",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
