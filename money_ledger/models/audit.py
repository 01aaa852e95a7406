"""
Audit Models for the Money Ledger

Every remote mutation, seeding decision and degraded fallback produces an
audit event. This provides:
1. Traceability of what actually reached the remote store
2. Debugging information when the ledger falls back to defaults
3. A single place that knows how ledger events are described

DESIGN DECISION: Events are emitted to the structured log only. The remote
store holds ledger data, not logs.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Session
    SESSION_CHANGED = "session_changed"

    # Initial load
    LEDGER_LOADED = "ledger_loaded"
    LEDGER_LOAD_FAILED = "ledger_load_failed"
    CATEGORY_FETCH_FAILED = "category_fetch_failed"

    # Seeding
    CATEGORIES_SEEDED = "categories_seeded"
    SEEDING_RACE_LOST = "seeding_race_lost"
    SEEDING_FAILED = "seeding_failed"

    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSACTION_FAILED = "transaction_failed"

    # Categories
    CATEGORY_ADDED = "category_added"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"
    CATEGORY_REJECTED = "category_rejected"
    CATEGORY_FAILED = "category_failed"

    # Profile / settings
    PROFILE_CREATED = "profile_created"
    PROFILE_HYDRATED = "profile_hydrated"
    SETTINGS_SYNC_FAILED = "settings_sync_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Which record this is about
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'category', 'profile')"
    )
    entity_id: Optional[str] = None
    user_id: Optional[str] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_changed(
            AuditEventType.TRANSACTION_ADDED, user_id, transaction_id,
        )
        event = AuditEventBuilder.seeding_failed(user_id, error)
    """

    @staticmethod
    def session_changed(
        user_id: Optional[str],
        previous_user_id: Optional[str],
    ) -> AuditEvent:
        state = "signed in" if user_id else "signed out"
        return AuditEvent(
            event_type=AuditEventType.SESSION_CHANGED,
            user_id=user_id,
            description=f"Session changed: {state}",
            details={"previous_user_id": previous_user_id},
        )

    @staticmethod
    def ledger_loaded(
        user_id: str,
        transaction_count: int,
        category_count: int,
        degraded: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            severity=AuditSeverity.WARNING if degraded else AuditSeverity.INFO,
            user_id=user_id,
            description=(
                f"Ledger loaded with {transaction_count} transactions "
                f"and {category_count} categories"
            ),
            details={
                "transaction_count": transaction_count,
                "category_count": category_count,
                "degraded": degraded,
            },
        )

    @staticmethod
    def ledger_load_failed(user_id: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description="Initial ledger load failed",
            error_message=error_message,
        )

    @staticmethod
    def category_fetch_failed(user_id: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_FETCH_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="category",
            description="Category fetch failed, serving built-in defaults",
            error_message=error_message,
        )

    @staticmethod
    def categories_seeded(
        user_id: str,
        seed_set: str,
        count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORIES_SEEDED,
            user_id=user_id,
            entity_type="category",
            description=f"Seeded {count} categories from the {seed_set} set",
            details={"seed_set": seed_set, "count": count},
        )

    @staticmethod
    def seeding_race_lost(user_id: str, existing_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SEEDING_RACE_LOST,
            user_id=user_id,
            entity_type="category",
            description="Categories appeared during seeding delay, re-fetching",
            details={"existing_count": existing_count},
        )

    @staticmethod
    def seeding_failed(user_id: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SEEDING_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            entity_type="category",
            description="Category seeding insert failed, serving legacy defaults",
            error_message=error_message,
        )

    @staticmethod
    def transaction_changed(
        event_type: AuditEventType,
        user_id: Optional[str],
        transaction_id: str,
        amount: Optional[str] = None,
    ) -> AuditEvent:
        verb = event_type.value.split("_", 1)[1]
        details = {"amount": amount} if amount is not None else {}
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction {verb}: {transaction_id}",
            details=details,
        )

    @staticmethod
    def transaction_failed(
        operation: str,
        user_id: Optional[str],
        error_message: str,
        transaction_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction {operation} failed",
            details={"operation": operation},
            error_message=error_message,
        )

    @staticmethod
    def category_changed(
        event_type: AuditEventType,
        user_id: Optional[str],
        category_id: str,
        name: str,
    ) -> AuditEvent:
        verb = event_type.value.split("_", 1)[1]
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type="category",
            entity_id=category_id,
            description=f"Category {verb}: {name}",
            details={"name": name},
        )

    @staticmethod
    def category_rejected(
        operation: str,
        user_id: Optional[str],
        reason: str,
        category_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_REJECTED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="category",
            entity_id=category_id,
            description=f"Category {operation} rejected: {reason}",
            details={"operation": operation, "reason": reason},
        )

    @staticmethod
    def category_failed(
        operation: str,
        user_id: Optional[str],
        error_message: str,
        category_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            entity_type="category",
            entity_id=category_id,
            description=f"Category {operation} failed",
            details={"operation": operation},
            error_message=error_message,
        )

    @staticmethod
    def profile_synced(
        event_type: AuditEventType,
        user_id: str,
        values: dict,
    ) -> AuditEvent:
        action = "created" if event_type == AuditEventType.PROFILE_CREATED else "loaded"
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type="profile",
            entity_id=user_id,
            description=f"Profile {action}",
            details=values,
        )

    @staticmethod
    def settings_sync_failed(
        user_id: str,
        fields: list[str],
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTINGS_SYNC_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="profile",
            entity_id=user_id,
            description="Settings sync to remote profile failed",
            details={"fields": fields},
            error_message=error_message,
        )
