"""
Core Data Models for the Money Ledger

These models define the schemas for everything held in the ledger's
in-memory snapshot and for every record exchanged with the remote store.
They are designed to:
1. Enforce type safety at runtime
2. Own the translation between storage field names and internal names
3. Be serializable for storage and logging

DESIGN DECISION: Storage rows carry strings where the ledger wants types
(amounts as text, ISO dates, is_active that may be null or blank). The
translation lives on the models (from_record / to_record / to_patch) so
the rest of the system never touches raw rows.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from money_ledger.period import normalize_datetime


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money movement. Categories share the same enum."""
    INCOME = "income"
    EXPENSE = "expense"


class Language(str, Enum):
    EN = "en"
    KO = "ko"


class Currency(str, Enum):
    KRW = "KRW"
    USD = "USD"
    AUD = "AUD"


class DateFormat(str, Enum):
    """
    The four supported date display patterns.

    Values are the display patterns as the presentation layer knows them;
    statistics.format_date maps them onto strftime.
    """
    ISO = "yyyy-MM-dd"
    DAY_FIRST = "dd/MM/yyyy"
    MONTH_FIRST = "MM/dd/yyyy"
    KOREAN = "yyyy. MM. dd."


class LedgerStatus(str, Enum):
    """
    Lifecycle of the ledger state core.

    uninitialized -> loading -> ready | degraded
    """
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    DEGRADED = "degraded"


class LedgerErrorCode(str, Enum):
    """Reason codes surfaced to callers when an operation is rejected."""
    NOT_AUTHENTICATED = "not_authenticated"
    ADD_FAILED = "add_failed"
    UPDATE_FAILED = "update_failed"
    DELETE_FAILED = "delete_failed"
    CATEGORY_EXISTS = "category_exists"
    NAME_EXISTS = "name_exists"
    HAS_TRANSACTIONS = "has_transactions"
    NOT_FOUND = "not_found"


# =============================================================================
# USER / SESSION
# =============================================================================

class AuthUser(BaseModel):
    """Authenticated identity as reported by the remote backend."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    email: Optional[str] = None


class Session(BaseModel):
    """A session snapshot. user=None means unauthenticated."""
    model_config = ConfigDict(frozen=True)

    user: Optional[AuthUser] = None


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionInput(BaseModel):
    """
    A transaction as entered by the user, before the store assigns an id.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    date: datetime
    amount: Decimal = Field(..., ge=0)
    type: TransactionType
    category_id: str
    description: str = ""

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, v: Any) -> Any:
        return normalize_datetime(v)

    def to_record(self, user_id: str) -> dict:
        """Build the storage row for an insert."""
        return {
            "amount": str(self.amount),
            "type": self.type.value,
            "description": self.description,
            "date": self.date.isoformat(),
            "category_id": self.category_id,
            "user_id": user_id,
        }


class Transaction(TransactionInput):
    """
    A persisted transaction.

    category_id should reference an existing Category but may dangle once the
    category is removed independently; consumers render that as
    "uncategorized", never as an error.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str

    @classmethod
    def from_record(cls, record: dict) -> "Transaction":
        """Translate a storage row (category_id, ...) into the ledger schema."""
        return cls(
            id=str(record["id"]),
            date=record["date"],
            amount=Decimal(str(record["amount"])),
            type=record["type"],
            category_id=str(record.get("category_id") or ""),
            description=record.get("description") or "",
        )

    def to_patch(self) -> dict:
        """All mutable fields, keyed by storage column."""
        return {
            "amount": str(self.amount),
            "type": self.type.value,
            "category_id": self.category_id,
            "description": self.description,
            "date": self.date.isoformat(),
        }


# =============================================================================
# CATEGORIES
# =============================================================================

class CategoryInput(BaseModel):
    """A category as entered by the user, before the store assigns an id."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    type: TransactionType
    color: str = Field(default="#6366f1")
    is_active: bool = True

    def same_key(self, other: "CategoryInput") -> bool:
        """(name, type) is the uniqueness key among one user's categories."""
        return self.name == other.name and self.type == other.type

    def to_record(self, user_id: str) -> dict:
        return {
            "name": self.name,
            "type": self.type.value,
            "color": self.color,
            "is_active": self.is_active,
            "user_id": user_id,
        }


class Category(CategoryInput):
    """
    A persisted category.

    Inactive categories stay resolvable for historical display but are left
    out of the choice set offered for new transactions.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str

    @field_validator("is_active", mode="before")
    @classmethod
    def default_missing_active(cls, v: Any) -> Any:
        """Rows created before is_active existed come back null or blank."""
        if v is None or v == "":
            return True
        if isinstance(v, str):
            return v.strip().lower() not in {"false", "0", "no"}
        return v

    @classmethod
    def from_record(cls, record: dict) -> "Category":
        return cls(
            id=str(record["id"]),
            name=record["name"],
            type=record["type"],
            color=record.get("color") or "#6366f1",
            is_active=record.get("is_active"),
        )

    def to_patch(self) -> dict:
        """Fields pushed on update. Type is fixed once created."""
        return {
            "name": self.name,
            "color": self.color,
            "is_active": self.is_active,
        }


# =============================================================================
# USER SETTINGS / PROFILE
# =============================================================================

class UserPreferences(BaseModel):
    """
    Per-user display preferences.

    One instance per user, mirrored in the local cache and in exactly one
    remote profile record. Last write wins.
    """
    language: Language = Language.KO
    date_format: DateFormat = DateFormat.ISO
    currency: Currency = Currency.KRW

    @classmethod
    def from_profile(
        cls,
        record: dict,
        fallback: "UserPreferences",
    ) -> "UserPreferences":
        """
        Read a profile row. Missing or unknown values keep the fallback.
        """
        values = fallback.model_dump()
        for field, column in (
            ("language", "language"),
            ("date_format", "date_format"),
            ("currency", "currency"),
        ):
            raw = record.get(column)
            if raw:
                values[field] = raw
        try:
            return cls(**values)
        except ValueError:
            return fallback

    def to_profile(self, user_id: str) -> dict:
        return {
            "id": user_id,
            "language": self.language.value,
            "date_format": self.date_format.value,
            "currency": self.currency.value,
            "updated_at": datetime.utcnow().isoformat(),
        }


# =============================================================================
# SNAPSHOT / RESULTS
# =============================================================================

class LedgerSnapshot(BaseModel):
    """
    Read-only view published to subscribers after every state change.
    """
    model_config = ConfigDict(frozen=True)

    status: LedgerStatus
    user: Optional[AuthUser] = None
    transactions: tuple[Transaction, ...] = ()
    categories: tuple[Category, ...] = ()
    selected_date: datetime


class OperationResult(BaseModel):
    """
    Outcome of a transaction mutation.

    Transaction mutations never raise; callers that want to surface a
    failure inspect ok / error instead.
    """
    ok: bool
    value: Optional[Any] = None
    error: Optional[LedgerErrorCode] = None
    detail: Optional[str] = None

    @classmethod
    def success(cls, value: Any = None) -> "OperationResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(
        cls,
        error: LedgerErrorCode,
        detail: Optional[str] = None,
    ) -> "OperationResult":
        return cls(ok=False, error=error, detail=detail)


class Notice(BaseModel):
    """A non-blocking message for the user (e.g. 'please refresh')."""
    code: str
    message: str
    created_at: datetime = Field(default_factory=datetime.utcnow)


# =============================================================================
# ERRORS
# =============================================================================

class LedgerError(Exception):
    """Base exception for ledger operations."""

    def __init__(self, code: LedgerErrorCode, detail: Optional[str] = None):
        self.code = code
        self.detail = detail
        message = code.value if not detail else f"{code.value}: {detail}"
        super().__init__(message)


class CategoryOperationError(LedgerError):
    """A category add/update/delete was rejected or failed remotely."""
    pass
