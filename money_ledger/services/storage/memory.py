"""
In-Memory Remote Store

A process-local implementation of the remote store and session contracts.
Used by the test suite and for running the ledger offline.

Every call yields to the event loop once before touching data, so that
concurrent ledger operations interleave the way they would against a real
network backend. The work after that yield is atomic.
"""

import asyncio
from datetime import datetime
from typing import Optional, Union
from uuid import uuid4

from money_ledger.models.ledger import AuthUser, Session
from money_ledger.services.storage.interface import (
    DuplicateError,
    Filters,
    NotFoundError,
    RecordCollection,
    RemoteStore,
    Row,
    SessionCallback,
    SessionProvider,
    StorageError,
    Unsubscribe,
)


class InMemoryCollection(RecordCollection):
    """
    One record collection held in a list of dicts.

    Args:
        name: Collection name (for error messages)
        unique_key: Optional tuple of columns that must be unique together
    """

    def __init__(self, name: str, unique_key: Optional[tuple[str, ...]] = None):
        self.name = name
        self._unique_key = unique_key
        self._rows: list[Row] = []
        self._failures: dict[str, Exception] = {}
        self.calls: list[str] = []

    # -------------------------------------------------------------------------
    # Test helpers
    # -------------------------------------------------------------------------

    def fail_on(self, operation: str, error: Optional[Exception] = None) -> None:
        """Make every `operation` call raise until clear_failures()."""
        self._failures[operation] = error or StorageError(
            f"{self.name}.{operation} unavailable"
        )

    def clear_failures(self) -> None:
        self._failures.clear()

    @property
    def rows(self) -> list[Row]:
        """A copy of the stored rows, in insertion order."""
        return [dict(row) for row in self._rows]

    def seed(self, rows: list[Row]) -> list[Row]:
        """Insert rows synchronously, bypassing failure injection."""
        return [self._store(row) for row in rows]

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        await asyncio.sleep(0)
        if operation in self._failures:
            raise self._failures[operation]

    @staticmethod
    def _matches(row: Row, filters: Optional[Filters]) -> bool:
        if not filters:
            return True
        return all(row.get(column) == value for column, value in filters.items())

    def _key_of(self, row: Row) -> Optional[tuple]:
        if not self._unique_key:
            return None
        return tuple(row.get(column) for column in self._unique_key)

    def _check_unique(self, candidates: list[Row]) -> None:
        if not self._unique_key:
            return
        seen = {self._key_of(row) for row in self._rows}
        for row in candidates:
            key = self._key_of(row)
            if key in seen:
                raise DuplicateError(
                    f"Duplicate {self.name} row for {self._unique_key}={key}"
                )
            seen.add(key)

    def _prepare(self, row: Row) -> Row:
        stored = dict(row)
        if not stored.get("id"):
            stored["id"] = str(uuid4())
        stored.setdefault("created_at", datetime.utcnow().isoformat())
        return stored

    def _store(self, row: Row) -> Row:
        stored = self._prepare(row)
        self._rows.append(stored)
        return dict(stored)

    def _find(self, match_id: str) -> Optional[int]:
        for idx, row in enumerate(self._rows):
            if str(row.get("id")) == str(match_id):
                return idx
        return None

    # -------------------------------------------------------------------------
    # RecordCollection
    # -------------------------------------------------------------------------

    async def select(
        self,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        ascending: bool = True,
    ) -> list[Row]:
        await self._enter("select")
        rows = [dict(row) for row in self._rows if self._matches(row, filters)]
        if order_by:
            present = [row for row in rows if row.get(order_by) is not None]
            missing = [row for row in rows if row.get(order_by) is None]
            present.sort(key=lambda row: row[order_by], reverse=not ascending)
            rows = present + missing
        return rows

    async def insert(self, rows: Union[Row, list[Row]]) -> Union[Row, list[Row]]:
        await self._enter("insert")
        if isinstance(rows, dict):
            prepared = [self._prepare(rows)]
        else:
            prepared = [self._prepare(row) for row in rows]
        self._check_unique(prepared)
        self._rows.extend(prepared)
        inserted = [dict(row) for row in prepared]
        return inserted[0] if isinstance(rows, dict) else inserted

    async def update(self, patch: Row, match_id: str) -> Row:
        await self._enter("update")
        idx = self._find(match_id)
        if idx is None:
            raise NotFoundError(f"{self.name} row not found: {match_id}")
        updated = {**self._rows[idx], **patch, "id": self._rows[idx]["id"]}
        others = self._rows[:idx] + self._rows[idx + 1:]
        if self._unique_key and self._key_of(updated) in {self._key_of(r) for r in others}:
            raise DuplicateError(f"Duplicate {self.name} row for {self._key_of(updated)}")
        self._rows[idx] = updated
        return dict(updated)

    async def delete(self, match_id: str) -> None:
        await self._enter("delete")
        idx = self._find(match_id)
        if idx is not None:
            del self._rows[idx]

    async def upsert(self, row: Row) -> Row:
        await self._enter("upsert")
        idx = self._find(row["id"]) if row.get("id") else None
        if idx is None:
            return self._store(row)
        self._rows[idx] = {**self._rows[idx], **row}
        return dict(self._rows[idx])

    async def count(self, filters: Optional[Filters] = None) -> int:
        await self._enter("count")
        return sum(1 for row in self._rows if self._matches(row, filters))


class InMemoryRemoteStore(RemoteStore):
    """
    Transactions, categories and profiles held in memory.

    Args:
        unique_categories: Enforce (user_id, name, type) uniqueness at the
            store, the way a hosted database constraint would.
    """

    def __init__(self, unique_categories: bool = False):
        self._transactions = InMemoryCollection("transactions")
        self._categories = InMemoryCollection(
            "categories",
            unique_key=("user_id", "name", "type") if unique_categories else None,
        )
        self._profiles = InMemoryCollection("profiles")

    @property
    def transactions(self) -> InMemoryCollection:
        return self._transactions

    @property
    def categories(self) -> InMemoryCollection:
        return self._categories

    @property
    def profiles(self) -> InMemoryCollection:
        return self._profiles


class InMemorySessionProvider(SessionProvider):
    """
    Session provider driven by explicit sign_in / sign_out calls.

    Also serves single-user backends: construct it with the configured user.
    """

    def __init__(self, user: Optional[AuthUser] = None):
        self._session = Session(user=user)
        self._callbacks: list[SessionCallback] = []
        self.session_requests = 0

    async def get_current_session(self) -> Session:
        self.session_requests += 1
        await asyncio.sleep(0)
        return self._session

    def on_session_change(self, callback: SessionCallback) -> Unsubscribe:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    async def _emit(self) -> None:
        for callback in list(self._callbacks):
            await callback(self._session)

    async def sign_in(self, user: AuthUser) -> None:
        self._session = Session(user=user)
        await self._emit()

    async def sign_out(self) -> None:
        self._session = Session(user=None)
        await self._emit()

    async def refresh_token(self) -> None:
        """Re-announce the current session, as a token refresh does."""
        await self._emit()
