"""
Ledger State Core

Owns the canonical in-memory snapshot of one user's transactions and
categories, and keeps it in step with the remote store.

DESIGN DECISIONS:
1. Remote first. Every mutation awaits the remote call and then updates
   memory from what the store returned. A reader never observes a record
   that was not persisted. Nothing is optimistic, nothing is retried.
2. Collections are ordered maps keyed by id, exposed as tuples. Replace and
   delete are O(1) and duplicate ids cannot exist.
3. Transaction mutations never raise: they log and return an
   OperationResult. Category mutations raise CategoryOperationError with a
   reason code, because the user has to be told why.
4. Referential integrity between transactions and categories is enforced
   here, before any remote call. The store has no cross-collection
   constraint.
5. One instance per session, constructed explicitly and torn down with
   close(). There is no module-level ledger.

Concurrent mutations are not serialized: two overlapping calls may apply
their snapshot updates in either order. The store's per-record atomicity
is what keeps any single record correct.

A mutation that completes while a refresh is loading is replayed onto the
snapshot that refresh publishes. During the very first load there is no
user yet, so mutations are rejected with not_authenticated until the load
publishes.
"""

import asyncio
from collections import OrderedDict
from typing import Callable, Optional, Union

import structlog
from pydantic import ValidationError

from money_ledger.audit.logger import AuditLogger
from money_ledger.models.audit import AuditEventBuilder, AuditEventType
from money_ledger.models.defaults import (
    DEFAULT_CATEGORY_COLOR,
    LEGACY_CATEGORIES,
    PRESET_COLORS,
    SEEDING_FAILED_MESSAGE,
    UNCATEGORIZED_COLOR,
    UNCATEGORIZED_LABEL,
)
from money_ledger.models.ledger import (
    AuthUser,
    Category,
    CategoryInput,
    CategoryOperationError,
    Language,
    LedgerErrorCode,
    LedgerSnapshot,
    LedgerStatus,
    Notice,
    OperationResult,
    Transaction,
    TransactionInput,
    TransactionType,
)
from money_ledger.period import PeriodSelector, within_month
from money_ledger.preferences import SettingsStore
from money_ledger.seeding import CategorySeeder
from money_ledger.services.storage.interface import RemoteStore


logger = structlog.get_logger(__name__)

SnapshotListener = Callable[[LedgerSnapshot], None]


class LedgerStateCore:
    """
    The ledger for the signed-in user.

    Lifecycle: uninitialized -> loading -> ready | degraded.
    Without an authenticated user it stays uninitialized with empty
    collections.

    Args:
        store: Remote store gateway
        settings_store: Preferences, hydrated from the remote profile on load
        period: Selected period for the monthly view
        seeder: Category seeding protocol
    """

    def __init__(
        self,
        store: RemoteStore,
        settings_store: SettingsStore,
        period: Optional[PeriodSelector] = None,
        seeder: Optional[CategorySeeder] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._settings_store = settings_store
        self._period = period or PeriodSelector()
        self._audit_logger = audit_logger or AuditLogger()
        self._seeder = seeder or CategorySeeder(
            store.categories, audit_logger=self._audit_logger
        )

        self._status = LedgerStatus.UNINITIALIZED
        self._user: Optional[AuthUser] = None
        self._transactions: OrderedDict[str, Transaction] = OrderedDict()
        self._categories: OrderedDict[str, Category] = OrderedDict()
        self._notices: list[Notice] = []
        self._listeners: list[SnapshotListener] = []
        self._generation = 0
        # Writes that finished while a load was in flight, keyed by
        # (collection, id). None marks a delete.
        self._written_during_load: dict[tuple[str, str], tuple] = {}

        self._unsubscribe_period = self._period.subscribe(lambda _: self._publish())

    # =========================================================================
    # Read interface
    # =========================================================================

    @property
    def status(self) -> LedgerStatus:
        return self._status

    @property
    def user(self) -> Optional[AuthUser]:
        return self._user

    @property
    def period(self) -> PeriodSelector:
        return self._period

    @property
    def settings(self) -> SettingsStore:
        return self._settings_store

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return tuple(self._transactions.values())

    @property
    def categories(self) -> tuple[Category, ...]:
        return tuple(self._categories.values())

    @property
    def monthly_transactions(self) -> tuple[Transaction, ...]:
        """Transactions inside the selected calendar month, ends inclusive."""
        reference = self._period.selected_date
        return tuple(
            t for t in self._transactions.values()
            if within_month(t.date, reference)
        )

    @property
    def notices(self) -> tuple[Notice, ...]:
        return tuple(self._notices)

    def drain_notices(self) -> list[Notice]:
        """Return pending notices and clear them."""
        notices, self._notices = self._notices, []
        return notices

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            status=self._status,
            user=self._user,
            transactions=self.transactions,
            categories=self.categories,
            selected_date=self._period.selected_date,
        )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """
        Call `listener` with a fresh snapshot after every state change.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("snapshot_listener_failed")

    # -------------------------------------------------------------------------
    # Category lookups
    # -------------------------------------------------------------------------

    def find_category(self, category_id: str) -> Optional[Category]:
        return self._categories.get(category_id)

    def categories_for(
        self,
        type: TransactionType,
        include_inactive: bool = False,
    ) -> tuple[Category, ...]:
        """
        Categories of one type. Inactive ones are left out unless asked for,
        so the default is the choice set for a new transaction.
        """
        return tuple(
            c for c in self._categories.values()
            if c.type == type and (include_inactive or c.is_active)
        )

    def category_label(
        self,
        category_id: str,
        language: Optional[Language] = None,
    ) -> tuple[str, str]:
        """
        (name, color) for display. Dangling ids resolve to "uncategorized".
        """
        category = self._categories.get(category_id)
        if category is None:
            language = language or self._settings_store.language
            return UNCATEGORIZED_LABEL[language], UNCATEGORIZED_COLOR
        return category.name, category.color

    def suggest_color(self, type: TransactionType) -> str:
        """First preset color not yet used by categories of `type`."""
        used = {c.color for c in self._categories.values() if c.type == type}
        for color in PRESET_COLORS:
            if color not in used:
                return color
        return DEFAULT_CATEGORY_COLOR

    # =========================================================================
    # Initial load
    # =========================================================================

    def _notice(self, code: str, message: str) -> None:
        self._notices.append(Notice(code=code, message=message))

    def reset(self) -> None:
        """Back to uninitialized with empty collections (e.g. sign-out)."""
        self._generation += 1
        self._user = None
        self._transactions = OrderedDict()
        self._categories = OrderedDict()
        self._status = LedgerStatus.UNINITIALIZED
        self._written_during_load.clear()
        self._settings_store.bind_user(None)
        self._publish()

    async def initialize(self, user: Optional[AuthUser]) -> LedgerStatus:
        """
        Load the ledger for `user`.

        Transactions and categories are fetched concurrently. A failed
        transaction fetch leaves the list empty. A failed category fetch
        falls back to the built-in defaults (memory only); an empty category
        collection triggers seeding, unless the transaction history could
        not be read. The profile is then
        fetched or created and hydrates the settings store. The result is
        published as one snapshot.

        Any unhandled failure leaves the ledger degraded. There is no retry
        loop; call refresh() to try again.
        """
        if user is None:
            self.reset()
            return self._status

        self._generation += 1
        generation = self._generation
        self._status = LedgerStatus.LOADING
        self._publish()

        user_id = user.id
        degraded = False
        transactions: list[Transaction] = []
        categories: tuple[Category, ...] = ()

        try:
            tx_result, cat_result = await asyncio.gather(
                self._fetch_transactions(user_id),
                self._fetch_categories(user_id),
                return_exceptions=True,
            )
            if isinstance(tx_result, BaseException):
                self._audit_logger.log(
                    AuditEventBuilder.ledger_load_failed(user_id, str(tx_result))
                )
                degraded = True
            else:
                transactions = tx_result

            if isinstance(cat_result, BaseException):
                self._audit_logger.log(
                    AuditEventBuilder.category_fetch_failed(user_id, str(cat_result))
                )
                categories = LEGACY_CATEGORIES
                degraded = True
                self._notice(
                    "category_fetch_failed",
                    SEEDING_FAILED_MESSAGE[self._settings_store.language],
                )
            elif cat_result:
                categories = cat_result
            elif degraded:
                # History unknown, so no seed set can be chosen; serve defaults
                categories = LEGACY_CATEGORIES
            else:
                outcome = await self._seeder.seed(
                    user_id, has_transactions=bool(transactions)
                )
                categories = outcome.categories
                if outcome.failed:
                    degraded = True
                    self._notice(
                        "category_seeding_failed",
                        SEEDING_FAILED_MESSAGE[self._settings_store.language],
                    )

            try:
                await self._settings_store.load_profile(user_id)
            except Exception as e:
                logger.warning("profile_load_failed", user_id=user_id, error=str(e))
                degraded = True
        except Exception as e:
            if generation != self._generation:
                return self._superseded()
            self._audit_logger.log(AuditEventBuilder.ledger_load_failed(user_id, str(e)))
            self._user = user
            self._transactions = OrderedDict((t.id, t) for t in transactions)
            self._categories = OrderedDict(
                (c.id, c) for c in (categories or LEGACY_CATEGORIES)
            )
            self._apply_writes_during_load(user_id)
            self._status = LedgerStatus.DEGRADED
            self._publish()
            return self._status

        if generation != self._generation:
            # Superseded by a newer load or a sign-out while we were waiting
            return self._superseded()

        self._user = user
        self._transactions = OrderedDict((t.id, t) for t in transactions)
        self._categories = OrderedDict((c.id, c) for c in categories)
        self._apply_writes_during_load(user_id)
        self._status = LedgerStatus.DEGRADED if degraded else LedgerStatus.READY
        self._audit_logger.log(AuditEventBuilder.ledger_loaded(
            user_id, len(self._transactions), len(self._categories), degraded,
        ))
        self._publish()
        return self._status

    def _superseded(self) -> LedgerStatus:
        # load_profile rebinds the settings store; point it back at whoever
        # is current now
        self._settings_store.bind_user(self._user.id if self._user else None)
        return self._status

    def _record_write(self, collection: str, item_id: str, value) -> None:
        if self._status != LedgerStatus.LOADING:
            return
        user_id = self._user.id if self._user else None
        self._written_during_load[(collection, item_id)] = (user_id, value)

    def _apply_writes_during_load(self, user_id: str) -> None:
        """
        Replay mutations that completed while the load was running. The
        fetched rows may predate them, and publishing the fetch alone would
        hide a persisted record until the next refresh.
        """
        targets = {"transactions": self._transactions, "categories": self._categories}
        for (collection, item_id), (owner, value) in self._written_during_load.items():
            if owner != user_id:
                continue
            target = targets[collection]
            if value is None:
                target.pop(item_id, None)
            elif item_id in target:
                target[item_id] = value
            else:
                target[item_id] = value
                if collection == "transactions":
                    target.move_to_end(item_id, last=False)
        self._written_during_load.clear()

    async def refresh(self) -> LedgerStatus:
        """Re-run the initial load for the current user."""
        return await self.initialize(self._user)

    async def _fetch_transactions(self, user_id: str) -> list[Transaction]:
        rows = await self._store.transactions.select(
            {"user_id": user_id}, order_by="date", ascending=False,
        )
        return [Transaction.from_record(row) for row in rows]

    async def _fetch_categories(self, user_id: str) -> tuple[Category, ...]:
        rows = await self._store.categories.select(
            {"user_id": user_id}, order_by="created_at", ascending=True,
        )
        return tuple(Category.from_record(row) for row in rows)

    # =========================================================================
    # Transactions
    # =========================================================================

    async def add_transaction(
        self,
        data: Union[TransactionInput, dict],
    ) -> OperationResult:
        """
        Insert a transaction and put the stored record at the front of the
        list. No re-sort happens: keeping date order is the caller's concern.
        """
        if self._user is None:
            logger.warning("transaction_add_rejected", reason="not authenticated")
            return OperationResult.failure(LedgerErrorCode.NOT_AUTHENTICATED)

        user_id = self._user.id
        try:
            if not isinstance(data, TransactionInput):
                data = TransactionInput(**data)
        except ValidationError as e:
            logger.warning("transaction_add_rejected", reason="invalid input", error=str(e))
            return OperationResult.failure(LedgerErrorCode.ADD_FAILED, str(e))

        try:
            row = await self._store.transactions.insert(data.to_record(user_id))
            created = Transaction.from_record(row)
        except Exception as e:
            self._audit_logger.log(
                AuditEventBuilder.transaction_failed("add", user_id, str(e))
            )
            return OperationResult.failure(LedgerErrorCode.ADD_FAILED, str(e))

        self._transactions[created.id] = created
        self._transactions.move_to_end(created.id, last=False)
        self._record_write("transactions", created.id, created)
        self._audit_logger.log(AuditEventBuilder.transaction_changed(
            AuditEventType.TRANSACTION_ADDED, user_id, created.id, str(created.amount),
        ))
        self._publish()
        return OperationResult.success(created)

    async def update_transaction(self, updated: Transaction) -> OperationResult:
        """Push all mutable fields, then replace the entry by id."""
        user_id = self._user.id if self._user else None
        try:
            row = await self._store.transactions.update(updated.to_patch(), updated.id)
            stored = Transaction.from_record(row) if row else updated
        except Exception as e:
            self._audit_logger.log(
                AuditEventBuilder.transaction_failed("update", user_id, str(e), updated.id)
            )
            return OperationResult.failure(LedgerErrorCode.UPDATE_FAILED, str(e))

        if stored.id in self._transactions:
            self._transactions[stored.id] = stored
        self._record_write("transactions", stored.id, stored)
        self._audit_logger.log(AuditEventBuilder.transaction_changed(
            AuditEventType.TRANSACTION_UPDATED, user_id, stored.id, str(stored.amount),
        ))
        self._publish()
        return OperationResult.success(stored)

    async def delete_transaction(self, transaction_id: str) -> OperationResult:
        user_id = self._user.id if self._user else None
        try:
            await self._store.transactions.delete(transaction_id)
        except Exception as e:
            self._audit_logger.log(
                AuditEventBuilder.transaction_failed("delete", user_id, str(e), transaction_id)
            )
            return OperationResult.failure(LedgerErrorCode.DELETE_FAILED, str(e))

        self._transactions.pop(transaction_id, None)
        self._record_write("transactions", transaction_id, None)
        self._audit_logger.log(AuditEventBuilder.transaction_changed(
            AuditEventType.TRANSACTION_DELETED, user_id, transaction_id,
        ))
        self._publish()
        return OperationResult.success(transaction_id)

    # =========================================================================
    # Categories
    # =========================================================================

    def _reject(
        self,
        operation: str,
        code: LedgerErrorCode,
        category_id: Optional[str] = None,
    ) -> CategoryOperationError:
        user_id = self._user.id if self._user else None
        self._audit_logger.log(
            AuditEventBuilder.category_rejected(operation, user_id, code.value, category_id)
        )
        return CategoryOperationError(code)

    def _fail(
        self,
        operation: str,
        code: LedgerErrorCode,
        error: Exception,
        category_id: Optional[str] = None,
    ) -> CategoryOperationError:
        user_id = self._user.id if self._user else None
        self._audit_logger.log(
            AuditEventBuilder.category_failed(operation, user_id, str(error), category_id)
        )
        return CategoryOperationError(code, str(error))

    async def add_category(self, data: Union[CategoryInput, dict]) -> Category:
        """
        Add a category unless (name, type) is already taken.

        Raises:
            CategoryOperationError: category_exists (no remote call made),
                not_authenticated, or add_failed
        """
        data = data if isinstance(data, CategoryInput) else CategoryInput(**data)
        if any(c.same_key(data) for c in self._categories.values()):
            raise self._reject("add", LedgerErrorCode.CATEGORY_EXISTS)
        if self._user is None:
            raise self._reject("add", LedgerErrorCode.NOT_AUTHENTICATED)

        user_id = self._user.id
        try:
            row = await self._store.categories.insert(data.to_record(user_id))
            created = Category.from_record(row)
        except Exception as e:
            raise self._fail("add", LedgerErrorCode.ADD_FAILED, e) from e

        self._categories[created.id] = created
        self._record_write("categories", created.id, created)
        self._audit_logger.log(AuditEventBuilder.category_changed(
            AuditEventType.CATEGORY_ADDED, user_id, created.id, created.name,
        ))
        self._publish()
        return created

    async def update_category(self, updated: Category) -> Category:
        """
        Push name, color and is_active, unless another category already
        has the same (name, type).

        Raises:
            CategoryOperationError: name_exists (no remote call made) or
                update_failed carrying the underlying error
        """
        current = self._categories.get(updated.id)
        if current is not None and updated.type != current.type:
            # Type is fixed once created; check the key the store will hold
            updated = updated.model_copy(update={"type": current.type})
        clash = any(
            c.id != updated.id and c.same_key(updated)
            for c in self._categories.values()
        )
        if clash:
            raise self._reject("update", LedgerErrorCode.NAME_EXISTS, updated.id)

        user_id = self._user.id if self._user else None
        try:
            row = await self._store.categories.update(updated.to_patch(), updated.id)
            stored = Category.from_record(row) if row else updated
        except Exception as e:
            raise self._fail("update", LedgerErrorCode.UPDATE_FAILED, e, updated.id) from e

        if stored.id in self._categories:
            self._categories[stored.id] = stored
        self._record_write("categories", stored.id, stored)
        self._audit_logger.log(AuditEventBuilder.category_changed(
            AuditEventType.CATEGORY_UPDATED, user_id, stored.id, stored.name,
        ))
        self._publish()
        return stored

    async def delete_category(self, category_id: str) -> None:
        """
        Delete a category no transaction references.

        Raises:
            CategoryOperationError: has_transactions (no remote call made)
                or delete_failed
        """
        if any(t.category_id == category_id for t in self._transactions.values()):
            raise self._reject("delete", LedgerErrorCode.HAS_TRANSACTIONS, category_id)

        user_id = self._user.id if self._user else None
        try:
            await self._store.categories.delete(category_id)
        except Exception as e:
            raise self._fail("delete", LedgerErrorCode.DELETE_FAILED, e, category_id) from e

        removed = self._categories.pop(category_id, None)
        self._record_write("categories", category_id, None)
        self._audit_logger.log(AuditEventBuilder.category_changed(
            AuditEventType.CATEGORY_DELETED, user_id, category_id,
            removed.name if removed else category_id,
        ))
        self._publish()

    # =========================================================================
    # Teardown
    # =========================================================================

    def close(self) -> None:
        """Detach from the period selector and drop all subscribers."""
        self._unsubscribe_period()
        self._listeners.clear()
        self._generation += 1
