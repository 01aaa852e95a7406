"""
Settings Store

Holds the user's display preferences: language, date format, currency.

Every setter has the same shape:
1. Update the in-memory value
2. Write through to the local cache under the field's fixed key
3. Fire-and-forget an upsert of the changed field into the remote
   profile record (keyed by user id, stamped with updated_at)

Remote failures are logged, never surfaced. Local state and the local cache
are the source of truth for the current session; the remote profile only
carries preferences across sessions and devices.
"""

import asyncio
from datetime import datetime
from typing import Callable, Optional

import structlog

from money_ledger.audit.logger import AuditLogger
from money_ledger.models.audit import AuditEventBuilder, AuditEventType
from money_ledger.models.ledger import (
    Currency,
    DateFormat,
    Language,
    UserPreferences,
)
from money_ledger.services.cache import LocalCache
from money_ledger.services.storage.interface import RecordCollection


logger = structlog.get_logger(__name__)


# Local cache keys, one per field
CACHE_KEYS: dict[str, str] = {
    "language": "money-ledger.language",
    "date_format": "money-ledger.date-format",
    "currency": "money-ledger.currency",
}

# Remote profile column per field
PROFILE_COLUMNS: dict[str, str] = {
    "language": "language",
    "date_format": "date_format",
    "currency": "currency",
}


class SettingsStore:
    """
    Preferences with local write-through and best-effort remote sync.

    Args:
        cache: Local durable cache read at construction
        profiles: Remote profile collection (None disables remote sync)
        defaults: Values used when the cache has no entry
    """

    def __init__(
        self,
        cache: LocalCache,
        profiles: Optional[RecordCollection] = None,
        defaults: Optional[UserPreferences] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._cache = cache
        self._profiles = profiles
        self._audit_logger = audit_logger or AuditLogger()
        self._user_id: Optional[str] = None
        self._pending: set[asyncio.Task] = set()
        self._listeners: list[Callable[[UserPreferences], None]] = []
        self._prefs = self._read_cache(defaults or UserPreferences())

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def _read_cache(self, defaults: UserPreferences) -> UserPreferences:
        values = defaults.model_dump()
        for field, key in CACHE_KEYS.items():
            cached = self._cache.get(key)
            if cached:
                values[field] = cached
        try:
            return UserPreferences(**values)
        except ValueError:
            logger.warning("cached_preferences_invalid", values=values)
            return defaults

    @property
    def preferences(self) -> UserPreferences:
        return self._prefs

    @property
    def language(self) -> Language:
        return self._prefs.language

    @property
    def date_format(self) -> DateFormat:
        return self._prefs.date_format

    @property
    def currency(self) -> Currency:
        return self._prefs.currency

    def subscribe(self, listener: Callable[[UserPreferences], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Identity / hydration
    # -------------------------------------------------------------------------

    def bind_user(self, user_id: Optional[str]) -> None:
        """Set the identity remote syncs are keyed by (None stops syncing)."""
        self._user_id = user_id

    def apply_profile(self, profile: dict) -> UserPreferences:
        """
        Adopt the remote profile's values, overwriting the local cache
        wherever they disagree. The remote profile wins over a stale cache.
        """
        remote = UserPreferences.from_profile(profile, fallback=self._prefs)
        for field in CACHE_KEYS:
            value = getattr(remote, field).value
            if self._cache.get(CACHE_KEYS[field]) != value:
                self._cache.set(CACHE_KEYS[field], value)
        if remote != self._prefs:
            self._prefs = remote
            self._notify()
        return self._prefs

    # -------------------------------------------------------------------------
    # Setters
    # -------------------------------------------------------------------------

    def set_language(self, language: Language) -> None:
        self._set("language", Language(language))

    def set_date_format(self, date_format: DateFormat) -> None:
        self._set("date_format", DateFormat(date_format))

    def set_currency(self, currency: Currency) -> None:
        self._set("currency", Currency(currency))

    def _set(self, field: str, value) -> None:
        self._prefs = self._prefs.model_copy(update={field: value})
        self._cache.set(CACHE_KEYS[field], value.value)
        self._notify()
        self._schedule_sync({PROFILE_COLUMNS[field]: value.value})

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._prefs)

    # -------------------------------------------------------------------------
    # Remote sync
    # -------------------------------------------------------------------------

    def _schedule_sync(self, patch: dict) -> None:
        if self._profiles is None or self._user_id is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("settings_sync_skipped", reason="no running event loop")
            return
        task = loop.create_task(self._sync(self._user_id, patch))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _sync(self, user_id: str, patch: dict) -> None:
        row = {
            "id": user_id,
            **patch,
            "updated_at": datetime.utcnow().isoformat(),
        }
        try:
            await self._profiles.upsert(row)
        except Exception as e:
            self._audit_logger.log(
                AuditEventBuilder.settings_sync_failed(user_id, list(patch), str(e))
            )

    async def flush(self) -> None:
        """Wait for in-flight remote syncs (teardown and tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # -------------------------------------------------------------------------
    # Profile bootstrap
    # -------------------------------------------------------------------------

    async def load_profile(self, user_id: str) -> UserPreferences:
        """
        Fetch the user's profile, or create it from current values.

        A present profile overrides the cached preferences. An absent one is
        created seeded with what this store currently holds.

        Raises:
            StorageError: If the profile cannot be read or created
        """
        self.bind_user(user_id)
        if self._profiles is None:
            return self._prefs

        rows = await self._profiles.select({"id": user_id})
        if rows:
            prefs = self.apply_profile(rows[0])
            self._audit_logger.log(AuditEventBuilder.profile_synced(
                AuditEventType.PROFILE_HYDRATED, user_id, prefs.model_dump(mode="json"),
            ))
            return prefs

        await self._profiles.insert(self._prefs.to_profile(user_id))
        self._audit_logger.log(AuditEventBuilder.profile_synced(
            AuditEventType.PROFILE_CREATED, user_id, self._prefs.model_dump(mode="json"),
        ))
        return self._prefs
