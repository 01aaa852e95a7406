"""
Ledger Orchestrator

This module ties the components together for one session:

    Session Tracker -> Ledger State Core (load, seed, profile)
                    -> Settings Store (hydrated from the profile)
    Period Selector -> Ledger State Core (monthly view)

DESIGN DECISION: There is no global ledger. create_ledger_components()
builds one LedgerApp per session; the presentation layer holds that handle
and calls start() / close() around its lifetime.
"""

import random
from typing import Optional

import structlog

from money_ledger.audit.logger import AuditLogger, configure_logging
from money_ledger.config import LedgerSettings, get_settings
from money_ledger.ledger import LedgerStateCore
from money_ledger.models.ledger import AuthUser, UserPreferences
from money_ledger.period import PeriodSelector
from money_ledger.preferences import SettingsStore
from money_ledger.seeding import CategorySeeder
from money_ledger.services.cache import LocalCache
from money_ledger.services.storage import (
    GoogleSheetsRemoteStore,
    InMemorySessionProvider,
    RemoteStore,
    SessionProvider,
)
from money_ledger.session import SessionTracker


logger = structlog.get_logger(__name__)


class LedgerApp:
    """
    One session's worth of ledger components.

    Identity changes reported by the session tracker drive the core:
    a new user triggers the initial load, sign-out resets it. Redundant
    session events for the same user are filtered by the tracker.
    """

    def __init__(
        self,
        session: SessionTracker,
        settings: SettingsStore,
        period: PeriodSelector,
        ledger: LedgerStateCore,
    ):
        self.session = session
        self.settings = settings
        self.period = period
        self.ledger = ledger
        self._remove_listener = None

    async def start(self) -> None:
        """Begin following the session; load the ledger if signed in."""
        if self._remove_listener is None:
            self._remove_listener = self.session.add_listener(self._on_user_changed)
        await self.session.start()

    async def _on_user_changed(self, user: Optional[AuthUser]) -> None:
        logger.info("ledger_user_changed", user_id=user.id if user else None)
        await self.ledger.initialize(user)

    async def close(self) -> None:
        """Stop following the session and wait for pending settings syncs."""
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None
        self.session.stop()
        await self.settings.flush()
        self.ledger.close()


def create_ledger_components(
    store: RemoteStore,
    session_provider: SessionProvider,
    cache: Optional[LocalCache] = None,
    ledger_settings: Optional[LedgerSettings] = None,
    seeder: Optional[CategorySeeder] = None,
    rng: Optional[random.Random] = None,
) -> LedgerApp:
    """
    Factory function to create all components for one session.

    Args:
        store: Remote store gateway
        session_provider: Backend auth session source
        cache: Local preference cache (defaults to the configured file)
        ledger_settings: Ledger configuration (defaults to environment)
        seeder: Seeding protocol override (tests inject a no-sleep seeder)

    Returns:
        An unstarted LedgerApp
    """
    ledger_settings = ledger_settings or get_settings().ledger
    cache = cache or LocalCache(ledger_settings.cache_path)
    audit_logger = AuditLogger()

    settings_store = SettingsStore(
        cache=cache,
        profiles=store.profiles,
        defaults=UserPreferences(
            language=ledger_settings.default_language,
            date_format=ledger_settings.default_date_format,
            currency=ledger_settings.default_currency,
        ),
        audit_logger=audit_logger,
    )
    period = PeriodSelector()
    seeder = seeder or CategorySeeder(
        store.categories,
        jitter_ms=(ledger_settings.seed_jitter_min_ms, ledger_settings.seed_jitter_max_ms),
        rng=rng,
        audit_logger=audit_logger,
    )
    ledger = LedgerStateCore(
        store=store,
        settings_store=settings_store,
        period=period,
        seeder=seeder,
        audit_logger=audit_logger,
    )
    session = SessionTracker(session_provider, audit_logger=audit_logger)
    return LedgerApp(session=session, settings=settings_store, period=period, ledger=ledger)


def create_google_sheets_app() -> LedgerApp:
    """
    Build a LedgerApp backed by Google Sheets, signed in as the configured
    LEDGER_USER_ID (Sheets has no auth of its own).
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)
    ledger_settings = settings.ledger
    if not ledger_settings.user_id:
        raise ValueError("LEDGER_USER_ID must be set for the Google Sheets backend")

    user = AuthUser(id=ledger_settings.user_id, email=ledger_settings.user_email)
    return create_ledger_components(
        store=GoogleSheetsRemoteStore(),
        session_provider=InMemorySessionProvider(user),
        ledger_settings=ledger_settings,
    )
