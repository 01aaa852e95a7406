"""
Integration tests: session changes driving the ledger through LedgerApp.
"""

import pytest

from money_ledger.config import LedgerSettings
from money_ledger.models.ledger import Currency, LedgerStatus
from money_ledger.orchestrator import create_ledger_components
from money_ledger.services.storage.memory import InMemorySessionProvider

from tests.helpers import OTHER_USER, USER, make_seeder


@pytest.fixture
def ledger_settings(tmp_path):
    return LedgerSettings(
        cache_path=tmp_path / "settings.json",
        seed_jitter_min_ms=0,
        seed_jitter_max_ms=0,
    )


def build_app(seeded_store, provider, ledger_settings):
    return create_ledger_components(
        store=seeded_store,
        session_provider=provider,
        ledger_settings=ledger_settings,
        seeder=make_seeder(seeded_store),
    )


class TestLedgerApp:
    """Tests for the session -> ledger wiring."""

    @pytest.mark.asyncio
    async def test_start_signed_in_loads_ledger(self, seeded_store, ledger_settings):
        provider = InMemorySessionProvider(USER)
        app = build_app(seeded_store, provider, ledger_settings)

        await app.start()

        assert app.ledger.status == LedgerStatus.READY
        assert app.ledger.user == USER
        assert len(app.ledger.transactions) == 3
        assert provider.session_requests == 1
        await app.close()

    @pytest.mark.asyncio
    async def test_start_signed_out_stays_uninitialized(self, seeded_store, ledger_settings):
        app = build_app(seeded_store, InMemorySessionProvider(), ledger_settings)

        await app.start()

        assert app.ledger.status == LedgerStatus.UNINITIALIZED
        assert seeded_store.transactions.calls == []
        await app.close()

    @pytest.mark.asyncio
    async def test_sign_out_resets_ledger(self, seeded_store, ledger_settings):
        provider = InMemorySessionProvider(USER)
        app = build_app(seeded_store, provider, ledger_settings)
        await app.start()

        await provider.sign_out()

        assert app.ledger.status == LedgerStatus.UNINITIALIZED
        assert app.ledger.transactions == ()
        assert app.ledger.categories == ()
        await app.close()

    @pytest.mark.asyncio
    async def test_token_refresh_does_not_reload(self, seeded_store, ledger_settings):
        provider = InMemorySessionProvider(USER)
        app = build_app(seeded_store, provider, ledger_settings)
        await app.start()
        selects = seeded_store.transactions.calls.count("select")

        await provider.refresh_token()

        assert seeded_store.transactions.calls.count("select") == selects
        await app.close()

    @pytest.mark.asyncio
    async def test_switching_user_reloads(self, seeded_store, ledger_settings):
        provider = InMemorySessionProvider(USER)
        app = build_app(seeded_store, provider, ledger_settings)
        await app.start()

        await provider.sign_in(OTHER_USER)

        assert app.ledger.user == OTHER_USER
        # The other user has nothing yet and gets the new-user set
        assert app.ledger.transactions == ()
        assert len(app.ledger.categories) > 0
        assert all(
            row["user_id"] in (USER.id, OTHER_USER.id)
            for row in seeded_store.categories.rows
        )
        await app.close()

    @pytest.mark.asyncio
    async def test_close_flushes_settings_and_stops(self, seeded_store, ledger_settings):
        provider = InMemorySessionProvider(USER)
        app = build_app(seeded_store, provider, ledger_settings)
        await app.start()

        app.settings.set_currency(Currency.USD)
        await app.close()

        [profile] = seeded_store.profiles.rows
        assert profile["currency"] == "USD"

        await provider.sign_out()
        assert app.ledger.user == USER

    @pytest.mark.asyncio
    async def test_defaults_come_from_settings(self, seeded_store, tmp_path):
        ledger_settings = LedgerSettings(
            cache_path=tmp_path / "settings.json",
            default_currency=Currency.AUD,
        )
        app = build_app(seeded_store, InMemorySessionProvider(), ledger_settings)
        assert app.settings.currency == Currency.AUD
