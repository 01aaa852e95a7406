"""
Builders shared by the test modules.
"""

import random
from datetime import datetime
from typing import Optional

from money_ledger.ledger import LedgerStateCore
from money_ledger.models.ledger import AuthUser
from money_ledger.period import PeriodSelector
from money_ledger.preferences import SettingsStore
from money_ledger.seeding import CategorySeeder
from money_ledger.services.cache import LocalCache
from money_ledger.services.storage.memory import InMemoryRemoteStore


USER = AuthUser(id="user-1", email="user@example.com")
OTHER_USER = AuthUser(id="user-2", email="other@example.com")


async def no_sleep(_seconds: float) -> None:
    return None


def make_seeder(store: InMemoryRemoteStore, jitter_ms=(0, 0), sleep=no_sleep) -> CategorySeeder:
    return CategorySeeder(
        store.categories,
        jitter_ms=jitter_ms,
        sleep=sleep,
        rng=random.Random(7),
    )


def make_core(
    store: InMemoryRemoteStore,
    cache: LocalCache,
    selected: Optional[datetime] = None,
    seeder: Optional[CategorySeeder] = None,
) -> LedgerStateCore:
    settings_store = SettingsStore(cache=cache, profiles=store.profiles)
    return LedgerStateCore(
        store=store,
        settings_store=settings_store,
        period=PeriodSelector(selected or datetime(2024, 3, 10, 12, 0)),
        seeder=seeder or make_seeder(store),
    )


def transaction_row(
    id: str,
    date: str,
    amount: str = "1000",
    type: str = "expense",
    category_id: str = "exp1",
    description: str = "",
    user_id: str = USER.id,
) -> dict:
    return {
        "id": id,
        "user_id": user_id,
        "date": date,
        "amount": amount,
        "type": type,
        "category_id": category_id,
        "description": description,
    }


def category_row(
    id: str,
    name: str,
    type: str = "expense",
    color: str = "#ef4444",
    is_active=True,
    user_id: str = USER.id,
    created_at: Optional[str] = None,
) -> dict:
    row = {
        "id": id,
        "user_id": user_id,
        "name": name,
        "type": type,
        "color": color,
        "is_active": is_active,
    }
    if created_at:
        row["created_at"] = created_at
    return row


