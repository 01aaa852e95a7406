"""
Shared fixtures.

No network in tests: the in-memory remote store stands in for the backend,
with failure injection where a test needs the remote side to break.
"""

import pytest

from money_ledger.ledger import LedgerStateCore
from money_ledger.services.cache import LocalCache
from money_ledger.services.storage.memory import InMemoryRemoteStore

from tests.helpers import category_row, make_core, transaction_row


@pytest.fixture
def store() -> InMemoryRemoteStore:
    return InMemoryRemoteStore()


@pytest.fixture
def cache(tmp_path) -> LocalCache:
    return LocalCache(tmp_path / "settings.json")


@pytest.fixture
def core(store, cache) -> LedgerStateCore:
    return make_core(store, cache)


@pytest.fixture
def seeded_store(store) -> InMemoryRemoteStore:
    """A store where USER already has categories and a few transactions."""
    store.categories.seed([
        category_row("exp1", "Food", created_at="2024-01-01T00:00:00"),
        category_row("exp2", "Dining", color="#f97316", created_at="2024-01-01T00:00:01"),
        category_row("inc1", "Salary", type="income", color="#10b981",
                     created_at="2024-01-01T00:00:02"),
        category_row("exp-old", "Retired", is_active=False,
                     created_at="2024-01-01T00:00:03"),
    ])
    store.transactions.seed([
        transaction_row("t1", "2024-02-20T09:00:00", amount="12000", category_id="exp1"),
        transaction_row("t2", "2024-03-05T18:30:00", amount="30000", category_id="exp2"),
        transaction_row("t3", "2024-03-25T08:00:00", amount="2500000", type="income",
                        category_id="inc1"),
    ])
    return store
