"""
Tests for the Google Sheets remote store.

The gspread worksheet is replaced by an in-process fake holding a list of
rows, so no network or credentials are needed.
"""

import re

import pytest

from money_ledger.config import GoogleSheetsSettings
from money_ledger.models.ledger import Category, LedgerStatus, Transaction
from money_ledger.services.storage.google_sheets import (
    CATEGORY_COLUMNS,
    TRANSACTION_COLUMNS,
    GoogleSheetsCollection,
    GoogleSheetsRemoteStore,
)
from money_ledger.services.storage.interface import NotFoundError, StorageError

from tests.helpers import USER, make_core


class FakeWorksheet:
    """The subset of gspread.Worksheet the store uses."""

    def __init__(self, columns):
        self.values = [list(columns)]
        self.fail = False

    def get_all_values(self):
        if self.fail:
            raise RuntimeError("quota exceeded")
        return [list(row) for row in self.values]

    def append_rows(self, rows, value_input_option=None):
        self.values.extend(list(row) for row in rows)

    def update(self, range_name=None, values=None, value_input_option=None):
        row_number = int(re.match(r"A(\d+):", range_name).group(1))
        self.values[row_number - 1] = list(values[0])

    def delete_rows(self, index):
        del self.values[index - 1]


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient: one fake worksheet per title."""

    def __init__(self, settings):
        self.settings = settings
        self.sheets = {}

    def get_worksheet(self, title, columns):
        if title not in self.sheets:
            self.sheets[title] = FakeWorksheet(columns)
        return self.sheets[title]


@pytest.fixture
def sheets_settings(tmp_path):
    credentials = tmp_path / "credentials.json"
    credentials.write_text("{}", encoding="utf-8")
    return GoogleSheetsSettings(
        credentials_path=str(credentials),
        spreadsheet_id="sheet-123",
    )


@pytest.fixture
def client(sheets_settings):
    return FakeSheetsClient(sheets_settings)


@pytest.fixture
def transactions(client):
    return GoogleSheetsCollection(client, "transactions", TRANSACTION_COLUMNS)


@pytest.fixture
def categories(client):
    return GoogleSheetsCollection(client, "categories", CATEGORY_COLUMNS)


def tx_row(date, amount="1000", category_id="exp1", user_id=USER.id):
    return {
        "user_id": user_id,
        "date": date,
        "amount": amount,
        "type": "expense",
        "category_id": category_id,
        "description": "",
    }


class TestGoogleSheetsCollection:
    """Tests for row mapping and CRUD over a worksheet."""

    @pytest.mark.asyncio
    async def test_insert_assigns_id_and_created_at(self, transactions, client):
        stored = await transactions.insert(tx_row("2024-03-15T00:00:00", "5000"))

        assert stored["id"]
        assert stored["created_at"]
        sheet = client.sheets["transactions"]
        assert sheet.values[0] == TRANSACTION_COLUMNS
        assert sheet.values[1][0] == stored["id"]
        assert Transaction.from_record(stored).amount == 5000

    @pytest.mark.asyncio
    async def test_bulk_insert_returns_list(self, transactions):
        stored = await transactions.insert([
            tx_row("2024-03-01T00:00:00"), tx_row("2024-03-02T00:00:00"),
        ])
        assert isinstance(stored, list)
        assert len({row["id"] for row in stored}) == 2

    @pytest.mark.asyncio
    async def test_select_filters_and_orders(self, transactions):
        await transactions.insert([
            tx_row("2024-03-01T00:00:00"),
            tx_row("2024-03-20T00:00:00"),
            tx_row("2024-03-10T00:00:00", user_id="someone-else"),
        ])

        rows = await transactions.select({"user_id": USER.id}, order_by="date", ascending=False)

        assert [r["date"] for r in rows] == ["2024-03-20T00:00:00", "2024-03-01T00:00:00"]
        assert await transactions.count({"user_id": USER.id}) == 2
        # Empty cells read back as None
        assert rows[0]["description"] is None

    @pytest.mark.asyncio
    async def test_update_merges_patch(self, transactions):
        stored = await transactions.insert(tx_row("2024-03-01T00:00:00"))

        updated = await transactions.update({"amount": "2500"}, stored["id"])

        assert updated["amount"] == "2500"
        assert updated["date"] == "2024-03-01T00:00:00"
        [row] = await transactions.select({"id": stored["id"]})
        assert row["amount"] == "2500"

    @pytest.mark.asyncio
    async def test_update_missing_row(self, transactions):
        with pytest.raises(NotFoundError):
            await transactions.update({"amount": "1"}, "nope")

    @pytest.mark.asyncio
    async def test_delete(self, transactions):
        first = await transactions.insert(tx_row("2024-03-01T00:00:00"))
        second = await transactions.insert(tx_row("2024-03-02T00:00:00"))

        await transactions.delete(first["id"])

        assert [r["id"] for r in await transactions.select()] == [second["id"]]

    @pytest.mark.asyncio
    async def test_booleans_round_trip_through_cells(self, categories):
        stored = await categories.insert(
            {"user_id": USER.id, "name": "Old", "type": "expense", "color": "#000", "is_active": False}
        )
        assert stored["is_active"] == "FALSE"
        assert Category.from_record(stored).is_active is False

        updated = await categories.update({"is_active": True}, stored["id"])
        assert Category.from_record(updated).is_active is True

    @pytest.mark.asyncio
    async def test_read_failure_is_storage_error(self, transactions, client):
        await transactions.insert(tx_row("2024-03-01T00:00:00"))
        client.sheets["transactions"].fail = True

        with pytest.raises(StorageError):
            await transactions.select()


class TestGoogleSheetsRemoteStore:
    """Tests for the store as a whole."""

    @pytest.mark.asyncio
    async def test_profile_upsert_inserts_then_updates(self, client):
        store = GoogleSheetsRemoteStore(client=client)

        await store.profiles.upsert({"id": USER.id, "currency": "USD"})
        await store.profiles.upsert({"id": USER.id, "language": "en"})

        [profile] = await store.profiles.select({"id": USER.id})
        assert profile["currency"] == "USD"
        assert profile["language"] == "en"
        assert profile["updated_at"]

    @pytest.mark.asyncio
    async def test_ledger_runs_on_sheets(self, client, cache):
        store = GoogleSheetsRemoteStore(client=client)
        core = make_core(store, cache)

        status = await core.initialize(USER)
        assert status == LedgerStatus.READY
        assert len(core.categories) > 0

        food = core.categories_for("expense")[0]
        result = await core.add_transaction({
            "amount": 5000, "type": "expense", "category_id": food.id,
            "date": "2024-03-15", "description": "lunch",
        })
        assert result.ok

        await core.refresh()
        assert [t.description for t in core.transactions] == ["lunch"]
