"""
Google Sheets Remote Store

DESIGN DECISION: Google Sheets can serve as the remote store for a
single-user ledger because:
1. The user can view and fix their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Each collection maps naturally onto one worksheet of rows

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions and no unique constraints
- Limited query capabilities (we filter in Python)
- No auth: pair it with a session provider built from configuration

gspread is blocking, so every worksheet call is pushed to a worker thread
to keep the event loop free.
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Optional, Union
from uuid import uuid4

import gspread
from gspread.utils import rowcol_to_a1
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from money_ledger.config import GoogleSheetsSettings, get_settings
from money_ledger.services.storage.interface import (
    ConnectionError,
    Filters,
    NotFoundError,
    RecordCollection,
    RemoteStore,
    Row,
    StorageError,
)


# Column layout per worksheet
TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "created_at",
    "date",
    "amount",
    "type",
    "category_id",
    "description",
]

CATEGORY_COLUMNS = [
    "id",
    "user_id",
    "created_at",
    "name",
    "type",
    "color",
    "is_active",
]

PROFILE_COLUMNS = [
    "id",
    "created_at",
    "updated_at",
    "language",
    "date_format",
    "currency",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for connecting.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        """Get or create a worksheet with `columns` as its header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


def _cell(value: Any) -> str:
    """Render a Python value the way it is written into a cell."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class GoogleSheetsCollection(RecordCollection):
    """
    One record collection stored as rows of a worksheet.

    Every value is stored as text; the ledger's models parse it back.
    """

    def __init__(self, client: GoogleSheetsClient, title: str, columns: list[str]):
        self.name = title
        self._client = client
        self._columns = columns

    async def _run(self, fn: Callable[..., Any], *args) -> Any:
        return await asyncio.to_thread(fn, *args)

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(self.name, self._columns)

    def _row_to_record(self, row: list) -> Row:
        """Convert a worksheet row into a dict keyed by column."""
        def safe_get(index: int) -> Optional[str]:
            try:
                return row[index] if row[index] != "" else None
            except IndexError:
                return None

        return {column: safe_get(idx) for idx, column in enumerate(self._columns)}

    def _record_to_row(self, record: Row) -> list[str]:
        return [_cell(record.get(column)) for column in self._columns]

    def _read_all(self) -> list[tuple[int, Row]]:
        """(sheet row number, record) for every non-empty data row."""
        values = self._sheet().get_all_values()[1:]  # Skip header
        return [
            (idx, self._row_to_record(row))
            for idx, row in enumerate(values, start=2)
            if row and row[0]
        ]

    @staticmethod
    def _matches(record: Row, filters: Optional[Filters]) -> bool:
        if not filters:
            return True
        return all(record.get(k) == _cell(v) for k, v in filters.items())

    def _prepare(self, record: Row) -> Row:
        stored = dict(record)
        if not stored.get("id"):
            stored["id"] = str(uuid4())
        if "created_at" in self._columns and not stored.get("created_at"):
            stored["created_at"] = datetime.utcnow().isoformat()
        return {column: stored.get(column) for column in self._columns}

    def _locate(self, match_id: str) -> Optional[tuple[int, Row]]:
        for idx, record in self._read_all():
            if record.get("id") == str(match_id):
                return idx, record
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
        try:
            rows = await self._run(self._read_all)
        except Exception as e:
            raise StorageError(f"Failed to read {self.name}: {e}")

        records = [record for _, record in rows if self._matches(record, filters)]
        if order_by:
            records.sort(key=lambda r: r.get(order_by) or "", reverse=not ascending)
        return records

    async def insert(self, rows: Union[Row, list[Row]]) -> Union[Row, list[Row]]:
        single = isinstance(rows, dict)
        prepared = [self._prepare(rows)] if single else [self._prepare(r) for r in rows]

        def write() -> None:
            self._sheet().append_rows(
                [self._record_to_row(record) for record in prepared],
                value_input_option="RAW",
            )

        try:
            await self._run(write)
        except Exception as e:
            raise StorageError(f"Failed to insert into {self.name}: {e}")

        stored = [
            {column: (_cell(v) if v is not None else None) for column, v in record.items()}
            for record in prepared
        ]
        return stored[0] if single else stored

    async def update(self, patch: Row, match_id: str) -> Row:
        def write() -> Row:
            found = self._locate(match_id)
            if found is None:
                raise NotFoundError(f"{self.name} row not found: {match_id}")
            idx, record = found
            merged = {**record, **{k: _cell(v) for k, v in patch.items()}}
            merged["id"] = record["id"]
            if "updated_at" in self._columns and "updated_at" not in patch:
                merged["updated_at"] = datetime.utcnow().isoformat()
            sheet = self._sheet()
            last_col = rowcol_to_a1(idx, len(self._columns))
            sheet.update(
                range_name=f"A{idx}:{last_col}",
                values=[self._record_to_row(merged)],
                value_input_option="RAW",
            )
            return merged

        try:
            return await self._run(write)
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {self.name}: {e}")

    async def delete(self, match_id: str) -> None:
        def write() -> None:
            found = self._locate(match_id)
            if found is not None:
                self._sheet().delete_rows(found[0])

        try:
            await self._run(write)
        except Exception as e:
            raise StorageError(f"Failed to delete from {self.name}: {e}")

    async def upsert(self, row: Row) -> Row:
        if row.get("id"):
            try:
                return await self.update({k: v for k, v in row.items() if k != "id"}, row["id"])
            except NotFoundError:
                pass
        return await self.insert(row)

    async def count(self, filters: Optional[Filters] = None) -> int:
        return len(await self.select(filters))


class GoogleSheetsRemoteStore(RemoteStore):
    """
    Google Sheets implementation of the remote store.

    One spreadsheet, one worksheet per collection.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        settings = self._client.settings
        self._transactions = GoogleSheetsCollection(
            self._client, settings.transactions_sheet_name, TRANSACTION_COLUMNS
        )
        self._categories = GoogleSheetsCollection(
            self._client, settings.categories_sheet_name, CATEGORY_COLUMNS
        )
        self._profiles = GoogleSheetsCollection(
            self._client, settings.profiles_sheet_name, PROFILE_COLUMNS
        )

    @property
    def transactions(self) -> GoogleSheetsCollection:
        return self._transactions

    @property
    def categories(self) -> GoogleSheetsCollection:
        return self._categories

    @property
    def profiles(self) -> GoogleSheetsCollection:
        return self._profiles
