"""
Abstract Remote Store Interface

DESIGN DECISION: The ledger never talks to a backend SDK directly. It talks
to this contract, which mirrors what a backend-as-a-service offers:
1. Table-style CRUD over three record collections
   (transactions, categories, profiles)
2. Authenticated session retrieval and session-change notifications

This allows us to:
1. Swap Google Sheets for a hosted database later
2. Use in-memory storage for testing
3. Keep ledger logic decoupled from the storage implementation

Rows are plain dicts keyed by storage column names. Translation to the
ledger's models happens in money_ledger.models, not here.

The contract promises read-after-write consistency per call, nothing more:
no transactions span calls or collections.
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Union

from money_ledger.models.ledger import Session


Row = dict
Filters = dict
SessionCallback = Callable[[Session], Awaitable[None]]
Unsubscribe = Callable[[], None]


class RecordCollection(ABC):
    """
    Abstract interface for one record collection.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    name: str

    @abstractmethod
    async def select(
        self,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        ascending: bool = True,
    ) -> list[Row]:
        """
        Fetch rows matching all equality filters.

        Args:
            filters: {column: value} equality filters
            order_by: Column to sort by
            ascending: Sort direction

        Raises:
            StorageError: If the fetch fails
        """
        pass

    @abstractmethod
    async def insert(self, rows: Union[Row, list[Row]]) -> Union[Row, list[Row]]:
        """
        Insert one row or many.

        The store assigns `id` and `created_at` when they are absent.
        A list insert is all-or-nothing.

        Returns:
            The inserted row(s) as stored, in input order

        Raises:
            DuplicateError: If a row violates a unique key
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def update(self, patch: Row, match_id: str) -> Row:
        """
        Apply `patch` to the row whose id is `match_id`.

        Returns:
            The updated row

        Raises:
            NotFoundError: If no row has that id
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def delete(self, match_id: str) -> None:
        """
        Delete the row whose id is `match_id`. Deleting a missing id is a no-op.

        Raises:
            StorageError: If the delete fails
        """
        pass

    @abstractmethod
    async def upsert(self, row: Row) -> Row:
        """
        Insert `row`, or merge it into the existing row with the same id.
        """
        pass

    @abstractmethod
    async def count(self, filters: Optional[Filters] = None) -> int:
        """Number of rows matching all equality filters."""
        pass


class RemoteStore(ABC):
    """
    The three collections the ledger uses, bundled.
    """

    @property
    @abstractmethod
    def transactions(self) -> RecordCollection:
        pass

    @property
    @abstractmethod
    def categories(self) -> RecordCollection:
        pass

    @property
    @abstractmethod
    def profiles(self) -> RecordCollection:
        pass


class SessionProvider(ABC):
    """
    Abstract interface for the backend's auth session.
    """

    @abstractmethod
    async def get_current_session(self) -> Session:
        """The current session. Session.user is None when signed out."""
        pass

    @abstractmethod
    def on_session_change(self, callback: SessionCallback) -> Unsubscribe:
        """
        Register `callback` for every auth transition
        (sign-in, sign-out, token refresh).

        Returns:
            A function that removes the registration
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
