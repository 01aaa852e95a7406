"""
Storage Services Package

Provides the remote store contract and its implementations.
Google Sheets and an in-memory store are available; the ledger only ever
sees the abstract interface.
"""

from money_ledger.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    NotFoundError,
    RecordCollection,
    RemoteStore,
    SessionProvider,
    StorageError,
)
from money_ledger.services.storage.memory import (
    InMemoryCollection,
    InMemoryRemoteStore,
    InMemorySessionProvider,
)
from money_ledger.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsCollection,
    GoogleSheetsRemoteStore,
)

__all__ = [
    # Interfaces
    "RecordCollection",
    "RemoteStore",
    "SessionProvider",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryCollection",
    "InMemoryRemoteStore",
    "InMemorySessionProvider",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsCollection",
    "GoogleSheetsRemoteStore",
]
