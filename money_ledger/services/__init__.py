"""Services package."""

from money_ledger.services.cache import LocalCache
from money_ledger.services.storage import (
    ConnectionError,
    DuplicateError,
    GoogleSheetsRemoteStore,
    InMemoryRemoteStore,
    InMemorySessionProvider,
    NotFoundError,
    RecordCollection,
    RemoteStore,
    SessionProvider,
    StorageError,
)

__all__ = [
    # Local cache
    "LocalCache",
    # Storage services
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsRemoteStore",
    "InMemoryRemoteStore",
    "InMemorySessionProvider",
    "NotFoundError",
    "RecordCollection",
    "RemoteStore",
    "SessionProvider",
    "StorageError",
]
