"""
Storage Services Package

Provides the keyed store interface, its implementations, and the typed
repository on top of it. Local JSON is the default backend; Google Sheets
is available for users who want their data in a spreadsheet.
"""

from financeflow.services.storage.interface import (
    ConnectionError,
    KeyValueStore,
    StorageError,
)
from financeflow.services.storage.local import (
    InMemoryStore,
    JsonFileStore,
)
from financeflow.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsStore,
)
from financeflow.services.storage.repository import (
    DEFAULT_KEY_PREFIX,
    FinanceRepository,
)

__all__ = [
    # Interface
    "KeyValueStore",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsStore",
    "InMemoryStore",
    "JsonFileStore",
    # Repository
    "DEFAULT_KEY_PREFIX",
    "FinanceRepository",
]
