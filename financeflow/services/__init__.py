"""Services package."""

from financeflow.services.export import (
    ExportMetadata,
    ExportSnapshot,
    InvalidImportError,
    build_snapshot,
    dump_snapshot,
    export_user,
    import_snapshot,
    load_snapshot,
    snapshot_filename,
)
from financeflow.services.storage import (
    ConnectionError,
    FinanceRepository,
    GoogleSheetsClient,
    GoogleSheetsStore,
    InMemoryStore,
    JsonFileStore,
    KeyValueStore,
    StorageError,
)

__all__ = [
    # Export / import
    "ExportMetadata",
    "ExportSnapshot",
    "InvalidImportError",
    "build_snapshot",
    "dump_snapshot",
    "export_user",
    "import_snapshot",
    "load_snapshot",
    "snapshot_filename",
    # Storage services
    "ConnectionError",
    "FinanceRepository",
    "GoogleSheetsClient",
    "GoogleSheetsStore",
    "InMemoryStore",
    "JsonFileStore",
    "KeyValueStore",
    "StorageError",
]
