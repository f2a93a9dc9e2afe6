"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the real backend; the in-memory backend is used when
Sheets is not configured and in tests.
"""

from splitbill.services.storage.interface import (
    SAVE_STAGES,
    AuditStorageInterface,
    BillStorageInterface,
    ConnectionError,
    NotFoundError,
    SaveFailedError,
    StorageError,
)
from splitbill.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBillStorage,
    GoogleSheetsClient,
)
from splitbill.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryBillStorage,
)

__all__ = [
    "SAVE_STAGES",
    # Interfaces
    "AuditStorageInterface",
    "BillStorageInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "SaveFailedError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBillStorage",
    "GoogleSheetsClient",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryBillStorage",
]
