"""Services package."""

from splitbill.services.scan import (
    GeminiReceiptExtractor,
    ReceiptScanService,
    ScanError,
    ScanServiceError,
    ScanUnauthorizedError,
    UploadRejectedError,
)
from splitbill.services.storage import (
    AuditStorageInterface,
    BillStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsBillStorage,
    GoogleSheetsClient,
    InMemoryAuditStorage,
    InMemoryBillStorage,
    NotFoundError,
    SaveFailedError,
    StorageError,
)

__all__ = [
    # Scan services
    "GeminiReceiptExtractor",
    "ReceiptScanService",
    "ScanError",
    "ScanServiceError",
    "ScanUnauthorizedError",
    "UploadRejectedError",
    # Storage services
    "AuditStorageInterface",
    "BillStorageInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBillStorage",
    "GoogleSheetsClient",
    "InMemoryAuditStorage",
    "InMemoryBillStorage",
    "NotFoundError",
    "SaveFailedError",
    "StorageError",
]
