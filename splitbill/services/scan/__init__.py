"""Receipt scan services package."""

from splitbill.services.scan.client import (
    ReceiptScanService,
    ScanError,
    ScanServiceError,
    ScanUnauthorizedError,
    UploadRejectedError,
)
from splitbill.services.scan.extractor import (
    EXTRACTION_PROMPT,
    GeminiReceiptExtractor,
)

__all__ = [
    "EXTRACTION_PROMPT",
    "GeminiReceiptExtractor",
    "ReceiptScanService",
    "ScanError",
    "ScanServiceError",
    "ScanUnauthorizedError",
    "UploadRejectedError",
]
