"""Validation package."""

from splitbill.validation.scan_validator import ScanResultValidator
from splitbill.validation.validator import BillValidationError, BillValidator

__all__ = [
    "BillValidationError",
    "BillValidator",
    "ScanResultValidator",
]
