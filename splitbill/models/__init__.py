"""
Data Models Package

This package contains all Pydantic models used in Split Bill.
All data flowing through the system must conform to these schemas.
"""

from splitbill.models.bill import (
    Bill,
    ImageUpload,
    LineItem,
    Participant,
    ScannedItem,
    ScanResult,
    SplitResult,
    StoredBill,
    UserContext,
    ValidationIssue,
    ValidationResult,
    WizardStep,
    new_id,
)
from splitbill.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Bill models
    "Bill",
    "ImageUpload",
    "LineItem",
    "Participant",
    "ScannedItem",
    "ScanResult",
    "SplitResult",
    "StoredBill",
    "UserContext",
    "ValidationIssue",
    "ValidationResult",
    "WizardStep",
    "new_id",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
