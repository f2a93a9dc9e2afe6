"""
Core Data Models for Split Bill

These models define the schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Keep a bill internally consistent (no dangling assignments)

DESIGN DECISION: Amounts are Decimal, never float.
The split is computed without intermediate rounding; only the
display layer rounds to whole currency units.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


def new_id() -> str:
    """Generate an identifier for items and participants."""
    return uuid4().hex


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class WizardStep(str, Enum):
    """
    Steps of a split session.

    CRITICAL: A session only moves forward when the bill passes the
    same validation rules that apply when saving.
    """
    COLLECTING_ITEMS = "collecting_items"
    ASSIGNING_AND_REVIEWING = "assigning_and_reviewing"


# =============================================================================
# CORE BILL MODELS
# =============================================================================

class LineItem(BaseModel):
    """
    A single priced line on the bill.

    assigned_to may be empty while the user is still editing.
    A bill cannot be saved until every item has at least one assignee.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_id,
        description="Item identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Item name as shown on the receipt"
    )
    price: Decimal = Field(
        ...,
        gt=0,
        description="Unit price"
    )
    quantity: int = Field(
        default=1,
        gt=0,
        description="Number of units"
    )
    category: str = Field(
        default="Other",
        max_length=50,
        description="Free-text category"
    )
    assigned_to: list[str] = Field(
        default_factory=list,
        description="IDs of the participants sharing this item"
    )

    @field_validator('assigned_to')
    @classmethod
    def dedupe_assignees(cls, v: list[str]) -> list[str]:
        """Assignment is a set; keep first-seen order."""
        return list(dict.fromkeys(v))

    @property
    def line_total(self) -> Decimal:
        """Price times quantity."""
        return self.price * self.quantity

    @property
    def is_assigned(self) -> bool:
        return len(self.assigned_to) > 0


class Participant(BaseModel):
    """A person taking part in the split."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_id,
        description="Participant identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name, unique within a bill (case-insensitive)"
    )


class Bill(BaseModel):
    """
    A split-the-cost session: items, participants and additional charges.

    Tax, service and tip are flat amounts split evenly between
    all participants, independent of item assignment.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(
        default="",
        max_length=200,
        description="Bill title (required before saving)"
    )
    description: Optional[str] = Field(
        default=None,
        max_length=1000,
        description="Optional notes"
    )
    items: list[LineItem] = Field(default_factory=list)
    participants: list[Participant] = Field(default_factory=list)

    # Additional charges
    tax: Decimal = Field(default=Decimal("0"), ge=0)
    service: Decimal = Field(default=Decimal("0"), ge=0)
    tip: Decimal = Field(default=Decimal("0"), ge=0)

    @model_validator(mode='after')
    def validate_references(self) -> 'Bill':
        """Participant names are unique and assignments point at real participants."""
        seen = set()
        for participant in self.participants:
            key = participant.name.lower()
            if key in seen:
                raise ValueError(f"Duplicate participant name: {participant.name}")
            seen.add(key)

        known = self.participant_ids
        for item in self.items:
            unknown = [pid for pid in item.assigned_to if pid not in known]
            if unknown:
                raise ValueError(
                    f"Item '{item.name}' is assigned to unknown participant(s): "
                    f"{', '.join(unknown)}"
                )

        return self

    @property
    def participant_ids(self) -> set[str]:
        return {p.id for p in self.participants}

    @property
    def additional_charges(self) -> Decimal:
        """Tax + service + tip."""
        return self.tax + self.service + self.tip

    @property
    def unassigned_items(self) -> list[LineItem]:
        return [item for item in self.items if not item.is_assigned]

    def get_item(self, item_id: str) -> Optional[LineItem]:
        return next((i for i in self.items if i.id == item_id), None)

    def get_participant(self, participant_id: str) -> Optional[Participant]:
        return next((p for p in self.participants if p.id == participant_id), None)


class SplitResult(BaseModel):
    """
    Output of the split calculation.

    per_participant maps participant id to the amount owed.
    Values are unrounded; sum(per_participant) equals total
    up to Decimal precision when every item is assigned.
    """

    subtotal: Decimal
    tax: Decimal
    service: Decimal
    tip: Decimal
    additional: Decimal
    additional_per_person: Decimal
    total: Decimal
    per_participant: dict[str, Decimal] = Field(default_factory=dict)

    @property
    def allocated_total(self) -> Decimal:
        """Sum of all participant shares."""
        return sum(self.per_participant.values(), Decimal("0"))

    def owed_by(self, participant_id: str) -> Decimal:
        return self.per_participant.get(participant_id, Decimal("0"))


# =============================================================================
# SESSION CONTEXT
# =============================================================================

class UserContext(BaseModel):
    """
    The signed-in user, passed explicitly into every flow.

    Authentication itself happens elsewhere; this is only the
    resulting identity and the bearer token for external calls.
    """
    model_config = ConfigDict(frozen=True)

    user_id: str = Field(
        ...,
        min_length=1,
        description="Backend user identifier"
    )
    access_token: Optional[str] = Field(
        default=None,
        description="Session bearer token"
    )
    email: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)


# =============================================================================
# RECEIPT SCAN MODELS
# =============================================================================

class ImageUpload(BaseModel):
    """Represents a receipt image before it is sent for scanning."""

    upload_id: UUID = Field(
        default_factory=uuid4,
        description="Unique upload identifier"
    )
    uploaded_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    original_filename: str
    file_size_bytes: int = Field(ge=0)
    mime_type: str

    @field_validator('mime_type')
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        """Only allow JPEG and PNG receipts."""
        v = v.lower()
        if v == "image/jpg":
            v = "image/jpeg"
        allowed = {'image/jpeg', 'image/png'}
        if v not in allowed:
            raise ValueError(f"Unsupported image type: {v}. Allowed: {sorted(allowed)}")
        return v


class ScannedItem(BaseModel):
    """
    One item detected on a receipt, after sanitizing.

    Only the receipt-scan validator should create these from
    untrusted model output.
    """

    name: str = Field(..., min_length=1, max_length=100)
    price: Decimal = Field(..., gt=0, le=999999999)
    quantity: int = Field(default=1, gt=0, le=9999)


class ScanResult(BaseModel):
    """
    Result of scanning one receipt.

    An empty items list with no error means nothing usable was detected.
    """

    scanned_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    items: list[ScannedItem] = Field(default_factory=list)
    error: Optional[str] = Field(
        default=None,
        description="Error reported by the scan function, if any"
    )

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def has_items(self) -> bool:
        return len(self.items) > 0


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'unassigned', 'out_of_range')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """Result of checking whether a bill can be finalized."""

    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]

    @property
    def error_messages(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "error"]


# =============================================================================
# PERSISTENCE MODELS
# =============================================================================

class StoredBill(BaseModel):
    """
    A bill as persisted for a user.

    CRITICAL: Only bills that passed finalization are stored,
    together with the split that was shown when saving.
    """

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique stored bill ID"
    )
    user_id: str = Field(
        ...,
        min_length=1,
        description="Owner of the bill"
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the bill was saved"
    )
    bill: Bill
    split: SplitResult

    @property
    def title(self) -> str:
        return self.bill.title

    @property
    def total_amount(self) -> Decimal:
        return self.split.total
