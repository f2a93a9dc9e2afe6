"""
Bill Validation

Validation happens at two points:

INPUT VALIDATION (immediate):
- Item name present and not too long
- Price positive, quantity a positive whole number
- Participant name present and unique (case-insensitive)
- Participant limit not exceeded
- Additional charges not negative
A failing check raises BillValidationError and nothing is changed.

FINALIZATION VALIDATION (before review / before save):
- Title present
- At least one item
- Participant count within bounds
- Every item assigned to someone (save only)
These checks report ValidationIssues so every problem can be shown at once.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the user can fix them.
"""

from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from splitbill.config import get_settings
from splitbill.models.bill import (
    Bill,
    Participant,
    ValidationIssue,
    ValidationResult,
)


class BillValidationError(ValueError):
    """User input or bill state is not acceptable."""

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        self.issues = issues or []
        super().__init__(message)


class BillValidator:
    """
    Validates user input and bill completeness.

    Limits (participant bounds, name length) come from AppSettings.
    """

    def __init__(self):
        self._settings = get_settings().app

    # -------------------------------------------------------------------------
    # Input validation (raises)
    # -------------------------------------------------------------------------

    def validate_item_name(self, name) -> str:
        """Return the trimmed item name."""
        if not isinstance(name, str) or not name.strip():
            raise BillValidationError("Item name cannot be empty")
        name = name.strip()
        max_length = self._settings.max_item_name_length
        if len(name) > max_length:
            raise BillValidationError(
                f"Item name cannot be longer than {max_length} characters"
            )
        return name

    def validate_price(self, price) -> Decimal:
        """Return the price as Decimal; it must be greater than zero."""
        if isinstance(price, bool) or price is None:
            raise BillValidationError("Price must be a number")
        try:
            value = Decimal(str(price).strip())
        except InvalidOperation:
            raise BillValidationError(f"Price must be a number, got {price!r}")
        if not value.is_finite() or value <= 0:
            raise BillValidationError("Price must be greater than 0")
        return value

    def validate_quantity(self, quantity) -> int:
        """Return the quantity; it must be a whole number of at least 1."""
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise BillValidationError("Quantity must be a whole number")
        if quantity < 1:
            raise BillValidationError("Quantity must be at least 1")
        return quantity

    def validate_charge(self, name: str, amount) -> Decimal:
        """Return a tax/service/tip amount; it may be zero but not negative."""
        if amount is None or amount == "":
            return Decimal("0")
        if isinstance(amount, bool):
            raise BillValidationError(f"{name} must be a number")
        try:
            value = Decimal(str(amount).strip())
        except InvalidOperation:
            raise BillValidationError(f"{name} must be a number, got {amount!r}")
        if not value.is_finite() or value < 0:
            raise BillValidationError(f"{name} cannot be negative")
        return value

    def validate_new_participant(
        self,
        name,
        existing: Iterable[Participant],
    ) -> str:
        """
        Check a participant can be added next to the existing ones.

        Returns the trimmed name.
        """
        existing = list(existing)

        if not isinstance(name, str) or not name.strip():
            raise BillValidationError("Participant name cannot be empty")
        name = name.strip()

        max_length = self._settings.max_item_name_length
        if len(name) > max_length:
            raise BillValidationError(
                f"Participant name cannot be longer than {max_length} characters"
            )

        max_participants = self._settings.max_participants
        if len(existing) >= max_participants:
            raise BillValidationError(
                f"A bill can have at most {max_participants} participants"
            )

        if any(p.name.lower() == name.lower() for p in existing):
            raise BillValidationError(f"Participant '{name}' already exists")

        return name

    # -------------------------------------------------------------------------
    # Finalization validation (reports)
    # -------------------------------------------------------------------------

    def _structure_issues(self, bill: Bill) -> list[ValidationIssue]:
        issues = []

        if not bill.title.strip():
            issues.append(ValidationIssue(
                field="title",
                issue_type="missing",
                message="Title cannot be empty",
                severity="error",
                suggested_fix="Give the bill a title, e.g. the restaurant name",
            ))

        if not bill.items:
            issues.append(ValidationIssue(
                field="items",
                issue_type="missing",
                message="Add at least 1 item",
                severity="error",
                suggested_fix="Enter an item manually or scan a receipt",
            ))

        count = len(bill.participants)
        min_participants = self._settings.min_participants
        max_participants = self._settings.max_participants
        if count < min_participants:
            issues.append(ValidationIssue(
                field="participants",
                issue_type="out_of_range",
                message=f"Add at least {min_participants} participants",
                severity="error",
            ))
        elif count > max_participants:
            issues.append(ValidationIssue(
                field="participants",
                issue_type="out_of_range",
                message=f"A bill can have at most {max_participants} participants",
                severity="error",
            ))

        return issues

    def validate_for_review(self, bill: Bill) -> ValidationResult:
        """
        Checks required before moving on to assignment and review.

        Unassigned items are allowed here; they are reported as warnings.
        """
        issues = self._structure_issues(bill)

        unassigned = bill.unassigned_items
        if unassigned:
            issues.append(ValidationIssue(
                field="items",
                issue_type="unassigned",
                message=(
                    f"{len(unassigned)} item(s) are not assigned yet: "
                    f"{', '.join(item.name for item in unassigned)}"
                ),
                severity="warning",
                suggested_fix="Assign every item before saving",
            ))

        return ValidationResult(issues=issues)

    def validate_for_save(self, bill: Bill) -> ValidationResult:
        """All checks required before a bill can be persisted."""
        issues = self._structure_issues(bill)

        unassigned = bill.unassigned_items
        if unassigned:
            issues.append(ValidationIssue(
                field="items",
                issue_type="unassigned",
                message=(
                    "These items are not assigned yet: "
                    f"{', '.join(item.name for item in unassigned)}"
                ),
                severity="error",
                suggested_fix="Assign each item to at least one participant",
            ))

        known = bill.participant_ids
        for item in bill.items:
            dangling = [pid for pid in item.assigned_to if pid not in known]
            if dangling:
                issues.append(ValidationIssue(
                    field="items",
                    issue_type="unknown_participant",
                    message=f"Item '{item.name}' is assigned to a removed participant",
                    severity="error",
                ))

        return ValidationResult(issues=issues)

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Generate a short summary of validation results for the user."""
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []

        if result.has_errors:
            lines.append("Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please check the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
