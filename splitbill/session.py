"""
Split Session

Holds one bill while the user edits it and drives the two-step wizard:

    COLLECTING_ITEMS  --advance()-->  ASSIGNING_AND_REVIEWING
                      <--back()----

DESIGN DECISION: Every mutation is all-or-nothing.
Input is validated and a new Bill is built BEFORE the session state
is replaced, so a rejected edit leaves the session exactly as it was.

The split is recomputed after every successful mutation; `split`
always reflects the current bill.

CRITICAL: Removing a participant strips it from every item's
assignments but never deletes an item, even when that item ends up
with nobody assigned.
"""

from typing import Iterable, Optional

import structlog
from pydantic import ValidationError

from splitbill.config import get_settings
from splitbill.models.bill import (
    Bill,
    LineItem,
    Participant,
    ScannedItem,
    SplitResult,
    ValidationResult,
    WizardStep,
)
from splitbill.split import compute_bill_split
from splitbill.validation import BillValidationError, BillValidator

logger = structlog.get_logger()


class SessionError(Exception):
    """Base exception for split session operations."""
    pass


class InvalidTransitionError(SessionError):
    """Wizard step change or edit not allowed in the current step."""

    def __init__(self, message: str, validation: Optional[ValidationResult] = None):
        self.validation = validation
        super().__init__(message)


class SplitSession:
    """
    In-memory editing session for a single bill.

    Structural edits (items, participants) are only allowed while
    collecting items. Assignments and additional charges can be edited
    in both steps.
    """

    def __init__(self, validator: Optional[BillValidator] = None):
        self._validator = validator or BillValidator()
        self._settings = get_settings().app
        self._bill = Bill()
        self._split = compute_bill_split(self._bill)
        self._step = WizardStep.COLLECTING_ITEMS

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def bill(self) -> Bill:
        """Snapshot of the current bill; editing it does not change the session."""
        return self._bill.model_copy(deep=True)

    @property
    def split(self) -> SplitResult:
        return self._split

    @property
    def step(self) -> WizardStep:
        return self._step

    @property
    def items(self) -> list[LineItem]:
        return list(self._bill.items)

    @property
    def participants(self) -> list[Participant]:
        return list(self._bill.participants)

    def _commit(self, **changes) -> None:
        """Build the next bill from the current one and swap it in."""
        data = self._bill.model_dump()
        data.update(changes)
        try:
            bill = Bill.model_validate(data)
        except ValidationError as e:
            raise BillValidationError(str(e)) from e

        self._bill = bill
        self._split = compute_bill_split(bill)

    def _require_collecting(self, action: str) -> None:
        if self._step != WizardStep.COLLECTING_ITEMS:
            raise InvalidTransitionError(
                f"Cannot {action} while assigning and reviewing; go back first"
            )

    def _find_item(self, item_id: str) -> LineItem:
        item = self._bill.get_item(item_id)
        if item is None:
            raise BillValidationError(f"Unknown item: {item_id}")
        return item

    def _find_participant(self, participant_id: str) -> Participant:
        participant = self._bill.get_participant(participant_id)
        if participant is None:
            raise BillValidationError(f"Unknown participant: {participant_id}")
        return participant

    # -------------------------------------------------------------------------
    # Bill details
    # -------------------------------------------------------------------------

    def set_details(self, title: Optional[str] = None, description: Optional[str] = None) -> None:
        """Set the bill title and/or description."""
        changes = {}
        if title is not None:
            changes["title"] = title
        if description is not None:
            changes["description"] = description or None
        if changes:
            self._commit(**changes)

    def set_charges(self, tax=None, service=None, tip=None) -> None:
        """Set tax, service and tip. Omitted values are left unchanged."""
        changes = {}
        if tax is not None:
            changes["tax"] = self._validator.validate_charge("Tax", tax)
        if service is not None:
            changes["service"] = self._validator.validate_charge("Service", service)
        if tip is not None:
            changes["tip"] = self._validator.validate_charge("Tip", tip)
        if changes:
            self._commit(**changes)

    # -------------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------------

    def add_item(
        self,
        name: str,
        price,
        quantity: int = 1,
        category: Optional[str] = None,
        assigned_to: Optional[Iterable[str]] = None,
    ) -> LineItem:
        """
        Add a line item.

        Args:
            name: Item name (trimmed, max 100 characters)
            price: Unit price, must be greater than zero
            quantity: Whole number of units, at least 1
            category: Free text, defaults to the configured category
            assigned_to: Participant ids sharing the item

        Returns:
            The created LineItem
        """
        self._require_collecting("add items")

        assigned_to = list(assigned_to or [])
        for participant_id in assigned_to:
            self._find_participant(participant_id)

        item = {
            "name": self._validator.validate_item_name(name),
            "price": self._validator.validate_price(price),
            "quantity": self._validator.validate_quantity(quantity),
            "category": category or self._settings.default_item_category,
            "assigned_to": assigned_to,
        }
        self._commit(items=[*self._bill.model_dump()["items"], item])
        return self._bill.items[-1]

    def merge_scanned_items(self, scanned: Iterable[ScannedItem]) -> list[LineItem]:
        """
        Append items detected on a receipt.

        Scanned items start unassigned and use the scanned-item category.
        """
        self._require_collecting("add scanned items")

        new_items = [
            {
                "name": s.name,
                "price": s.price,
                "quantity": s.quantity,
                "category": self._settings.scanned_item_category,
            }
            for s in scanned
        ]
        if not new_items:
            return []

        self._commit(items=[
            *self._bill.model_dump()["items"],
            *new_items,
        ])
        logger.info("scanned_items_merged", item_count=len(new_items))
        return self._bill.items[-len(new_items):]

    def remove_item(self, item_id: str) -> LineItem:
        self._require_collecting("remove items")
        item = self._find_item(item_id)
        self._commit(items=[
            i.model_dump() for i in self._bill.items if i.id != item_id
        ])
        return item

    # -------------------------------------------------------------------------
    # Participants
    # -------------------------------------------------------------------------

    def add_participant(self, name: str) -> Participant:
        self._require_collecting("add participants")
        name = self._validator.validate_new_participant(name, self._bill.participants)
        self._commit(participants=[
            *self._bill.model_dump()["participants"],
            {"name": name},
        ])
        return self._bill.participants[-1]

    def remove_participant(self, participant_id: str) -> Participant:
        """Remove a participant and strip it from every item's assignments."""
        self._require_collecting("remove participants")
        participant = self._find_participant(participant_id)

        items = []
        for item in self._bill.items:
            data = item.model_dump()
            data["assigned_to"] = [pid for pid in item.assigned_to if pid != participant_id]
            items.append(data)

        self._commit(
            items=items,
            participants=[
                p.model_dump() for p in self._bill.participants if p.id != participant_id
            ],
        )
        return participant

    # -------------------------------------------------------------------------
    # Assignments
    # -------------------------------------------------------------------------

    def _set_assignees(self, item_id: str, assignees: list[str]) -> None:
        items = []
        for item in self._bill.items:
            data = item.model_dump()
            if item.id == item_id:
                data["assigned_to"] = assignees
            items.append(data)
        self._commit(items=items)

    def toggle_assignment(self, item_id: str, participant_id: str) -> bool:
        """
        Flip whether a participant shares an item.

        Returns:
            True if the participant is now assigned to the item
        """
        item = self._find_item(item_id)
        self._find_participant(participant_id)

        if participant_id in item.assigned_to:
            assignees = [pid for pid in item.assigned_to if pid != participant_id]
        else:
            assignees = [*item.assigned_to, participant_id]

        self._set_assignees(item_id, assignees)
        return participant_id in assignees

    def assign_to_all(self, item_id: str) -> None:
        """Share an item between every participant."""
        self._find_item(item_id)
        self._set_assignees(item_id, [p.id for p in self._bill.participants])

    def clear_assignment(self, item_id: str) -> None:
        self._find_item(item_id)
        self._set_assignees(item_id, [])

    # -------------------------------------------------------------------------
    # Wizard
    # -------------------------------------------------------------------------

    def check_ready_for_review(self) -> ValidationResult:
        return self._validator.validate_for_review(self._bill)

    def check_ready_to_save(self) -> ValidationResult:
        return self._validator.validate_for_save(self._bill)

    def advance(self) -> WizardStep:
        """
        Move from collecting items to assigning and reviewing.

        Raises:
            InvalidTransitionError: Already reviewing, or the bill is
                missing a title, items or enough participants
        """
        if self._step != WizardStep.COLLECTING_ITEMS:
            raise InvalidTransitionError("Already assigning and reviewing")

        result = self.check_ready_for_review()
        if result.has_errors:
            raise InvalidTransitionError(
                "; ".join(result.error_messages),
                validation=result,
            )

        self._step = WizardStep.ASSIGNING_AND_REVIEWING
        return self._step

    def back(self) -> WizardStep:
        """Return to collecting items. Always allowed; keeps all edits."""
        self._step = WizardStep.COLLECTING_ITEMS
        return self._step

    def reset(self) -> None:
        """Start over with an empty bill."""
        self._bill = Bill()
        self._split = compute_bill_split(self._bill)
        self._step = WizardStep.COLLECTING_ITEMS
