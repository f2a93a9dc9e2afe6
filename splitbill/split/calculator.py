"""
Split Calculation Engine

DESIGN DECISION: The split is a pure, deterministic function.
It has no I/O and no state, so the session can re-run it after
every edit instead of caching a result.

Rules:
- Each item's line total (price x quantity) is shared equally by
  the participants it is assigned to.
- Tax, service and tip are added together and shared equally by
  ALL participants, regardless of which items they had.
- Items nobody is assigned to count towards the subtotal but are
  not charged to anyone. Saving such a bill is blocked elsewhere.
- No rounding happens here. Rounding is a display concern.
"""

from decimal import Decimal, InvalidOperation
from typing import Iterable, Union

from splitbill.models.bill import Bill, LineItem, Participant, SplitResult

Amount = Union[Decimal, int, float, str]

ZERO = Decimal("0")


def _to_amount(value: Amount, name: str) -> Decimal:
    """Convert a charge to Decimal, rejecting negatives and non-numbers."""
    if value is None:
        return ZERO
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{name} must be a number")
    if not amount.is_finite():
        raise ValueError(f"{name} must be a number")
    if amount < 0:
        raise ValueError(f"{name} cannot be negative")
    return amount


def compute_split(
    items: Iterable[LineItem],
    participants: Iterable[Participant],
    tax: Amount = ZERO,
    service: Amount = ZERO,
    tip: Amount = ZERO,
) -> SplitResult:
    """
    Compute what every participant owes.

    Args:
        items: Line items with their assignments
        participants: Everyone sharing the bill
        tax, service, tip: Flat additional charges

    Returns:
        SplitResult with the subtotal, charges, total and the
        amount owed per participant id. With no participants
        every share is zero and nothing is divided.
    """
    items = list(items)
    participants = list(participants)

    tax = _to_amount(tax, "Tax")
    service = _to_amount(service, "Service")
    tip = _to_amount(tip, "Tip")

    subtotal = sum((item.line_total for item in items), ZERO)
    additional = tax + service + tip

    count = len(participants)
    additional_per_person = additional / count if count else ZERO

    per_participant = {p.id: additional_per_person for p in participants}

    for item in items:
        if not item.assigned_to:
            continue
        share = item.line_total / len(item.assigned_to)
        for participant_id in item.assigned_to:
            # Dangling ids cannot occur in a valid Bill
            if participant_id in per_participant:
                per_participant[participant_id] += share

    return SplitResult(
        subtotal=subtotal,
        tax=tax,
        service=service,
        tip=tip,
        additional=additional,
        additional_per_person=additional_per_person,
        total=subtotal + additional,
        per_participant=per_participant,
    )


def compute_bill_split(bill: Bill) -> SplitResult:
    """Compute the split for a whole bill."""
    return compute_split(
        bill.items,
        bill.participants,
        tax=bill.tax,
        service=bill.service,
        tip=bill.tip,
    )
