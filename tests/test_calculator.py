"""
Tests for the split calculation.

The calculator is pure, so these tests need no mocks.
"""

import pytest
from decimal import Decimal

from splitbill.models.bill import Bill, LineItem, Participant
from splitbill.split import compute_bill_split, compute_split


def people(*names):
    return [Participant(name=name) for name in names]


class TestScenarios:
    """Worked examples."""

    def test_two_people_share_item_and_tax(self):
        """50000 shared by A and B plus 10000 tax: 30000 each."""
        a, b = people("A", "B")
        items = [LineItem(name="Pizza", price=Decimal("50000"), assigned_to=[a.id, b.id])]

        result = compute_split(items, [a, b], tax=Decimal("10000"))

        assert result.subtotal == Decimal("50000")
        assert result.additional == Decimal("10000")
        assert result.total == Decimal("60000")
        assert result.owed_by(a.id) == Decimal("30000")
        assert result.owed_by(b.id) == Decimal("30000")

    def test_item_on_one_of_three(self):
        """C alone had 2 x 30000; everyone shares the service charge."""
        a, b, c = people("A", "B", "C")
        items = [LineItem(name="Steak", price=Decimal("30000"), quantity=2, assigned_to=[c.id])]

        result = compute_split(items, [a, b, c], service=Decimal("9000"))

        assert result.additional_per_person == Decimal("3000")
        assert result.owed_by(a.id) == Decimal("3000")
        assert result.owed_by(b.id) == Decimal("3000")
        assert result.owed_by(c.id) == Decimal("63000")
        assert result.total == Decimal("69000")


class TestProperties:
    """Invariants that hold for every split."""

    def test_shares_sum_to_total(self):
        a, b, c = people("A", "B", "C")
        items = [
            LineItem(name="Nasi", price=Decimal("25000"), quantity=3, assigned_to=[a.id, b.id, c.id]),
            LineItem(name="Teh", price=Decimal("7000"), assigned_to=[b.id]),
            LineItem(name="Kopi", price=Decimal("12500"), quantity=2, assigned_to=[a.id, c.id]),
        ]

        result = compute_split(items, [a, b, c], tax=Decimal("10001"), service=Decimal("5000"), tip=Decimal("333"))

        assert abs(result.allocated_total - result.total) < Decimal("0.0001")

    def test_item_share_is_line_total_over_assignees(self):
        a, b, c = people("A", "B", "C")
        items = [LineItem(name="Pizza", price=Decimal("10000"), quantity=1, assigned_to=[a.id, b.id, c.id])]

        result = compute_split(items, [a, b, c])

        expected = Decimal("10000") / 3
        for participant in (a, b, c):
            assert result.owed_by(participant.id) == expected

    def test_zero_participants(self):
        """No participants: nothing is divided and nothing is owed."""
        items = [LineItem(name="Pizza", price=Decimal("10000"))]

        result = compute_split(items, [], tax=Decimal("1000"))

        assert result.additional_per_person == Decimal("0")
        assert result.per_participant == {}
        assert result.total == Decimal("11000")

    def test_unassigned_item_counts_in_subtotal_only(self):
        a, b = people("A", "B")
        items = [
            LineItem(name="Pizza", price=Decimal("20000"), assigned_to=[a.id]),
            LineItem(name="Cola", price=Decimal("5000")),
        ]

        result = compute_split(items, [a, b])

        assert result.subtotal == Decimal("25000")
        assert result.owed_by(a.id) == Decimal("20000")
        assert result.owed_by(b.id) == Decimal("0")
        assert result.allocated_total == Decimal("20000")

    def test_unknown_assignee_is_ignored(self):
        (a,) = people("A")
        items = [LineItem(name="Pizza", price=Decimal("20000"), assigned_to=[a.id, "gone"])]

        result = compute_split(items, [a])

        assert set(result.per_participant) == {a.id}
        assert result.owed_by(a.id) == Decimal("10000")

    def test_charges_accept_numbers_and_strings(self):
        a, b = people("A", "B")

        result = compute_split([], [a, b], tax=1000, service="500.5", tip=None)

        assert result.additional == Decimal("1500.5")
        assert result.tip == Decimal("0")

    def test_negative_charge_rejected(self):
        a, b = people("A", "B")
        with pytest.raises(ValueError, match="Tip cannot be negative"):
            compute_split([], [a, b], tip=Decimal("-1"))

    @pytest.mark.parametrize("bad", ["abc", "NaN", float("inf")])
    def test_non_numeric_charge_rejected(self, bad):
        a, b = people("A", "B")
        with pytest.raises(ValueError, match="Service must be a number"):
            compute_split([], [a, b], service=bad)

    def test_compute_bill_split_uses_bill_charges(self):
        a, b = people("A", "B")
        bill = Bill(
            title="Dinner",
            participants=[a, b],
            items=[LineItem(name="Pizza", price=Decimal("50000"), assigned_to=[a.id, b.id])],
            tax=Decimal("10000"),
        )

        result = compute_bill_split(bill)

        assert result.total == Decimal("60000")
        assert result.owed_by(a.id) == Decimal("30000")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
