"""
Tests for bill validation and receipt scan sanitizing.
"""

import pytest
from decimal import Decimal

from splitbill.models.bill import Bill, LineItem, Participant
from splitbill.validation import (
    BillValidationError,
    BillValidator,
    ScanResultValidator,
)


@pytest.fixture
def scan_validator():
    return ScanResultValidator()


@pytest.fixture
def validator():
    return BillValidator()


class TestScanResultValidator:
    """Tests for filtering untrusted scan candidates."""

    def test_accepts_valid_candidate(self, scan_validator):
        items = scan_validator.sanitize([{"name": "Nasi Goreng", "price": 25000, "quantity": 2}])
        assert len(items) == 1
        assert items[0].name == "Nasi Goreng"
        assert items[0].price == Decimal("25000")
        assert items[0].quantity == 2

    def test_drops_negative_price(self, scan_validator):
        assert scan_validator.sanitize([{"name": "X", "price": -5, "quantity": 1}]) == []

    def test_drops_zero_quantity(self, scan_validator):
        assert scan_validator.sanitize([{"name": "X", "price": 5, "quantity": 0}]) == []

    def test_drops_empty_name(self, scan_validator):
        assert scan_validator.sanitize([{"name": "", "price": 5, "quantity": 1}]) == []
        assert scan_validator.sanitize([{"name": "   ", "price": 5, "quantity": 1}]) == []

    def test_truncates_long_name(self, scan_validator):
        items = scan_validator.sanitize([{"name": "  " + "a" * 150, "price": 5, "quantity": 1}])
        assert items[0].name == "a" * 100

    def test_drops_boolean_numbers(self, scan_validator):
        """JSON true is not a price or a quantity."""
        assert scan_validator.sanitize([{"name": "X", "price": True, "quantity": 1}]) == []
        assert scan_validator.sanitize([{"name": "X", "price": 5, "quantity": True}]) == []

    def test_drops_string_numbers(self, scan_validator):
        assert scan_validator.sanitize([{"name": "X", "price": "5000", "quantity": 1}]) == []

    def test_drops_fractional_quantity(self, scan_validator):
        assert scan_validator.sanitize([{"name": "X", "price": 5, "quantity": 1.5}]) == []

    def test_accepts_integral_float_quantity(self, scan_validator):
        items = scan_validator.sanitize([{"name": "X", "price": 5.5, "quantity": 2.0}])
        assert items[0].quantity == 2
        assert items[0].price == Decimal("5.5")

    def test_bounds(self, scan_validator):
        candidates = [
            {"name": "max price", "price": 999999999, "quantity": 1},
            {"name": "over price", "price": 1000000000, "quantity": 1},
            {"name": "max qty", "price": 1, "quantity": 9999},
            {"name": "over qty", "price": 1, "quantity": 10000},
        ]
        names = [item.name for item in scan_validator.sanitize(candidates)]
        assert names == ["max price", "max qty"]

    def test_keeps_valid_among_invalid(self, scan_validator):
        candidates = [
            None,
            "Sate",
            {"name": "Sate", "price": 30000, "quantity": 1},
            {"price": 1, "quantity": 1},
        ]
        assert [item.name for item in scan_validator.sanitize(candidates)] == ["Sate"]

    def test_non_list_payload(self, scan_validator):
        assert scan_validator.sanitize({"name": "X", "price": 5, "quantity": 1}) == []
        assert scan_validator.sanitize(None) == []

    def test_parse_content_strips_fences(self, scan_validator):
        content = '```json\n[{"name": "Teh", "price": 5000, "quantity": 1}]\n```'
        items = scan_validator.parse_content(content)
        assert [item.name for item in items] == ["Teh"]

    def test_parse_content_unparsable(self, scan_validator):
        assert scan_validator.parse_content("Sorry, I cannot read this receipt.") == []
        assert scan_validator.parse_content(None) == []


class TestInputValidation:
    """Tests for immediate input checks."""

    def test_item_name_trimmed(self, validator):
        assert validator.validate_item_name("  Sate ") == "Sate"

    def test_item_name_empty(self, validator):
        with pytest.raises(BillValidationError, match="cannot be empty"):
            validator.validate_item_name("  ")

    def test_item_name_too_long(self, validator):
        with pytest.raises(BillValidationError):
            validator.validate_item_name("a" * 101)

    def test_price_parsed(self, validator):
        assert validator.validate_price("25000") == Decimal("25000")
        assert validator.validate_price(1.5) == Decimal("1.5")

    @pytest.mark.parametrize("price", [0, -1, "abc", None, True, "NaN"])
    def test_price_rejected(self, validator, price):
        with pytest.raises(BillValidationError):
            validator.validate_price(price)

    @pytest.mark.parametrize("quantity", [0, -2, 1.5, True, "2"])
    def test_quantity_rejected(self, validator, quantity):
        with pytest.raises(BillValidationError):
            validator.validate_quantity(quantity)

    def test_charge_allows_zero(self, validator):
        assert validator.validate_charge("Tax", 0) == Decimal("0")
        assert validator.validate_charge("Tax", "") == Decimal("0")

    def test_charge_rejects_negative(self, validator):
        with pytest.raises(BillValidationError, match="Service cannot be negative"):
            validator.validate_charge("Service", -100)

    def test_participant_duplicate_case_insensitive(self, validator):
        existing = [Participant(name="Ana")]
        with pytest.raises(BillValidationError, match="already exists"):
            validator.validate_new_participant("ana", existing)

    def test_participant_limit(self, validator):
        existing = [Participant(name=f"P{i}") for i in range(10)]
        with pytest.raises(BillValidationError, match="at most 10"):
            validator.validate_new_participant("Eleventh", existing)

    def test_participant_empty(self, validator):
        with pytest.raises(BillValidationError):
            validator.validate_new_participant("", [])


class TestFinalization:
    """Tests for the checks before review and before saving."""

    def _bill(self, assign=True, title="Dinner", n_participants=2):
        participants = [Participant(name=f"P{i}") for i in range(n_participants)]
        assigned = [participants[0].id] if assign and participants else []
        return Bill(
            title=title,
            participants=participants,
            items=[
                LineItem(name="Sate", price=Decimal("30000"), assigned_to=assigned),
                LineItem(name="Teh", price=Decimal("5000"), assigned_to=assigned),
            ],
        )

    def test_complete_bill_passes(self, validator):
        result = validator.validate_for_save(self._bill())
        assert result.is_valid
        assert validator.get_user_friendly_summary(result) == "All checks passed."

    def test_missing_title(self, validator):
        result = validator.validate_for_review(self._bill(title=""))
        assert "Title cannot be empty" in result.error_messages

    def test_too_few_participants(self, validator):
        result = validator.validate_for_review(self._bill(n_participants=1))
        assert result.has_errors

    def test_no_items(self, validator):
        bill = Bill(title="Dinner", participants=[Participant(name="A"), Participant(name="B")])
        result = validator.validate_for_review(bill)
        assert "Add at least 1 item" in result.error_messages

    def test_unassigned_is_warning_for_review(self, validator):
        result = validator.validate_for_review(self._bill(assign=False))
        assert result.is_valid
        assert len(result.warnings) == 1

    def test_unassigned_blocks_save_and_lists_names(self, validator):
        result = validator.validate_for_save(self._bill(assign=False))
        assert not result.is_valid
        assert "Sate, Teh" in result.error_messages[0]
        summary = validator.get_user_friendly_summary(result)
        assert "Please fix the following" in summary
        assert "Sate, Teh" in summary


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
