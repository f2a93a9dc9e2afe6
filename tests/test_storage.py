"""
Tests for bill storage backends.

Google Sheets worksheets are replaced by in-process fakes.
"""

import asyncio
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import gspread
import pytest

from splitbill.models.audit import AuditEventBuilder
from splitbill.models.bill import Bill, LineItem, Participant
from splitbill.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBillStorage,
    InMemoryAuditStorage,
    InMemoryBillStorage,
    SaveFailedError,
    StorageError,
)
from splitbill.services.storage.google_sheets import (
    ASSIGNMENT_COLUMNS,
    AUDIT_COLUMNS,
    ITEM_COLUMNS,
    PARTICIPANT_COLUMNS,
    TRANSACTION_COLUMNS,
)
from splitbill.split import compute_bill_split


class FakeWorksheet:
    """Minimal stand-in for gspread.Worksheet."""

    def __init__(self, header):
        self.rows = [list(header)]

    def append_row(self, row, value_input_option=None):
        self.rows.append([str(v) for v in row])

    def append_rows(self, rows, value_input_option=None):
        for row in rows:
            self.append_row(row)

    def get_all_values(self):
        return [list(row) for row in self.rows]


class FakeSheetsClient:
    def __init__(self):
        self.transactions = FakeWorksheet(TRANSACTION_COLUMNS)
        self.items = FakeWorksheet(ITEM_COLUMNS)
        self.participants = FakeWorksheet(PARTICIPANT_COLUMNS)
        self.assignments = FakeWorksheet(ASSIGNMENT_COLUMNS)
        self.audit = FakeWorksheet(AUDIT_COLUMNS)

    def get_transactions_sheet(self):
        return self.transactions

    def get_items_sheet(self):
        return self.items

    def get_participants_sheet(self):
        return self.participants

    def get_assignments_sheet(self):
        return self.assignments

    def get_audit_sheet(self):
        return self.audit


def sample_bill(title="Dinner"):
    ana, budi = Participant(name="Ana"), Participant(name="Budi")
    return Bill(
        title=title,
        description="Friday night",
        participants=[ana, budi],
        items=[
            LineItem(name="Pizza", price=Decimal("50000"), assigned_to=[ana.id, budi.id]),
            LineItem(name="Teh", price=Decimal("5000"), quantity=2, category="Food", assigned_to=[budi.id]),
        ],
        tax=Decimal("10000"),
    )


class TestInMemoryBillStorage:
    """Tests for the in-memory backend."""

    def test_save_and_get(self, user):
        storage = InMemoryBillStorage()
        bill = sample_bill()

        stored = asyncio.run(storage.save_bill(user, bill, compute_bill_split(bill)))
        fetched = asyncio.run(storage.get_bill(user.user_id, stored.id))

        assert fetched is not None
        assert fetched.title == "Dinner"
        assert fetched.total_amount == Decimal("70000")

    def test_other_user_cannot_read(self, user, other_user):
        storage = InMemoryBillStorage()
        bill = sample_bill()
        stored = asyncio.run(storage.save_bill(user, bill, compute_bill_split(bill)))

        assert asyncio.run(storage.get_bill(other_user.user_id, stored.id)) is None
        assert asyncio.run(storage.list_bills(other_user.user_id)) == []

    def test_list_newest_first(self, user):
        storage = InMemoryBillStorage()
        for title in ("First", "Second", "Third"):
            bill = sample_bill(title)
            asyncio.run(storage.save_bill(user, bill, compute_bill_split(bill)))

        bills = asyncio.run(storage.list_bills(user.user_id))
        assert [b.title for b in bills] == ["Third", "Second", "First"]
        assert [b.title for b in asyncio.run(storage.list_bills(user.user_id, limit=1, offset=1))] == ["Second"]

    def test_failure_at_stage(self, user):
        storage = InMemoryBillStorage(fail_at_stage="participants")
        bill = sample_bill()

        with pytest.raises(SaveFailedError) as exc_info:
            asyncio.run(storage.save_bill(user, bill, compute_bill_split(bill)))

        assert exc_info.value.stage == "participants"
        assert [stage for _, stage in storage.written_stages] == ["transaction", "items"]
        assert asyncio.run(storage.list_bills(user.user_id)) == []

    def test_unknown_stage(self):
        with pytest.raises(ValueError):
            InMemoryBillStorage(fail_at_stage="payments")


class TestGoogleSheetsBillStorage:
    """Tests for the Sheets backend against fake worksheets."""

    def test_save_writes_all_sheets(self, user):
        client = FakeSheetsClient()
        storage = GoogleSheetsBillStorage(client)
        bill = sample_bill()
        split = compute_bill_split(bill)

        stored = asyncio.run(storage.save_bill(user, bill, split))

        transaction = client.transactions.rows[1]
        assert transaction[0] == str(stored.id)
        assert transaction[1] == user.user_id
        assert transaction[9] == "70000"
        assert len(client.items.rows) == 3
        assert len(client.participants.rows) == 3
        assert len(client.assignments.rows) == 4

        budi_row = client.participants.rows[2]
        assert budi_row[3] == "Budi"
        assert Decimal(budi_row[4]) == Decimal("40000")

    def test_round_trip(self, user):
        storage = GoogleSheetsBillStorage(FakeSheetsClient())
        bill = sample_bill()
        stored = asyncio.run(storage.save_bill(user, bill, compute_bill_split(bill)))

        fetched = asyncio.run(storage.get_bill(user.user_id, stored.id))

        assert fetched.bill.title == "Dinner"
        assert fetched.bill.description == "Friday night"
        assert [item.name for item in fetched.bill.items] == ["Pizza", "Teh"]
        assert fetched.bill.items[1].assigned_to == [bill.participants[1].id]
        assert fetched.bill.items[1].category == "Food"
        assert fetched.split.total == Decimal("70000")

    def test_scoped_to_user(self, user, other_user):
        storage = GoogleSheetsBillStorage(FakeSheetsClient())
        bill = sample_bill()
        stored = asyncio.run(storage.save_bill(user, bill, compute_bill_split(bill)))

        assert asyncio.run(storage.get_bill(other_user.user_id, stored.id)) is None
        assert asyncio.run(storage.list_bills(other_user.user_id)) == []
        assert len(asyncio.run(storage.list_bills(user.user_id))) == 1

    def test_failed_stage_is_named_and_earlier_rows_remain(self, user):
        client = FakeSheetsClient()
        client.assignments = MagicMock()
        client.assignments.append_rows.side_effect = RuntimeError("quota exceeded")
        storage = GoogleSheetsBillStorage(client)
        bill = sample_bill()

        with pytest.raises(SaveFailedError) as exc_info:
            asyncio.run(storage.save_bill(user, bill, compute_bill_split(bill)))

        assert exc_info.value.stage == "assignments"
        assert "quota exceeded" in str(exc_info.value)
        assert len(client.transactions.rows) == 2
        assert len(client.participants.rows) == 3

    def test_sheet_lookup_failure_names_stage(self, user):
        client = FakeSheetsClient()
        client.get_items_sheet = MagicMock(
            side_effect=gspread.exceptions.GSpreadException("503 backend unavailable")
        )
        storage = GoogleSheetsBillStorage(client)
        bill = sample_bill()

        with pytest.raises(SaveFailedError) as exc_info:
            asyncio.run(storage.save_bill(user, bill, compute_bill_split(bill)))

        assert exc_info.value.stage == "items"
        assert isinstance(exc_info.value.__cause__, gspread.exceptions.GSpreadException)
        assert len(client.transactions.rows) == 2
        assert len(client.participants.rows) == 1

    def test_malformed_rows_skipped(self, user):
        client = FakeSheetsClient()
        storage = GoogleSheetsBillStorage(client)
        bill = sample_bill()
        asyncio.run(storage.save_bill(user, bill, compute_bill_split(bill)))
        client.transactions.rows.append(["broken", user.user_id, "not-a-date"])

        bills = asyncio.run(storage.list_bills(user.user_id))
        assert len(bills) == 1

    def test_read_failure_wrapped(self, user):
        client = FakeSheetsClient()
        client.transactions = MagicMock()
        client.transactions.get_all_values.side_effect = RuntimeError("API down")
        storage = GoogleSheetsBillStorage(client)

        with pytest.raises(StorageError, match="Failed to list bills"):
            asyncio.run(storage.list_bills(user.user_id))


class TestAuditStorage:
    """Tests for audit backends."""

    def test_in_memory_recent_events(self):
        storage = InMemoryAuditStorage()
        for stage in ("review", "save"):
            asyncio.run(storage.append_event(
                AuditEventBuilder.validation_failed(stage, [], uuid4())
            ))
        events = asyncio.run(storage.get_recent_events(limit=1))
        assert len(events) == 1

    def test_sheets_round_trip(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsAuditStorage(client)
        event = AuditEventBuilder.save_failed("user-1", "items", "boom", uuid4())

        assert asyncio.run(storage.append_event(event)) is True
        events = asyncio.run(storage.get_recent_events())

        assert len(events) == 1
        assert events[0].event_id == event.event_id
        assert events[0].user_id == "user-1"
        assert events[0].details == {"stage": "items"}
        assert events[0].error_message == "boom"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
