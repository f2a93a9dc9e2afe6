"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the storage backend because:
1. Users can view their split history directly in Sheets
2. No database setup required
3. Easy to export/migrate later

Each collection of a bill gets its own worksheet so the layout stays
flat and readable:

    Transactions             one row per bill
    TransactionItems         one row per line item
    TransactionParticipants  one row per participant, with their total
    ItemAssignments          one row per (item, participant) link

TRADEOFFS:
- No transactions; the four sheets are written one after another and a
  failure part way leaves earlier rows in place
- Limited query capabilities (we filter in Python)
"""

import json
from collections import defaultdict
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional
from uuid import UUID, uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials

from splitbill.config import get_settings
from splitbill.models.audit import AuditEvent, AuditEventType, AuditSeverity
from splitbill.models.bill import (
    Bill,
    LineItem,
    Participant,
    SplitResult,
    StoredBill,
    UserContext,
)
from splitbill.services.storage.interface import (
    AuditStorageInterface,
    BillStorageInterface,
    ConnectionError,
    SaveFailedError,
    StorageError,
)
from splitbill.split import compute_bill_split

logger = structlog.get_logger()


TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "created_at",
    "title",
    "description",
    "subtotal",
    "tax_amount",
    "service_amount",
    "tip_amount",
    "total_amount",
]

ITEM_COLUMNS = [
    "transaction_id",
    "item_id",
    "position",
    "name",
    "price",
    "quantity",
    "category",
]

PARTICIPANT_COLUMNS = [
    "transaction_id",
    "participant_id",
    "position",
    "name",
    "total_amount",
]

ASSIGNMENT_COLUMNS = [
    "transaction_id",
    "item_id",
    "participant_id",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

# Malformed rows are skipped when reading
_ROW_ERRORS = (ValueError, ArithmeticError, KeyError)


def _safe_get(row: list, index: int, default: str = "") -> str:
    """Handle missing columns gracefully."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and creates missing worksheets with headers.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError as e:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                ) from e
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}") from e

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound as e:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                ) from e
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.transactions_sheet_name, TRANSACTION_COLUMNS)

    def get_items_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.items_sheet_name, ITEM_COLUMNS)

    def get_participants_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.participants_sheet_name, PARTICIPANT_COLUMNS)

    def get_assignments_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.assignments_sheet_name, ASSIGNMENT_COLUMNS)

    def get_audit_sheet(self) -> gspread.Worksheet:
        # More rows for audit log
        return self._get_or_create(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


class GoogleSheetsBillStorage(BillStorageInterface):
    """
    Google Sheets implementation of bill storage.

    Rows of the sub-collections reference the bill through
    transaction_id; a position column keeps the original order.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # -------------------------------------------------------------------------
    # Row conversion
    # -------------------------------------------------------------------------

    def _transaction_row(self, stored: StoredBill) -> list:
        bill, split = stored.bill, stored.split
        return [
            str(stored.id),
            stored.user_id,
            stored.created_at.isoformat(),
            bill.title,
            bill.description or "",
            str(split.subtotal),
            str(split.tax),
            str(split.service),
            str(split.tip),
            str(split.total),
        ]

    def _item_rows(self, stored: StoredBill) -> list[list]:
        return [
            [
                str(stored.id),
                item.id,
                str(position),
                item.name,
                str(item.price),
                str(item.quantity),
                item.category,
            ]
            for position, item in enumerate(stored.bill.items)
        ]

    def _participant_rows(self, stored: StoredBill) -> list[list]:
        return [
            [
                str(stored.id),
                participant.id,
                str(position),
                participant.name,
                str(stored.split.owed_by(participant.id)),
            ]
            for position, participant in enumerate(stored.bill.participants)
        ]

    def _assignment_rows(self, stored: StoredBill) -> list[list]:
        return [
            [str(stored.id), item.id, participant_id]
            for item in stored.bill.items
            for participant_id in item.assigned_to
        ]

    def _rows_to_stored_bill(
        self,
        row: list,
        item_rows: list[list],
        participant_rows: list[list],
        assignment_rows: list[list],
    ) -> StoredBill:
        """Rebuild a StoredBill from its transaction row and related rows."""
        assigned: dict[str, list[str]] = defaultdict(list)
        for a in assignment_rows:
            assigned[_safe_get(a, 1)].append(_safe_get(a, 2))

        participants = [
            Participant(id=_safe_get(p, 1), name=_safe_get(p, 3))
            for p in sorted(participant_rows, key=lambda r: int(_safe_get(r, 2, "0")))
        ]
        known = {p.id for p in participants}

        items = [
            LineItem(
                id=_safe_get(i, 1),
                name=_safe_get(i, 3),
                price=Decimal(_safe_get(i, 4)),
                quantity=int(_safe_get(i, 5, "1")),
                category=_safe_get(i, 6, "Other"),
                assigned_to=[pid for pid in assigned[_safe_get(i, 1)] if pid in known],
            )
            for i in sorted(item_rows, key=lambda r: int(_safe_get(r, 2, "0")))
        ]

        bill = Bill(
            title=_safe_get(row, 3),
            description=_safe_get(row, 4) or None,
            items=items,
            participants=participants,
            tax=Decimal(_safe_get(row, 6, "0")),
            service=Decimal(_safe_get(row, 7, "0")),
            tip=Decimal(_safe_get(row, 8, "0")),
        )

        return StoredBill(
            id=UUID(_safe_get(row, 0)),
            user_id=_safe_get(row, 1),
            created_at=datetime.fromisoformat(_safe_get(row, 2)),
            bill=bill,
            split=compute_bill_split(bill),
        )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def _append(self, stage: str, get_sheet, rows: list[list]) -> None:
        if not rows:
            return
        try:
            sheet = get_sheet()
            sheet.append_rows(rows, value_input_option="RAW")
        except Exception as e:
            raise SaveFailedError(stage, str(e)) from e

    async def save_bill(
        self,
        user: UserContext,
        bill: Bill,
        result: SplitResult,
    ) -> StoredBill:
        """Write the bill to the four sheets, in order."""
        stored = StoredBill(
            id=uuid4(),
            user_id=user.user_id,
            bill=bill,
            split=result,
        )

        self._append("transaction", self._client.get_transactions_sheet, [self._transaction_row(stored)])
        self._append("items", self._client.get_items_sheet, self._item_rows(stored))
        self._append("participants", self._client.get_participants_sheet, self._participant_rows(stored))
        self._append("assignments", self._client.get_assignments_sheet, self._assignment_rows(stored))

        logger.info(
            "bill_stored",
            bill_id=str(stored.id),
            user_id=user.user_id,
            item_count=len(bill.items),
        )
        return stored

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _read_related(self, transaction_ids: set[str]) -> tuple[dict, dict, dict]:
        """Group item, participant and assignment rows by transaction id."""
        grouped = []
        for get_sheet in (
            self._client.get_items_sheet,
            self._client.get_participants_sheet,
            self._client.get_assignments_sheet,
        ):
            by_transaction = defaultdict(list)
            for row in get_sheet().get_all_values()[1:]:
                if row and row[0] in transaction_ids:
                    by_transaction[row[0]].append(row)
            grouped.append(by_transaction)
        return grouped[0], grouped[1], grouped[2]

    def _build_bills(self, transaction_rows: list[list]) -> list[StoredBill]:
        if not transaction_rows:
            return []

        items, participants, assignments = self._read_related(
            {row[0] for row in transaction_rows}
        )

        bills = []
        for row in transaction_rows:
            try:
                bills.append(self._rows_to_stored_bill(
                    row,
                    items[row[0]],
                    participants[row[0]],
                    assignments[row[0]],
                ))
            except _ROW_ERRORS as e:
                logger.warning("malformed_bill_row_skipped", bill_id=row[0], error=str(e))
        return bills

    async def list_bills(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[StoredBill]:
        """List a user's bills, newest first."""
        try:
            all_rows = self._client.get_transactions_sheet().get_all_values()[1:]
            rows = [row for row in all_rows if row and row[0] and _safe_get(row, 1) == user_id]
            bills = self._build_bills(rows)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list bills: {e}") from e

        # Rows are appended in save order
        bills.reverse()
        bills.sort(key=lambda b: b.created_at, reverse=True)
        return bills[offset:offset + limit]

    async def get_bill(
        self,
        user_id: str,
        bill_id: UUID,
    ) -> Optional[StoredBill]:
        """Retrieve one of a user's bills."""
        try:
            all_rows = self._client.get_transactions_sheet().get_all_values()[1:]
            rows = [
                row for row in all_rows
                if row and row[0] == str(bill_id) and _safe_get(row, 1) == user_id
            ]
            bills = self._build_bills(rows)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get bill: {e}") from e

        return bills[0] if bills else None


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            user_id=_safe_get(row, 4) or None,
            entity_type=_safe_get(row, 5) or None,
            entity_id=UUID(_safe_get(row, 6)) if _safe_get(row, 6) else None,
            correlation_id=UUID(_safe_get(row, 7)) if _safe_get(row, 7) else None,
            description=_safe_get(row, 8),
            details=json.loads(_safe_get(row, 9)) if _safe_get(row, 9) else {},
            error_message=_safe_get(row, 10) or None,
            is_user_action=_safe_get(row, 11).lower() == "true",
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}") from e

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}") from e

        events = []
        for row in all_rows:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except _ROW_ERRORS as e:
                    logger.warning("malformed_audit_row_skipped", error=str(e))

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
