"""
In-Memory Storage Implementation

Used when Google Sheets is not configured and in tests.
Data lives only as long as the process.
"""

from typing import Optional
from uuid import UUID, uuid4

from splitbill.models.audit import AuditEvent
from splitbill.models.bill import Bill, SplitResult, StoredBill, UserContext
from splitbill.services.storage.interface import (
    SAVE_STAGES,
    AuditStorageInterface,
    BillStorageInterface,
    SaveFailedError,
)


class InMemoryBillStorage(BillStorageInterface):
    """
    Keeps stored bills in a dict.

    Set fail_at_stage to one of SAVE_STAGES to make the next saves fail
    at that write. Stages before it are recorded in written_stages,
    the way a partially written bill would remain in a real backend.
    """

    def __init__(self, fail_at_stage: Optional[str] = None):
        if fail_at_stage is not None and fail_at_stage not in SAVE_STAGES:
            raise ValueError(f"Unknown save stage: {fail_at_stage}")
        self.fail_at_stage = fail_at_stage
        self.written_stages: list[tuple[UUID, str]] = []
        self._bills: dict[UUID, StoredBill] = {}

    async def save_bill(
        self,
        user: UserContext,
        bill: Bill,
        result: SplitResult,
    ) -> StoredBill:
        stored = StoredBill(
            id=uuid4(),
            user_id=user.user_id,
            bill=bill.model_copy(deep=True),
            split=result,
        )

        for stage in SAVE_STAGES:
            if stage == self.fail_at_stage:
                raise SaveFailedError(stage, "simulated write failure")
            self.written_stages.append((stored.id, stage))

        self._bills[stored.id] = stored
        return stored

    async def list_bills(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[StoredBill]:
        # Latest insert first so equal timestamps keep save order
        bills = [b for b in reversed(list(self._bills.values())) if b.user_id == user_id]
        bills.sort(key=lambda b: b.created_at, reverse=True)
        return bills[offset:offset + limit]

    async def get_bill(
        self,
        user_id: str,
        bill_id: UUID,
    ) -> Optional[StoredBill]:
        stored = self._bills.get(bill_id)
        if stored is None or stored.user_id != user_id:
            return None
        return stored


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
