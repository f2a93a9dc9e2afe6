"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

A saved bill is written as four collections, in this order:

    transaction -> items -> participants -> assignments

CRITICAL: There is no transaction spanning the four writes.
If one write fails, SaveFailedError names the stage and the rows
already written stay where they are. Nothing is retried.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from splitbill.models.audit import AuditEvent
from splitbill.models.bill import Bill, SplitResult, StoredBill, UserContext

# Write order of a saved bill
SAVE_STAGES = ("transaction", "items", "participants", "assignments")


class BillStorageInterface(ABC):
    """
    Abstract interface for bill storage operations.

    Any storage implementation (Google Sheets, in-memory, etc.)
    must implement these methods. Every read is scoped to one user.
    """

    @abstractmethod
    async def save_bill(
        self,
        user: UserContext,
        bill: Bill,
        result: SplitResult,
    ) -> StoredBill:
        """
        Persist a finalized bill together with its split.

        Args:
            user: Owner of the bill
            bill: The finalized bill
            result: The split computed for the bill

        Returns:
            The stored bill with its new id

        Raises:
            SaveFailedError: If one of the writes fails
            ConnectionError: If the backend cannot be reached
        """
        pass

    @abstractmethod
    async def list_bills(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[StoredBill]:
        """
        List a user's bills, newest first.

        Args:
            user_id: Owner whose bills to list
            limit: Maximum number of results
            offset: Number of results to skip

        Returns:
            List of stored bills
        """
        pass

    @abstractmethod
    async def get_bill(
        self,
        user_id: str,
        bill_id: UUID,
    ) -> Optional[StoredBill]:
        """
        Retrieve one of a user's bills.

        Returns:
            The bill, or None if it does not exist or belongs to someone else
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class SaveFailedError(StorageError):
    """One of the writes of a bill save failed."""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        super().__init__(f"Failed to save {stage}: {message}")
