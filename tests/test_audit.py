"""Tests for the audit logger."""

import asyncio
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from splitbill.audit import AuditLogger, create_correlation_id
from splitbill.models.audit import AuditEventBuilder, AuditEventType
from splitbill.services.storage import InMemoryAuditStorage, StorageError


def step_event():
    return AuditEventBuilder.step_changed("collecting_items", "assigning_and_reviewing", uuid4())


class TestAuditLogger:
    """Tests for local logging and persistence."""

    def test_logs_locally_without_storage(self):
        logger = AuditLogger()
        assert asyncio.run(logger.log(step_event())) is True

    def test_persists_to_storage(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()

        asyncio.run(logger.log_bill_saved(uuid4(), "user-1", "60000", correlation_id))

        assert len(storage.events) == 1
        assert storage.events[0].event_type == AuditEventType.BILL_SAVED
        assert storage.events[0].correlation_id == correlation_id

    def test_storage_failure_does_not_raise(self):
        """A failed audit write never breaks the calling flow."""
        storage = InMemoryAuditStorage()
        storage.append_event = AsyncMock(side_effect=StorageError("sheet gone"))
        logger = AuditLogger(storage)

        assert asyncio.run(logger.log(step_event())) is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
