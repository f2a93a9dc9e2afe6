"""
Audit Logger

DESIGN DECISION: Every significant action of a split flow is logged:
wizard steps, receipt scans, validation failures, saves and history reads.

The audit logger:
- Always writes a structured local log line
- Persists to audit storage when one is configured
- Gracefully handles storage failures (a failed audit write never
  breaks saving a bill)
- Supports correlation IDs to trace the events of one session
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from splitbill.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from splitbill.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), if provided
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("splitbill.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_session_started(self, user_id: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.session_started(
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_step_changed(
        self,
        from_step: str,
        to_step: str,
        correlation_id: UUID,
    ) -> None:
        """Log a wizard step change."""
        await self.log(AuditEventBuilder.step_changed(
            from_step=from_step,
            to_step=to_step,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        stage: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        """Log a blocked step change or save."""
        await self.log(AuditEventBuilder.validation_failed(
            stage=stage,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_scan_requested(
        self,
        upload_id: UUID,
        filename: str,
        file_size: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.scan_requested(
            upload_id=upload_id,
            filename=filename,
            file_size=file_size,
            correlation_id=correlation_id,
        ))

    async def log_scan_completed(
        self,
        upload_id: UUID,
        item_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.scan_completed(
            upload_id=upload_id,
            item_count=item_count,
            correlation_id=correlation_id,
        ))

    async def log_scan_upload_rejected(
        self,
        filename: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.scan_upload_rejected(
            filename=filename,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_scan_failed(self, error_message: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.scan_failed(
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_bill_saved(
        self,
        bill_id: UUID,
        user_id: str,
        total: str,
        correlation_id: UUID,
    ) -> None:
        """Log bill save."""
        await self.log(AuditEventBuilder.bill_saved(
            bill_id=bill_id,
            user_id=user_id,
            total=total,
            correlation_id=correlation_id,
        ))

    async def log_save_failed(
        self,
        user_id: str,
        stage: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.save_failed(
            user_id=user_id,
            stage=stage,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_history_viewed(
        self,
        user_id: str,
        result_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.history_viewed(
            user_id=user_id,
            result_count=result_count,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a split session.
    Pass it through all subsequent operations.
    """
    return uuid4()
