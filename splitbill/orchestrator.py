"""
Main Orchestrator for Split Bill

This module ties together all the components and defines the
end-to-end flows for:
1. Splitting a bill (collect items -> assign and review -> save)
2. History (list and open saved bills)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is persisted until the user explicitly saves
- A bill with unassigned items is never saved
- External failures never change the bill being edited
- Every step is audited

The signed-in user is passed into each call as a UserContext;
flows keep no global auth state.
"""

from typing import Optional
from uuid import UUID

import structlog

from splitbill.audit import AuditLogger, create_correlation_id
from splitbill.models.bill import (
    ScanResult,
    StoredBill,
    UserContext,
    WizardStep,
)
from splitbill.services.scan import (
    ReceiptScanService,
    ScanServiceError,
    ScanUnauthorizedError,
    UploadRejectedError,
)
from splitbill.services.storage import (
    BillStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsBillStorage,
    GoogleSheetsClient,
    InMemoryBillStorage,
    NotFoundError,
    StorageError,
)
from splitbill.session import InvalidTransitionError, SplitSession
from splitbill.validation import BillValidationError, BillValidator

logger = structlog.get_logger()


class SplitBillFlow:
    """
    Orchestrates one split-the-bill session.

    Flow:
    1. Collect → Title, items (typed or scanned), participants
    2. Advance → Guarded by title / items / participant checks
    3. Assign → Toggle who shares each item, set tax/service/tip
    4. Save → Rejected while any item is unassigned

    Saving is MANDATORY user action.
    The system NEVER auto-saves.
    """

    def __init__(
        self,
        scan_service: Optional[ReceiptScanService] = None,
        bill_storage: Optional[BillStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[BillValidator] = None,
    ):
        self._validator = validator or BillValidator()
        self._session = SplitSession(self._validator)
        self._scan_service = scan_service
        self._bill_storage = bill_storage or InMemoryBillStorage()
        self._audit_logger = audit_logger
        self._correlation_id = create_correlation_id()

    @property
    def session(self) -> SplitSession:
        return self._session

    @property
    def correlation_id(self) -> UUID:
        return self._correlation_id

    def _get_scan_service(self) -> ReceiptScanService:
        if self._scan_service is None:
            try:
                self._scan_service = ReceiptScanService()
            except ValueError as e:
                raise ScanServiceError(f"Scan service is not configured: {e}") from e
        return self._scan_service

    async def start(self, user: UserContext) -> SplitSession:
        """Discard any bill in progress and start a new session."""
        self._session.reset()
        self._correlation_id = create_correlation_id()

        if self._audit_logger:
            await self._audit_logger.log_session_started(
                user_id=user.user_id,
                correlation_id=self._correlation_id,
            )

        return self._session

    async def advance(self) -> WizardStep:
        """
        Move on to assigning and reviewing.

        Raises:
            InvalidTransitionError: The bill is not ready; the attached
                ValidationResult lists every problem
        """
        from_step = self._session.step
        try:
            to_step = self._session.advance()
        except InvalidTransitionError as e:
            if self._audit_logger and e.validation is not None:
                await self._audit_logger.log_validation_failed(
                    stage="review",
                    issues=[issue.model_dump() for issue in e.validation.issues],
                    correlation_id=self._correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_step_changed(
                from_step=from_step.value,
                to_step=to_step.value,
                correlation_id=self._correlation_id,
            )
        return to_step

    async def back(self) -> WizardStep:
        from_step = self._session.step
        to_step = self._session.back()

        if self._audit_logger and from_step != to_step:
            await self._audit_logger.log_step_changed(
                from_step=from_step.value,
                to_step=to_step.value,
                correlation_id=self._correlation_id,
            )
        return to_step

    async def scan_receipt(
        self,
        image_bytes: bytes,
        filename: str,
        user: UserContext,
    ) -> ScanResult:
        """
        Scan a receipt and add the detected items to the bill.

        Detected items are appended unassigned. On any failure the
        bill is left exactly as it was.

        Returns:
            The ScanResult; an empty item list means nothing usable
            was found on the receipt

        Raises:
            InvalidTransitionError: Not collecting items
            UploadRejectedError: Image too large or not JPEG/PNG
            ScanUnauthorizedError: User has no access token
            ScanServiceError: Scan function failed
        """
        if self._session.step != WizardStep.COLLECTING_ITEMS:
            raise InvalidTransitionError(
                "Receipts can only be scanned while collecting items"
            )

        scan_service = self._get_scan_service()

        try:
            upload = scan_service.check_upload(image_bytes, filename)
        except UploadRejectedError as e:
            if self._audit_logger:
                await self._audit_logger.log_scan_upload_rejected(
                    filename=filename,
                    reason=e.reason,
                    correlation_id=self._correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_scan_requested(
                upload_id=upload.upload_id,
                filename=filename,
                file_size=upload.file_size_bytes,
                correlation_id=self._correlation_id,
            )

        try:
            result = await scan_service.scan(image_bytes, filename, user, upload=upload)
        except ScanUnauthorizedError as e:
            if self._audit_logger:
                await self._audit_logger.log_scan_failed(
                    error_message=str(e),
                    correlation_id=self._correlation_id,
                )
            raise
        except ScanServiceError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="scan-receipt",
                    error_message=str(e),
                    correlation_id=self._correlation_id,
                )
            raise

        self._session.merge_scanned_items(result.items)

        if self._audit_logger:
            await self._audit_logger.log_scan_completed(
                upload_id=upload.upload_id,
                item_count=result.item_count,
                correlation_id=self._correlation_id,
            )

        return result

    async def save(self, user: UserContext) -> StoredBill:
        """
        Save the bill for the user.

        CRITICAL: This is called ONLY on an explicit user action.

        Returns:
            The stored bill. The session starts over afterwards.

        Raises:
            InvalidTransitionError: The bill has not been reviewed yet
            BillValidationError: The bill is incomplete (e.g. unassigned
                items); the error lists every issue
            StorageError: Persisting failed; SaveFailedError names the
                write that failed and the session keeps the bill
        """
        if self._session.step != WizardStep.ASSIGNING_AND_REVIEWING:
            raise InvalidTransitionError(
                "Bills can only be saved after assigning and reviewing"
            )

        validation = self._session.check_ready_to_save()
        if validation.has_errors:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    stage="save",
                    issues=[issue.model_dump() for issue in validation.issues],
                    correlation_id=self._correlation_id,
                )
            raise BillValidationError(
                self._validator.get_user_friendly_summary(validation),
                issues=validation.issues,
            )

        bill = self._session.bill
        split = self._session.split

        try:
            stored = await self._bill_storage.save_bill(user, bill, split)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_save_failed(
                    user_id=user.user_id,
                    stage=getattr(e, "stage", "connection"),
                    error_message=str(e),
                    correlation_id=self._correlation_id,
                )
            raise
        except Exception as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"user_id": user.user_id},
                    correlation_id=self._correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_bill_saved(
                bill_id=stored.id,
                user_id=user.user_id,
                total=str(split.total),
                correlation_id=self._correlation_id,
            )

        self._session.reset()
        return stored


class HistoryFlow:
    """
    Read access to a user's saved bills.

    CRITICAL: Every lookup is scoped to the given user.
    Another user's bill is reported as not found.
    """

    def __init__(
        self,
        bill_storage: Optional[BillStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._bill_storage = bill_storage or InMemoryBillStorage()
        self._audit_logger = audit_logger

    async def list_bills(
        self,
        user: UserContext,
        limit: int = 50,
        offset: int = 0,
        correlation_id: Optional[UUID] = None,
    ) -> list[StoredBill]:
        """List the user's bills, newest first."""
        correlation_id = correlation_id or create_correlation_id()

        bills = await self._bill_storage.list_bills(user.user_id, limit=limit, offset=offset)

        if self._audit_logger:
            await self._audit_logger.log_history_viewed(
                user_id=user.user_id,
                result_count=len(bills),
                correlation_id=correlation_id,
            )

        return bills

    async def get_bill(self, user: UserContext, bill_id: UUID) -> StoredBill:
        """
        Open one saved bill.

        Raises:
            NotFoundError: No such bill for this user
        """
        stored = await self._bill_storage.get_bill(user.user_id, bill_id)
        if stored is None:
            raise NotFoundError(f"Bill not found: {bill_id}")
        return stored


def create_app_components(
    use_storage: bool = True,
) -> tuple[SplitBillFlow, HistoryFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False (or leave Sheets unconfigured) to keep
                    bills in memory.

    Returns:
        (split_bill_flow, history_flow, sheets_client)
    """
    sheets_client = None
    bill_storage: BillStorageInterface

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            bill_storage = GoogleSheetsBillStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except ValueError as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            bill_storage = InMemoryBillStorage()
            audit_logger = AuditLogger()  # Local-only logging
    else:
        bill_storage = InMemoryBillStorage()
        audit_logger = AuditLogger()  # Local-only logging

    split_bill_flow = SplitBillFlow(
        bill_storage=bill_storage,
        audit_logger=audit_logger,
    )

    history_flow = HistoryFlow(
        bill_storage=bill_storage,
        audit_logger=audit_logger,
    )

    return split_bill_flow, history_flow, sheets_client
