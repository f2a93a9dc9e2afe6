"""
Receipt Scan Client

Sends a receipt photo to the scan function and returns the items it found.

This service handles:
1. Upload checks BEFORE anything is sent (size, declared type, content)
2. Encoding the image as a base64 data URL
3. Calling the scan function with the user's bearer token
4. Sanitizing the response (the function's output is not trusted either)

CRITICAL: A rejected image never leaves the machine.
Only JPEG and PNG up to the configured size limit are sent.
"""

import base64
import io
import mimetypes
from typing import Optional

import requests
import structlog
from PIL import Image, UnidentifiedImageError

from splitbill.config import get_settings
from splitbill.models.bill import ImageUpload, ScanResult, UserContext
from splitbill.validation import ScanResultValidator

logger = structlog.get_logger()

# Pillow format name -> MIME type
_PIL_FORMATS = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
}


class ScanError(Exception):
    """Base exception for receipt scan errors."""
    pass


class UploadRejectedError(ScanError):
    """Image failed the upload checks and was not sent."""

    def __init__(self, filename: str, reason: str):
        self.filename = filename
        self.reason = reason
        super().__init__(reason)


class ScanUnauthorizedError(ScanError):
    """No usable access token for the scan function."""
    pass


class ScanServiceError(ScanError):
    """The scan function could not be reached or returned an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ReceiptScanService:
    """
    Client for the scan-receipt function.

    IMPORTANT BOUNDARIES:
    1. This service does NOT touch the bill; the caller merges items
    2. Malformed responses give zero items, not an error
    3. No automatic retries; the user decides whether to try again
    """

    def __init__(self, function_url: Optional[str] = None, timeout: Optional[float] = None):
        self._app_settings = get_settings().app
        self._validator = ScanResultValidator()
        if function_url is None or timeout is None:
            scan_settings = get_settings().scan
            function_url = function_url or scan_settings.function_url
            timeout = timeout or scan_settings.timeout_seconds
        self._function_url = function_url
        self._timeout = timeout

    def check_upload(self, image_bytes: bytes, filename: str) -> ImageUpload:
        """
        Run the upload checks.

        Args:
            image_bytes: Raw file content
            filename: Original file name; its extension is the declared type

        Returns:
            ImageUpload describing the accepted image

        Raises:
            UploadRejectedError: Too large, wrong declared type, or the
                content is not a JPEG/PNG image
        """
        size = len(image_bytes)
        max_size = self._app_settings.max_upload_size_bytes
        if size > max_size:
            raise UploadRejectedError(
                filename,
                f"Image is too large ({size / (1024 * 1024):.1f} MB). "
                f"Maximum size is {self._app_settings.max_upload_size_mb} MB.",
            )
        if size == 0:
            raise UploadRejectedError(filename, "Image file is empty.")

        declared_type, _ = mimetypes.guess_type(filename)
        if declared_type == "image/jpg":
            declared_type = "image/jpeg"
        if declared_type not in self._app_settings.supported_mime_types:
            raise UploadRejectedError(
                filename,
                "Unsupported file type. Please upload a JPEG or PNG image.",
            )

        try:
            with Image.open(io.BytesIO(image_bytes)) as img:
                detected_format = img.format
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise UploadRejectedError(filename, f"File is not a valid image: {e}") from e

        detected_type = _PIL_FORMATS.get(detected_format)
        if detected_type is None:
            raise UploadRejectedError(
                filename,
                f"Unsupported image format {detected_format}. Please upload a JPEG or PNG image.",
            )
        if detected_type != declared_type:
            raise UploadRejectedError(
                filename,
                f"File content is {detected_type} but the file name says {declared_type}.",
            )

        return ImageUpload(
            original_filename=filename,
            file_size_bytes=size,
            mime_type=detected_type,
        )

    @staticmethod
    def to_data_url(image_bytes: bytes, mime_type: str) -> str:
        encoded = base64.b64encode(image_bytes).decode("ascii")
        return f"data:{mime_type};base64,{encoded}"

    def parse_response(self, body) -> ScanResult:
        """Turn the function's JSON body into a ScanResult."""
        if not isinstance(body, dict):
            return ScanResult(items=[])

        error = body.get("error")
        return ScanResult(
            items=self._validator.sanitize(body.get("items")),
            error=error if isinstance(error, str) else None,
        )

    async def scan(
        self,
        image_bytes: bytes,
        filename: str,
        user: UserContext,
        upload: Optional[ImageUpload] = None,
    ) -> ScanResult:
        """
        Scan a receipt image.

        Args:
            image_bytes: Raw file content
            filename: Original file name
            user: Signed-in user; its access token authorizes the call
            upload: Result of an earlier check_upload, to skip re-checking

        Returns:
            ScanResult with the sanitized items

        Raises:
            UploadRejectedError: Image failed the upload checks
            ScanUnauthorizedError: User has no access token
            ScanServiceError: Network failure or non-2xx response
        """
        if upload is None:
            upload = self.check_upload(image_bytes, filename)

        if not user.is_authenticated:
            raise ScanUnauthorizedError("You need to be signed in to scan receipts.")

        try:
            response = requests.post(
                self._function_url,
                json={"image": self.to_data_url(image_bytes, upload.mime_type)},
                headers={
                    "Authorization": f"Bearer {user.access_token}",
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise ScanServiceError(f"Could not reach the scan service: {e}") from e

        if not response.ok:
            raise ScanServiceError(
                f"Scan service returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError:
            logger.warning("scan_response_not_json", status_code=response.status_code)
            body = None

        result = self.parse_response(body)
        logger.info(
            "receipt_scanned",
            upload_id=str(upload.upload_id),
            item_count=result.item_count,
        )
        return result
