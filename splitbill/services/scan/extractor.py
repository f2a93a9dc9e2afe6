"""
Receipt Item Extraction with Gemini

The server half of the scan boundary: receives {"image": <data URL>}
from an authenticated client, asks a Gemini vision model for the line
items and returns only the items that pass sanitizing.

Responses mirror an HTTP handler:

    200  {"items": [...]}
    401  {"error": "Unauthorized", "items": []}
    400  {"error": "Invalid image data", "items": []}
    500  {"error": <message>, "items": []}

IMPORTANT: The model's reply is untrusted text. Anything that does not
parse, or any item that fails validation, is dropped silently.
"""

import base64
import binascii
import re
from decimal import Decimal
from typing import Any, Optional

import google.generativeai as genai
import structlog

from splitbill.config import get_settings
from splitbill.models.bill import ScannedItem
from splitbill.validation import ScanResultValidator

logger = structlog.get_logger()

EXTRACTION_PROMPT = (
    "Extract all items with prices from this receipt. Return ONLY a valid "
    "JSON array with objects containing: name (string), price (number in IDR), "
    "quantity (number, default 1). No markdown, no explanation, just the JSON array."
)

_DATA_URL = re.compile(r"^data:(?P<mime>image/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)


def _error(status: int, message: str) -> tuple[int, dict]:
    return status, {"error": message, "items": []}


def _json_number(value: Decimal):
    return int(value) if value == value.to_integral_value() else float(value)


def item_to_json(item: ScannedItem) -> dict:
    return {
        "name": item.name,
        "price": _json_number(item.price),
        "quantity": item.quantity,
    }


class GeminiReceiptExtractor:
    """
    Extracts receipt items from an image with a Gemini model.

    The model can be injected; otherwise it is configured from
    GeminiSettings on first use.
    """

    def __init__(self, model: Optional[Any] = None):
        self._model = model
        self._validator = ScanResultValidator()

    def _get_model(self):
        """Configure Google Generative AI."""
        if self._model is None:
            settings = get_settings().gemini
            genai.configure(api_key=settings.api_key)
            self._model = genai.GenerativeModel(
                model_name=settings.model_name,
                generation_config={
                    "temperature": settings.temperature,
                    "max_output_tokens": settings.max_tokens,
                },
            )
        return self._model

    @staticmethod
    def decode_data_url(image: str) -> tuple[str, bytes]:
        """
        Split a data URL into its MIME type and raw bytes.

        Raises:
            ValueError: Not a base64 image data URL
        """
        match = _DATA_URL.match(image.strip())
        if not match:
            raise ValueError("Image must be a base64 data URL")
        try:
            data = base64.b64decode(match.group("data"), validate=True)
        except binascii.Error as e:
            raise ValueError(f"Image data is not valid base64: {e}") from e
        return match.group("mime"), data

    async def extract(self, image: str) -> list[ScannedItem]:
        """
        Ask the model for the items on a receipt.

        Args:
            image: Receipt image as a data URL

        Returns:
            Sanitized items (possibly empty)
        """
        mime_type, data = self.decode_data_url(image)
        model = self._get_model()

        response = await model.generate_content_async([
            EXTRACTION_PROMPT,
            {"mime_type": mime_type, "data": data},
        ])
        content = response.text or "[]"

        items = self._validator.parse_content(content)
        logger.info("receipt_items_extracted", item_count=len(items))
        return items

    async def handle(
        self,
        authorization: Optional[str],
        payload: Any,
    ) -> tuple[int, dict]:
        """
        Handle one scan request.

        Args:
            authorization: Value of the Authorization header
            payload: Parsed JSON request body

        Returns:
            (status_code, response_body)
        """
        if not authorization:
            return _error(401, "Unauthorized")

        image = payload.get("image") if isinstance(payload, dict) else None
        if not image or not isinstance(image, str):
            return _error(400, "Invalid image data")

        try:
            self.decode_data_url(image)
        except ValueError:
            return _error(400, "Invalid image data")

        try:
            items = await self.extract(image)
        except Exception as e:
            logger.error("receipt_extraction_failed", error=str(e))
            return _error(500, str(e) or "Unknown error")

        return 200, {"items": [item_to_json(item) for item in items]}
