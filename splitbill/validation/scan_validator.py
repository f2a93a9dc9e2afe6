"""
Receipt Scan Result Validation

The scan model returns free-form text that is supposed to be a JSON
array of {name, price, quantity} objects. None of it is trusted.

Each candidate is kept only if:
- name is a string with non-blank text (trimmed, cut to 100 chars)
- price is a number in (0, 999999999]
- quantity is a whole number in (0, 9999]

Anything else is dropped, never raised. A payload that is not a
list, or text that is not JSON at all, yields zero items.
"""

import json
import math
import re
from decimal import Decimal
from typing import Any, Optional

from splitbill.config import get_settings
from splitbill.models.bill import ScannedItem

_CODE_FENCE = re.compile(r"```json\n?|\n?```")


def _is_number(value: Any) -> bool:
    """JSON numbers only; bool is an int subclass and is not a number here."""
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and not (isinstance(value, float) and not math.isfinite(value))
    )


class ScanResultValidator:
    """Filters untrusted scan candidates down to valid ScannedItems."""

    def __init__(self):
        settings = get_settings().app
        self._max_name_length = settings.max_item_name_length
        self._max_price = settings.max_item_price
        self._max_quantity = settings.max_item_quantity

    def sanitize_candidate(self, candidate: Any) -> Optional[ScannedItem]:
        """Return a ScannedItem, or None if the candidate must be dropped."""
        if not isinstance(candidate, dict):
            return None

        name = candidate.get("name")
        price = candidate.get("price")
        quantity = candidate.get("quantity")

        if not isinstance(name, str) or not name.strip():
            return None

        if not _is_number(price) or not 0 < price <= self._max_price:
            return None

        if not _is_number(quantity) or not 0 < quantity <= self._max_quantity:
            return None
        if isinstance(quantity, float) and not quantity.is_integer():
            return None

        return ScannedItem(
            name=name.strip()[:self._max_name_length],
            price=Decimal(str(price)),
            quantity=int(quantity),
        )

    def sanitize(self, payload: Any) -> list[ScannedItem]:
        """Sanitize a parsed JSON payload into valid items."""
        if not isinstance(payload, list):
            return []

        items = []
        for candidate in payload:
            item = self.sanitize_candidate(candidate)
            if item is not None:
                items.append(item)
        return items

    def parse_content(self, content: Any) -> list[ScannedItem]:
        """
        Parse raw model output text and sanitize it.

        Markdown ```json fences around the array are tolerated.
        """
        if not isinstance(content, str):
            return []

        cleaned = _CODE_FENCE.sub("", content).strip()
        try:
            payload = json.loads(cleaned)
        except json.JSONDecodeError:
            return []

        return self.sanitize(payload)
