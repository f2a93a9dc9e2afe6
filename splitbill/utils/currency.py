"""
Currency formatting for display.

Amounts are kept unrounded everywhere else; rounding to whole
Rupiah only happens here.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

Number = Union[Decimal, int, float, str]

_NUMBER_PREFIX = re.compile(r"^\d*\.?\d+|^\d+")


def _round_whole(amount: Number) -> int:
    value = Decimal(str(amount))
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_number(amount: Number) -> str:
    """Whole number with '.' as the thousands separator: 1234567 -> '1.234.567'."""
    rounded = _round_whole(amount)
    sign = "-" if rounded < 0 else ""
    return sign + f"{abs(rounded):,}".replace(",", ".")


def format_rupiah(amount: Number) -> str:
    """Format as Indonesian Rupiah with no decimals: 60000 -> 'Rp 60.000'."""
    rounded = _round_whole(amount)
    if rounded < 0:
        return f"-Rp {format_number(-rounded)}"
    return f"Rp {format_number(rounded)}"


def parse_rupiah(text: str) -> Decimal:
    """
    Parse user-typed money text.

    Everything except digits and '.' is dropped, then the leading
    number is read. Text with no number gives 0.
    """
    if text is None:
        return Decimal("0")
    cleaned = re.sub(r"[^\d.]", "", str(text))
    match = _NUMBER_PREFIX.match(cleaned)
    if not match:
        return Decimal("0")
    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return Decimal("0")
