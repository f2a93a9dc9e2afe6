"""Utility helpers."""

from splitbill.utils.currency import format_number, format_rupiah, parse_rupiah

__all__ = [
    "format_number",
    "format_rupiah",
    "parse_rupiah",
]
