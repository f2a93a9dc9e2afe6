"""Split calculation package."""

from splitbill.split.calculator import compute_bill_split, compute_split

__all__ = ["compute_bill_split", "compute_split"]
