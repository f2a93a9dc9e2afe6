"""
Split Bill - Source Package

Bill-splitting core for a consumer app: enter or scan a receipt,
assign items to participants, and compute what everyone owes.

DESIGN PRINCIPLES:
1. The split calculation is a pure function
2. Untrusted scan output is filtered, never trusted
3. Nothing is persisted until the user explicitly saves
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Split Bill Team"
