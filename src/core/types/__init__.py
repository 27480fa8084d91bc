"""
Core type definitions and utilities.
"""

from .financial import (
    HUNDRED,
    ZERO,
    calculate_commission,
    is_less_than,
    safe_divide,
    safe_float_comparison,
)

__all__ = [
    "calculate_commission",
    "safe_divide",
    "safe_float_comparison",
    "is_less_than",
    "ZERO",
    "HUNDRED",
]
