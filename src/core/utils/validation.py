"""
Validation utilities for core domain models.

Provides consistent validation across the application.
"""

import re
from typing import Any

from src.core.exceptions.backtest import ValidationError

# BASE/QUOTE, e.g. "BTC/USDT"
_SYMBOL_PATTERN = re.compile(r"^[A-Z0-9]{2,15}/[A-Z0-9]{2,10}$")


def validate_symbol(symbol: Any, param_name: str = "symbol") -> str:
    """Validate that a value is a ``BASE/QUOTE`` trading pair.

    Args:
        symbol: Value to validate
        param_name: Parameter name for error messages

    Returns:
        The validated symbol

    Raises:
        TypeError: If symbol is not a string
        ValidationError: If symbol is not in ``BASE/QUOTE`` form
    """
    if not isinstance(symbol, str):
        raise TypeError(f"{param_name} must be str, got {type(symbol).__name__}")
    if not _SYMBOL_PATTERN.match(symbol):
        raise ValidationError(f"Invalid {param_name} format: {symbol!r} (expected BASE/QUOTE)")
    return symbol


def split_symbol(symbol: str) -> tuple[str, str]:
    """Split a ``BASE/QUOTE`` symbol into its currencies.

    Raises:
        ValidationError: If symbol is not in ``BASE/QUOTE`` form
    """
    validate_symbol(symbol)
    base, quote = symbol.split("/")
    return base, quote


def validate_positive(value: float, param_name: str) -> float:
    """Validate that a numeric value is positive.

    Raises:
        ValidationError: If value is not positive
    """
    if value <= 0:
        raise ValidationError(f"{param_name} must be positive, got {value}")
    return value


def validate_non_negative(value: float, param_name: str) -> float:
    """Validate that a numeric value is zero or positive.

    Raises:
        ValidationError: If value is negative
    """
    if value < 0:
        raise ValidationError(f"{param_name} must be non-negative, got {value}")
    return value


def validate_fraction(value: float, param_name: str = "fraction") -> float:
    """Validate that a rate is a fraction between 0 and 1 inclusive.

    Raises:
        ValidationError: If value is not between 0 and 1
    """
    if value < 0 or value > 1:
        raise ValidationError(f"{param_name} must be between 0 and 1, got {value}")
    return value


def validate_time_range(start_time: int, end_time: int) -> None:
    """Validate that an epoch-millisecond window is non-empty.

    Raises:
        ValidationError: If end_time is not after start_time
    """
    if end_time <= start_time:
        raise ValidationError(
            f"end_time must be after start_time, got start={start_time}, end={end_time}"
        )
