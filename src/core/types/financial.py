"""
Financial helpers for high-performance backtesting calculations.

All ledger and analytics arithmetic is done in float64. Replaying months of
minute candles performs millions of operations, and float keeps that fast and
NumPy/Pandas compatible.

IMPORTANT PRECISION CONSIDERATIONS:
- Float64 provides ~15-16 significant decimal digits
- Balance checks compare with a small tolerance rather than exact equality
- Values are never rounded inside the ledger
"""

# Common financial values as float constants
ZERO = 0.0
HUNDRED = 100.0


def calculate_commission(value: float, commission_rate: float) -> float:
    """Calculate the commission charged on a fill of the given value.

    Args:
        value: Executed value in quote currency
        commission_rate: Fee rate as a fraction (0.001 = 0.1%)

    Returns:
        Commission in quote currency
    """
    if commission_rate < ZERO:
        raise ValueError(f"Commission rate must be non-negative, got {commission_rate}")
    return value * commission_rate


def safe_divide(numerator: float, denominator: float, default: float = ZERO) -> float:
    """Divide, returning ``default`` when the denominator is zero."""
    if denominator == ZERO:
        return default
    return numerator / denominator


def safe_float_comparison(a: float, b: float, tolerance: float = 1e-9) -> bool:
    """Compare floats with tolerance for precision issues.

    Examples:
        >>> safe_float_comparison(0.1 + 0.2, 0.3)
        True
        >>> safe_float_comparison(1000000.1, 1000000.2, 0.01)
        False
    """
    return abs(a - b) < tolerance


def is_less_than(a: float, b: float, tolerance: float = 1e-9) -> bool:
    """Return True when ``a`` is below ``b`` by more than ``tolerance``."""
    return a < b and not safe_float_comparison(a, b, tolerance)
