"""
Utility decorators for input validation.
"""

import functools
import inspect
from collections.abc import Callable
from typing import Any

from src.core.exceptions.backtest import ValidationError
from src.core.utils.validation import validate_non_negative, validate_positive, validate_symbol

_POSITIVE_PARAMS = ("quantity", "price")
_NON_NEGATIVE_PARAMS = ("commission",)


def _validate_trading_parameter(param_name: str, value: Any, bound_args: Any) -> None:
    """Validate a single trading parameter."""
    if value is None:
        return

    try:
        if param_name == "symbol":
            bound_args.arguments[param_name] = validate_symbol(value)
        elif param_name in _POSITIVE_PARAMS:
            bound_args.arguments[param_name] = validate_positive(value, param_name)
        elif param_name in _NON_NEGATIVE_PARAMS:
            bound_args.arguments[param_name] = validate_non_negative(value, param_name)
    except TypeError as e:
        raise ValidationError(f"Invalid {param_name}: {e}") from e


def _process_function_arguments(
    func: Callable[..., Any], args: tuple[Any, ...], kwargs: dict[str, Any]
) -> Any:
    """Process and validate function arguments."""
    sig = inspect.signature(func)
    bound_args = sig.bind(*args, **kwargs)
    bound_args.apply_defaults()

    for param_name, value in bound_args.arguments.items():
        if param_name != "self":
            _validate_trading_parameter(param_name, value, bound_args)

    return func(*bound_args.args, **bound_args.kwargs)


def validate_inputs[F: Callable[..., Any]](func: F) -> F:
    """Decorator to validate fill inputs (symbol, quantity, price, commission)."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return _process_function_arguments(func, args, kwargs)

    return wrapper  # type: ignore
