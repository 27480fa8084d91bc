"""
Candle data validation utilities.

Integrity checks for candle frames read from cache files, and sanitizing of
the path components cache files are named after.
"""

import re
from pathlib import Path

import pandas as pd

from src.core.exceptions.backtest import DataError, ValidationError
from src.core.models.candle import OHLCV_COLUMNS

_SAFE_COMPONENT = re.compile(r"^[a-zA-Z0-9_.-]+$")


class CandleValidator:
    """Validates cached candle frames and cache file locations."""

    @staticmethod
    def sanitize_path_component(component: str, component_name: str) -> str:
        """Reject path components that could escape the cache directory."""
        if not component:
            raise ValidationError(f"{component_name.capitalize()} cannot be empty")

        if ".." in component or "/" in component or "\\" in component:
            raise ValidationError(f"Invalid {component_name}: contains path traversal characters")

        if not _SAFE_COMPONENT.match(component):
            raise ValidationError(
                f"Invalid {component_name}: '{component}' contains invalid characters. "
                f"Only alphanumeric, underscore, dash, and dot are allowed."
            )

        if len(component) > 120:
            raise ValidationError(f"{component_name.capitalize()} too long: maximum 120 characters")

        return component

    @staticmethod
    def validate_path_safety(path: Path, cache_dir: Path) -> None:
        """Validate that ``path`` resolves inside ``cache_dir``."""
        try:
            resolved_path = path.resolve()
            cache_dir_resolved = cache_dir.resolve()
        except (OSError, ValueError) as e:
            raise ValidationError(f"Invalid path construction: {str(e)}") from e

        if not resolved_path.is_relative_to(cache_dir_resolved):
            raise ValidationError("Path traversal attempt detected")

    @staticmethod
    def validate_frame(df: pd.DataFrame, source: Path | str) -> None:
        """Validate that a cached frame holds well-formed candles.

        Raises:
            DataError: On missing columns, bad values or inconsistent OHLC data
        """
        missing_columns = set(OHLCV_COLUMNS) - set(df.columns)
        if missing_columns:
            raise DataError(f"Cache file {source} missing columns: {sorted(missing_columns)}")

        if df.empty:
            return

        try:
            if df[OHLCV_COLUMNS].isna().any().any():
                raise DataError(f"Invalid candle data in {source}: missing values")

            for col in ("open", "high", "low", "close"):
                if (df[col] <= 0).any():
                    raise DataError(f"Invalid price data in {source}: {col} has non-positive values")

            if (df["volume"] < 0).any():
                raise DataError(f"Invalid volume data in {source}: negative volume values")

            invalid_ohlc = (
                (df["high"] < df["low"])
                | (df["high"] < df["open"])
                | (df["high"] < df["close"])
                | (df["low"] > df["open"])
                | (df["low"] > df["close"])
            )
            if invalid_ohlc.any():
                raise DataError(f"Invalid OHLC relationships in {source}")

            if df["timestamp"].duplicated().any():
                raise DataError(f"Duplicate timestamps in {source}")
        except (TypeError, ValueError) as e:
            raise DataError(f"Invalid candle data in {source}: invalid data types") from e
