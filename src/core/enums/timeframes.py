"""
Candle interval enumerations.

This module defines the allowed intervals for candlestick data.
"""

from enum import StrEnum


class Timeframe(StrEnum):
    """
    Allowed candle intervals.

    Mirrors the exchange kline intervals, from one minute up to one month.
    """

    # Minute intervals
    M1 = "1m"
    M3 = "3m"
    M5 = "5m"
    M15 = "15m"
    M30 = "30m"

    # Hour intervals
    H1 = "1h"
    H2 = "2h"
    H4 = "4h"
    H6 = "6h"
    H8 = "8h"
    H12 = "12h"

    # Day/Week/Month intervals
    D1 = "1d"
    D3 = "3d"
    W1 = "1w"
    MO1 = "1M"  # Calendar month, approximated as 30 days

    @classmethod
    def to_seconds(cls, timeframe: "Timeframe") -> int:
        """
        Convert timeframe to seconds.

        Args:
            timeframe: Timeframe enum value

        Returns:
            Number of seconds in the timeframe
        """
        conversions = {
            cls.M1: 60,
            cls.M3: 180,
            cls.M5: 300,
            cls.M15: 900,
            cls.M30: 1800,
            cls.H1: 3600,
            cls.H2: 7200,
            cls.H4: 14400,
            cls.H6: 21600,
            cls.H8: 28800,
            cls.H12: 43200,
            cls.D1: 86400,
            cls.D3: 259200,
            cls.W1: 604800,
            cls.MO1: 2592000,
        }
        return conversions[timeframe]

    @classmethod
    def to_milliseconds(cls, timeframe: "Timeframe") -> int:
        """Convert timeframe to milliseconds."""
        return cls.to_seconds(timeframe) * 1000

    @classmethod
    def from_string(cls, value: str) -> "Timeframe":
        """
        Convert string to Timeframe enum.

        "1M" (month) and "1m" (minute) differ only by case, so matching is exact.

        Raises:
            ValueError: If timeframe is not supported
        """
        for tf in cls:
            if tf.value == value:
                return tf

        raise ValueError(
            f"Unsupported timeframe: {value}. "
            f"Supported timeframes: {', '.join([tf.value for tf in cls])}"
        )

    @property
    def is_intraday(self) -> bool:
        """Check if timeframe is intraday (less than 1 day)."""
        return self.to_seconds(self) < 86400
