"""
Candle domain model and DataFrame conversion helpers.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import pandas as pd

from src.core.exceptions.backtest import ValidationError

OHLCV_COLUMNS = ["timestamp", "open", "high", "low", "close", "volume"]


@dataclass(frozen=True, slots=True)
class Candle:
    """One OHLCV bar for a symbol.

    ``timestamp`` is the bar's open time in epoch milliseconds (UTC).
    """

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    symbol: str

    def __post_init__(self) -> None:
        """Validate candle data after initialization."""
        if self.high < self.low:
            raise ValidationError(
                f"Candle high must be >= low, got high={self.high}, low={self.low}"
            )
        if self.volume < 0:
            raise ValidationError(f"Volume must be non-negative, got {self.volume}")

    @property
    def price_range(self) -> float:
        """Distance between the candle's high and low."""
        return self.high - self.low

    def contains_price(self, price: float) -> bool:
        """Check whether ``price`` was traded within this candle."""
        return self.low <= price <= self.high

    def to_dict(self) -> dict:
        """Convert candle to dictionary."""
        return {
            "timestamp": self.timestamp,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
            "symbol": self.symbol,
        }


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    """Convert candles to an OHLCV DataFrame (symbol column dropped)."""
    if not candles:
        return pd.DataFrame(columns=OHLCV_COLUMNS)

    return pd.DataFrame(
        {
            "timestamp": [c.timestamp for c in candles],
            "open": [c.open for c in candles],
            "high": [c.high for c in candles],
            "low": [c.low for c in candles],
            "close": [c.close for c in candles],
            "volume": [c.volume for c in candles],
        }
    )


def frame_to_candles(df: pd.DataFrame, symbol: str) -> list[Candle]:
    """Convert an OHLCV DataFrame into candles sorted oldest first."""
    if df.empty:
        return []

    ordered = df.sort_values("timestamp")
    return [
        Candle(
            timestamp=int(row.timestamp),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=float(row.volume),
            symbol=symbol,
        )
        for row in ordered.itertuples(index=False)
    ]


def sort_and_dedupe(candles: Iterable[Candle]) -> list[Candle]:
    """Order candles oldest first, keeping the first candle seen per timestamp."""
    seen: dict[int, Candle] = {}
    for candle in candles:
        seen.setdefault(candle.timestamp, candle)
    return [seen[ts] for ts in sorted(seen)]
