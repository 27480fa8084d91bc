"""
Descriptive statistics of a symbol's candle series.
"""

from collections.abc import Sequence

import pandas as pd

from src.core.models.candle import Candle, candles_to_frame
from src.core.models.performance import MarketDataStats
from src.core.types.financial import HUNDRED, ZERO, safe_divide


def calculate_market_data_stats(symbol: str, candles: Sequence[Candle]) -> MarketDataStats:
    """Summarise price movement and activity over the loaded candles."""
    if not candles:
        return MarketDataStats(symbol=symbol)

    df = candles_to_frame(candles)
    close = df["close"]

    start_price = float(close.iloc[0])
    end_price = float(close.iloc[-1])
    price_change = end_price - start_price

    # Close-to-close returns; bars after a non-positive close are skipped
    previous = close.shift(1)
    returns = ((close - previous) / previous)[previous > 0]
    volatility = float(returns.std(ddof=1)) if len(returns) > 1 else ZERO
    if pd.isna(volatility):
        volatility = ZERO

    return MarketDataStats(
        symbol=symbol,
        start_price=start_price,
        end_price=end_price,
        price_change=price_change,
        price_change_percentage=safe_divide(price_change, start_price) * HUNDRED,
        high=float(df["high"].max()),
        low=float(df["low"].min()),
        average_price=float(close.mean()),
        volatility=volatility * HUNDRED,
        volume=float(df["volume"].sum()),
        candle_count=len(df),
    )
