"""
Shared fixtures: candle, signal and config factories.
"""

from collections.abc import Callable, Iterable
from datetime import UTC, datetime

import pytest

from src.core.enums import OrderSide, OrderType, Timeframe
from src.core.models.backtest import BacktestConfig
from src.core.models.candle import Candle
from src.core.models.signal import Signal
from tests.fakes import BASE_TS, HOUR_MS


@pytest.fixture
def make_candle() -> Callable[..., Candle]:
    """Factory for candles with a one-unit range around the close."""

    def _make(
        close: float,
        timestamp: int = BASE_TS,
        symbol: str = "BTC/USDT",
        high: float | None = None,
        low: float | None = None,
        volume: float = 10.0,
    ) -> Candle:
        return Candle(
            timestamp=timestamp,
            open=close,
            high=close + 1 if high is None else high,
            low=close - 1 if low is None else low,
            close=close,
            volume=volume,
            symbol=symbol,
        )

    return _make


@pytest.fixture
def hourly_series(make_candle) -> Callable[..., list[Candle]]:
    """Factory for one hourly candle per close, starting at ``BASE_TS``."""

    def _make(closes: Iterable[float], symbol: str = "BTC/USDT") -> list[Candle]:
        return [
            make_candle(close, timestamp=BASE_TS + i * HOUR_MS, symbol=symbol)
            for i, close in enumerate(closes)
        ]

    return _make


@pytest.fixture
def limit_signal() -> Callable[..., Signal]:
    """Factory for limit signals."""

    def _make(side: OrderSide, price: float, quantity: float, timestamp: int = BASE_TS) -> Signal:
        return Signal(
            side=side,
            price=price,
            quantity=quantity,
            grid_level=price,
            timestamp=timestamp,
            order_type=OrderType.LIMIT,
        )

    return _make


@pytest.fixture
def backtest_config() -> Callable[..., BacktestConfig]:
    """Factory for a one-day hourly config with overridable fields."""

    def _make(**overrides) -> BacktestConfig:
        values = {
            "start_time": datetime(2024, 1, 1, tzinfo=UTC),
            "end_time": datetime(2024, 1, 2, tzinfo=UTC),
            "symbols": ("BTC/USDT",),
            "interval": Timeframe.H1,
            "initial_balance": 10_000.0,
            "slippage_percentage": 0.0,
        }
        values.update(overrides)
        return BacktestConfig(**values)

    return _make
