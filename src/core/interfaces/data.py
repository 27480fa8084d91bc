"""
Data access interfaces.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Sequence

from src.core.constants import DEFAULT_FETCH_LIMIT, DEFAULT_MAX_CONCURRENT_SYMBOLS
from src.core.enums import Timeframe
from src.core.models.backtest import HistoricalDataResult
from src.core.models.candle import Candle


class IExchangeDataSource(ABC):
    """Abstract interface for an exchange that serves historical candles."""

    @abstractmethod
    async def get_historical_candles(
        self,
        symbol: str,
        interval: Timeframe,
        start_time: int | None = None,
        end_time: int | None = None,
        limit: int = DEFAULT_FETCH_LIMIT,
    ) -> list[Candle]:
        """Fetch at most ``limit`` candles, oldest first.

        Raises:
            TransientDataError: On failures that may succeed when retried
        """
        pass


class IHistoricalDataLoader(ABC):
    """Abstract interface for loading a symbol's candles for a replay window."""

    @abstractmethod
    async def load(
        self,
        symbol: str,
        interval: Timeframe,
        start_time: int,
        end_time: int,
        persist: bool = True,
    ) -> HistoricalDataResult:
        """Load OHLCV candles for the specified parameters.

        ``persist`` allows freshly fetched candles to be written back to a cache.
        """
        pass

    async def load_many(
        self,
        symbols: Sequence[str],
        interval: Timeframe,
        start_time: int,
        end_time: int,
        max_concurrency: int = DEFAULT_MAX_CONCURRENT_SYMBOLS,
        persist: bool = True,
    ) -> dict[str, HistoricalDataResult]:
        """Load several symbols concurrently, at most ``max_concurrency`` at a time.

        Results are keyed in the order the symbols were given. The first
        failure propagates and cancels the loads still in flight.
        """
        semaphore = asyncio.Semaphore(max_concurrency)

        async def load_one(symbol: str) -> HistoricalDataResult:
            async with semaphore:
                return await self.load(symbol, interval, start_time, end_time, persist)

        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(load_one(symbol)) for symbol in symbols]
        except ExceptionGroup as errors:
            raise errors.exceptions[0] from None

        return {symbol: task.result() for symbol, task in zip(symbols, tasks, strict=True)}


class ICandleCache(ABC):
    """Abstract interface for a persistent candle cache."""

    @abstractmethod
    async def get(self, key: str) -> list[Candle] | None:
        """Return cached candles, or None on a miss."""
        pass

    @abstractmethod
    async def set(self, key: str, candles: list[Candle]) -> None:
        """Store candles under ``key``."""
        pass
