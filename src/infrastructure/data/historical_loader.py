"""
Historical candle provider.

Serves a symbol's candles for a replay window from the local cache when
possible, otherwise pages them from the exchange with bounded retries and
writes them back to the cache.
"""

import asyncio
import time
from typing import Any

from loguru import logger

from src.core.constants import DEFAULT_FETCH_LIMIT
from src.core.enums import DataSource, Timeframe
from src.core.exceptions.backtest import DataError, DataUnavailableError, ValidationError
from src.core.interfaces.data import ICandleCache, IExchangeDataSource, IHistoricalDataLoader
from src.core.models.backtest import DataSourceConfig, HistoricalDataResult
from src.core.models.candle import Candle, sort_and_dedupe
from src.core.utils.validation import validate_symbol, validate_time_range

from .candle_cache import CandleCache


class HistoricalDataProvider(IHistoricalDataLoader):
    """Loads candles through a cache in front of an exchange data source."""

    def __init__(
        self,
        exchange: IExchangeDataSource,
        config: DataSourceConfig | None = None,
        cache: ICandleCache | None = None,
        custom_logger: Any = None,
    ) -> None:
        self.exchange = exchange
        self.config = config or DataSourceConfig()
        self.logger = custom_logger or logger.bind(component="HistoricalDataProvider")

        if cache is None and self.config.enable_cache and self.config.cache_path is not None:
            cache = CandleCache(self.config.cache_path)
        self.cache = cache if self.config.enable_cache else None

    async def load(
        self,
        symbol: str,
        interval: Timeframe,
        start_time: int,
        end_time: int,
        persist: bool = True,
    ) -> HistoricalDataResult:
        """Load candles for ``symbol`` between ``start_time`` and ``end_time`` (epoch ms).

        Raises:
            ValidationError: If the parameters are malformed
            DataUnavailableError: If the exchange keeps failing after all retries
        """
        try:
            validate_symbol(symbol)
        except TypeError as e:
            raise ValidationError(str(e)) from e
        if not isinstance(interval, Timeframe):
            raise ValidationError(f"Unsupported interval: {interval!r}")
        validate_time_range(start_time, end_time)

        started = time.perf_counter()
        key = CandleCache.build_key(symbol, interval, start_time, end_time)

        if self.cache is not None:
            try:
                cached = await self.cache.get(key)
            except (DataError, ValidationError) as e:
                self.logger.warning(f"Cache load failed for {symbol}: {e}")
                cached = None

            if cached:
                self.logger.info(f"Loaded {symbol} data from cache: {len(cached)} candles")
                return self._result(
                    symbol, interval, cached, start_time, end_time, DataSource.CACHE, started
                )

        candles = await self._fetch_window(symbol, interval, start_time, end_time)
        self.logger.info(f"Loaded {symbol} data from API: {len(candles)} candles")

        if self.cache is not None and persist and candles:
            try:
                await self.cache.set(key, candles)
            except (DataError, ValidationError, OSError) as e:
                self.logger.warning(f"Failed to save {symbol} data to cache: {e}")

        return self._result(
            symbol, interval, candles, start_time, end_time, DataSource.API, started
        )

    @staticmethod
    def _result(
        symbol: str,
        interval: Timeframe,
        candles: list[Candle],
        start_time: int,
        end_time: int,
        source: DataSource,
        started: float,
    ) -> HistoricalDataResult:
        return HistoricalDataResult(
            symbol=symbol,
            interval=interval,
            candles=candles,
            start_time=start_time,
            end_time=end_time,
            source=source,
            load_time_ms=(time.perf_counter() - started) * 1000,
        )

    async def _fetch_window(
        self, symbol: str, interval: Timeframe, start_time: int, end_time: int
    ) -> list[Candle]:
        """Page through the exchange until the window is covered."""
        step = Timeframe.to_milliseconds(interval)
        candles: list[Candle] = []
        cursor = start_time

        while cursor <= end_time:
            page = await self._fetch_page(symbol, interval, cursor, end_time)
            if not page:
                break

            candles.extend(c for c in page if start_time <= c.timestamp <= end_time)
            if len(page) < DEFAULT_FETCH_LIMIT:
                break

            next_cursor = page[-1].timestamp + step
            if next_cursor <= cursor:
                break
            cursor = next_cursor

        return sort_and_dedupe(candles)

    async def _fetch_page(
        self, symbol: str, interval: Timeframe, start_time: int, end_time: int
    ) -> list[Candle]:
        """Fetch one page, retrying with a linearly growing delay."""
        max_retries = self.config.max_retries
        last_error: Exception | None = None

        for attempt in range(1, max_retries + 1):
            try:
                return await self.exchange.get_historical_candles(
                    symbol,
                    interval,
                    start_time=start_time,
                    end_time=end_time,
                    limit=DEFAULT_FETCH_LIMIT,
                )
            except (DataError, OSError, TimeoutError) as e:
                last_error = e
                self.logger.warning(f"API load attempt {attempt} failed for {symbol}: {e}")
                if attempt < max_retries:
                    await asyncio.sleep(self.config.retry_delay_ms * attempt / 1000)

        self.logger.error(f"Failed to load data for {symbol} after {max_retries} attempts")
        raise DataUnavailableError(symbol, attempts=max_retries) from last_error
