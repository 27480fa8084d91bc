"""
Two-level candle cache.

Candles are kept in an in-memory LRU in front of CSV files on disk. A file
holds exactly the candles of one (symbol, interval, window) request and is
named ``{BASEQUOTE}_{interval}_{start}_{end}.csv``. Files are last-writer-wins
with no locking.
"""

import asyncio
from pathlib import Path
from threading import RLock

import pandas as pd
from cachetools import LRUCache
from loguru import logger

from src.core.constants import DEFAULT_MEMORY_CACHE_SIZE
from src.core.enums import Timeframe
from src.core.exceptions.backtest import DataError, ValidationError
from src.core.interfaces.data import ICandleCache
from src.core.models.candle import OHLCV_COLUMNS, Candle, candles_to_frame, frame_to_candles

from .cache_statistics import CacheStatistics
from .candle_validator import CandleValidator

CSV_DTYPES = {
    "timestamp": "int64",
    "open": "float64",
    "high": "float64",
    "low": "float64",
    "close": "float64",
    "volume": "float64",
    "symbol": "string",
}


class CandleCache(ICandleCache):
    """CSV-file candle cache with an in-memory LRU layer."""

    def __init__(self, cache_dir: Path | str, memory_size: int = DEFAULT_MEMORY_CACHE_SIZE):
        if memory_size <= 0:
            raise ValueError("Cache size must be positive")

        self.cache_dir = Path(cache_dir)
        self.memory: LRUCache[str, tuple[Candle, ...]] = LRUCache(maxsize=memory_size)
        self._cache_lock = RLock()  # Guards the memory layer
        self.statistics = CacheStatistics()

    @staticmethod
    def build_key(symbol: str, interval: Timeframe, start_time: int, end_time: int) -> str:
        """Cache key of one load request, e.g. ``BTCUSDT_1h_1700000000000_1700086400000``."""
        return f"{symbol.replace('/', '')}_{interval.value}_{start_time}_{end_time}"

    def path_for(self, key: str) -> Path:
        """Location of the cache file for ``key``."""
        CandleValidator.sanitize_path_component(key, "cache key")
        path = self.cache_dir / f"{key}.csv"
        CandleValidator.validate_path_safety(path, self.cache_dir)
        return path

    async def get(self, key: str) -> list[Candle] | None:
        """Return cached candles, or None on a miss.

        Unreadable or invalid files are treated as a miss.
        """
        with self._cache_lock:
            cached = self.memory.get(key)
        if cached is not None:
            self.statistics.record_memory_hit()
            logger.debug(f"Memory cache hit for {key}")
            return list(cached)

        path = self.path_for(key)
        if not path.exists():
            self.statistics.record_miss()
            return None

        loop = asyncio.get_running_loop()
        try:
            candles = await loop.run_in_executor(None, self._read_file, path)
        except (DataError, ValidationError, OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable cache file {path}: {e}")
            self.statistics.record_miss()
            return None

        with self._cache_lock:
            self.memory[key] = tuple(candles)
        self.statistics.record_disk_hit()
        logger.debug(f"Disk cache hit for {key}: {len(candles)} candles")
        return candles

    async def set(self, key: str, candles: list[Candle]) -> None:
        """Store candles in memory and on disk.

        Raises:
            DataError: If the cache file cannot be written
        """
        if not candles:
            raise ValidationError("Refusing to cache an empty candle list")

        path = self.path_for(key)
        with self._cache_lock:
            self.memory[key] = tuple(candles)

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._write_file, path, candles)
        except OSError as e:
            self.statistics.record_write(succeeded=False)
            raise DataError(f"Failed to write cache file {path}: {e}") from e

        self.statistics.record_write()
        logger.debug(f"Cached {len(candles)} candles to {path}")

    def clear_memory(self) -> None:
        """Drop the in-memory layer; files on disk are kept."""
        with self._cache_lock:
            self.memory.clear()

    @staticmethod
    def _read_file(path: Path) -> list[Candle]:
        df = pd.read_csv(path, dtype=CSV_DTYPES, float_precision="round_trip")
        CandleValidator.validate_frame(df, path)
        if "symbol" not in df.columns or df.empty:
            raise DataError(f"Cache file {path} has no candles or no symbol column")

        symbol = str(df["symbol"].iloc[0])
        return frame_to_candles(df[OHLCV_COLUMNS], symbol)

    @staticmethod
    def _write_file(path: Path, candles: list[Candle]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        df = candles_to_frame(candles)
        df["symbol"] = candles[0].symbol
        df.to_csv(path, index=False)
