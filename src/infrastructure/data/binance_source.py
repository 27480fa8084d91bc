"""
Binance public REST klines adapter.

URL: https://api.binance.com/api/v3/klines?symbol=BTCUSDT&interval=1h&startTime=...&endTime=...&limit=1000
"""

import asyncio
from functools import partial
from typing import Any

import requests
from loguru import logger

from src.core.constants import DEFAULT_FETCH_LIMIT
from src.core.enums import Timeframe
from src.core.exceptions.backtest import DataError, TransientDataError
from src.core.interfaces.data import IExchangeDataSource
from src.core.models.candle import Candle

# Rate limited, IP banned, or server side
_RETRYABLE_STATUS = {418, 429, 500, 502, 503, 504}


class BinanceKlineSource(IExchangeDataSource):
    """Fetches historical candles from Binance spot klines."""

    BASE_URL = "https://api.binance.com"
    KLINES_PATH = "/api/v3/klines"
    MAX_LIMIT = 1000

    def __init__(
        self,
        base_url: str = BASE_URL,
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    async def get_historical_candles(
        self,
        symbol: str,
        interval: Timeframe,
        start_time: int | None = None,
        end_time: int | None = None,
        limit: int = DEFAULT_FETCH_LIMIT,
    ) -> list[Candle]:
        """Fetch up to ``limit`` klines, oldest first.

        Raises:
            TransientDataError: On network errors, rate limits and server errors
            DataError: On any other rejected request or malformed response
        """
        params: dict[str, Any] = {
            "symbol": symbol.replace("/", ""),
            "interval": interval.value,
            "limit": max(1, min(limit, self.MAX_LIMIT)),
        }
        if start_time is not None:
            params["startTime"] = start_time
        if end_time is not None:
            params["endTime"] = end_time

        loop = asyncio.get_running_loop()
        rows = await loop.run_in_executor(None, partial(self._request, params))
        return [self._parse_kline(row, symbol) for row in rows]

    def _request(self, params: dict[str, Any]) -> list[list[Any]]:
        url = f"{self.base_url}{self.KLINES_PATH}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise TransientDataError(f"Request to {url} failed: {e}") from e

        if response.status_code in _RETRYABLE_STATUS:
            raise TransientDataError(
                f"Binance returned {response.status_code} for {params['symbol']}: {response.text}"
            )

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise DataError(f"Binance rejected klines request for {params['symbol']}: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise DataError(f"Malformed klines response for {params['symbol']}") from e

        if not isinstance(payload, list):
            raise DataError(f"Unexpected klines payload for {params['symbol']}: {payload!r}")

        logger.debug(f"Fetched {len(payload)} klines for {params['symbol']}")
        return payload

    @staticmethod
    def _parse_kline(row: list[Any], symbol: str) -> Candle:
        """[open time, open, high, low, close, volume, close time, ...] -> Candle."""
        try:
            return Candle(
                timestamp=int(row[0]),
                open=float(row[1]),
                high=float(row[2]),
                low=float(row[3]),
                close=float(row[4]),
                volume=float(row[5]),
                symbol=symbol,
            )
        except (IndexError, TypeError, ValueError) as e:
            raise DataError(f"Malformed kline for {symbol}: {row!r}") from e
