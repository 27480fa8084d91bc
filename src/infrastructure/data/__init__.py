"""
Data loading infrastructure.

This module provides historical candle loading, caching and the exchange
adapter used to fetch market data.
"""

from .binance_source import BinanceKlineSource
from .candle_cache import CandleCache
from .historical_loader import HistoricalDataProvider

__all__ = ["BinanceKlineSource", "CandleCache", "HistoricalDataProvider"]
