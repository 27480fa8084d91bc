"""
Performance and risk analytics for completed backtests.
"""

from .market_stats import calculate_market_data_stats
from .performance import PerformanceCalculator, consecutive_streaks, profit_factor
from .risk import PerformanceUtils, PeriodProfitFactor, TradeExcursions

__all__ = [
    "PerformanceCalculator",
    "PerformanceUtils",
    "PeriodProfitFactor",
    "TradeExcursions",
    "calculate_market_data_stats",
    "consecutive_streaks",
    "profit_factor",
]
