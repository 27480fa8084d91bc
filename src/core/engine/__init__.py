"""
Backtest simulation engine: order matching and the replay driver.
"""

from .backtester import Backtester
from .order_simulator import OrderSimulator

__all__ = ["Backtester", "OrderSimulator"]
