"""
Core enumerations for the backtesting engine.

This module provides centralized enumerations for domain concepts
like candle intervals, order sides and types, and run states.
"""

from .order_types import OrderSide, OrderType
from .run_states import CostBasisMethod, DataSource, RunState
from .timeframes import Timeframe

__all__ = [
    "Timeframe",
    "OrderSide",
    "OrderType",
    "RunState",
    "DataSource",
    "CostBasisMethod",
]
