"""
Strategy collaborator interface.

The engine never generates signals itself; it drives an implementation of
this interface once per candle.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from src.core.models.candle import Candle
from src.core.models.signal import TradeSignals


class ITradeSignalProvider(ABC):
    """Abstract interface for the strategy that produces grid trade signals."""

    @abstractmethod
    def initialize_strategy(self, symbol: str, candles: Sequence[Candle]) -> None:
        """Warm up the strategy for ``symbol`` with its initial history window."""
        pass

    @abstractmethod
    def update_state(self, symbol: str, candle: Candle, recent_history: Sequence[Candle]) -> None:
        """Feed the next candle. Must be idempotent for a repeated candle."""
        pass

    @abstractmethod
    def get_trade_signals(self, symbol: str) -> TradeSignals:
        """Return the buy and sell signals for the latest state of ``symbol``."""
        pass

    @abstractmethod
    def get_minimum_data_requirement(self) -> int:
        """Number of candles needed before the strategy can produce signals."""
        pass
