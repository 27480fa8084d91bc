"""
Performance metric records produced by the analytics layer.

All records are derived solely from the trade log and snapshot history;
none has a lifecycle of its own. Percentages are expressed in percent
(12.5 == 12.5%), except where a field name says ``ratio``.
"""

from dataclasses import asdict, dataclass
from typing import Any

from src.core.constants import (
    DEFAULT_MINIMUM_TRADES,
    DEFAULT_RISK_FREE_RATE,
    DEFAULT_TRADING_DAYS_PER_YEAR,
)
from src.core.exceptions.backtest import ValidationError


@dataclass(frozen=True)
class PerformanceOptions:
    """Options for performance calculation."""

    risk_free_rate: float = DEFAULT_RISK_FREE_RATE  # Annual, as a fraction
    trading_days_per_year: int = DEFAULT_TRADING_DAYS_PER_YEAR
    minimum_trades: int = DEFAULT_MINIMUM_TRADES

    def __post_init__(self) -> None:
        if self.trading_days_per_year <= 0:
            raise ValidationError(
                f"trading_days_per_year must be positive, got {self.trading_days_per_year}"
            )
        if self.minimum_trades < 0:
            raise ValidationError(f"minimum_trades must be non-negative, got {self.minimum_trades}")

    @property
    def period_risk_free_rate(self) -> float:
        """Risk-free rate per period (one trading day)."""
        return self.risk_free_rate / self.trading_days_per_year


@dataclass(frozen=True)
class SymbolPerformance:
    """Aggregated trading statistics for one symbol."""

    symbol: str
    total_trades: int = 0
    buy_trades: int = 0
    sell_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0
    gross_profit: float = 0.0
    gross_loss: float = 0.0
    net_profit: float = 0.0
    net_profit_percentage: float = 0.0
    total_commission: float = 0.0
    average_win: float = 0.0
    average_loss: float = 0.0
    largest_win: float = 0.0
    largest_loss: float = 0.0
    profit_factor: float = 0.0
    sharpe_ratio: float = 0.0
    max_consecutive_wins: int = 0
    max_consecutive_losses: int = 0
    average_trade_size: float = 0.0
    total_volume: float = 0.0
    holding_period_return: float = 0.0

    @classmethod
    def empty(cls, symbol: str) -> "SymbolPerformance":
        """All-zero record for a symbol that never traded."""
        return cls(symbol=symbol)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass(frozen=True)
class OverallPerformance:
    """Time-window return and risk metrics of a whole run."""

    total_return: float = 0.0
    total_return_percentage: float = 0.0
    annualized_return: float = 0.0
    max_drawdown: float = 0.0
    max_drawdown_percentage: float = 0.0
    max_drawdown_duration: int = 0  # Milliseconds
    volatility: float = 0.0
    sharpe_ratio: float = 0.0
    sortino_ratio: float = 0.0
    calmar_ratio: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass(frozen=True)
class TradingMetrics:
    """Trade-count and cost metrics across all symbols."""

    total_trades: int = 0
    total_buy_trades: int = 0
    total_sell_trades: int = 0
    total_winning_trades: int = 0
    total_losing_trades: int = 0
    overall_win_rate: float = 0.0
    total_commission: float = 0.0
    total_slippage: float = 0.0
    average_trade_size: float = 0.0
    total_volume: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass(frozen=True)
class MarketDataStats:
    """Descriptive statistics of one symbol's candle series."""

    symbol: str
    start_price: float = 0.0
    end_price: float = 0.0
    price_change: float = 0.0
    price_change_percentage: float = 0.0
    high: float = 0.0
    low: float = 0.0
    average_price: float = 0.0
    volatility: float = 0.0  # Sample std of close-to-close returns, in percent
    volume: float = 0.0
    candle_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)
