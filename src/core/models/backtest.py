"""
Backtest configuration, progress and results models.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from src.core.constants import (
    DEFAULT_CACHE_DIRECTORY,
    DEFAULT_MAX_CONCURRENT_SYMBOLS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_SLIPPAGE_PERCENTAGE,
    RESULT_SCHEMA_VERSION,
)
from src.core.enums import DataSource, Timeframe
from src.core.exceptions.backtest import ConfigValidationError, ValidationError
from src.core.utils.validation import split_symbol

from .candle import Candle
from .performance import MarketDataStats, OverallPerformance, SymbolPerformance, TradingMetrics
from .snapshot import PortfolioSnapshot
from .trade import Trade


def to_epoch_ms(value: datetime) -> int:
    """Convert an aware datetime to epoch milliseconds."""
    return int(value.timestamp() * 1000)


class BacktestConfig(BaseModel):
    """Configuration for a backtest execution. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    start_time: datetime = Field(..., description="Start of the replay window (UTC)")
    end_time: datetime = Field(..., description="End of the replay window (UTC)")
    symbols: tuple[str, ...] = Field(..., min_length=1, description="BASE/QUOTE pairs")
    interval: Timeframe = Field(..., description="Candle interval")
    initial_balance: float = Field(..., gt=0, description="Starting quote balance")
    slippage_percentage: float = Field(
        default=DEFAULT_SLIPPAGE_PERCENTAGE,
        ge=0.0,
        le=1.0,
        description="Extra slippage applied against the trader on every fill",
    )
    max_concurrent_symbols: int = Field(
        default=DEFAULT_MAX_CONCURRENT_SYMBOLS, ge=1, description="Data fetch parallelism"
    )
    enable_detailed_logging: bool = True
    save_historical_data: bool = True

    @field_validator("start_time", "end_time")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Treat naive datetimes as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @field_validator("symbols")
    @classmethod
    def validate_symbols(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Validate symbol format and uniqueness."""
        for symbol in v:
            try:
                split_symbol(symbol)
            except (TypeError, ValidationError) as e:
                raise ValueError(str(e)) from e
        if len(set(v)) != len(v):
            raise ValueError(f"symbols must be unique, got {list(v)}")
        return v

    @model_validator(mode="after")
    def validate_window_and_quote(self) -> "BacktestConfig":
        """Validate that end_time is after start_time and all symbols share a quote."""
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        quotes = {split_symbol(symbol)[1] for symbol in self.symbols}
        if len(quotes) > 1:
            raise ValueError(f"All symbols must share one quote currency, got {sorted(quotes)}")
        return self

    @property
    def start_ms(self) -> int:
        return to_epoch_ms(self.start_time)

    @property
    def end_ms(self) -> int:
        return to_epoch_ms(self.end_time)

    @property
    def duration_ms(self) -> int:
        """Length of the replay window in milliseconds."""
        return self.end_ms - self.start_ms

    def duration_days(self) -> int:
        """Calculate duration of backtest in days."""
        return (self.end_time - self.start_time).days

    @property
    def quote_currency(self) -> str:
        """Quote currency shared by every configured symbol."""
        return split_symbol(self.symbols[0])[1]

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return self.model_dump(mode="json")


def parse_backtest_config(data: "BacktestConfig | Mapping[str, Any]") -> BacktestConfig:
    """Validate raw configuration data into a :class:`BacktestConfig`.

    Raises:
        ConfigValidationError: If any field is missing or out of range
    """
    if isinstance(data, BacktestConfig):
        return data

    try:
        return BacktestConfig.model_validate(dict(data))
    except PydanticValidationError as e:
        errors = [
            f"{'.'.join(str(loc) for loc in err['loc']) or 'config'}: {err['msg']}"
            for err in e.errors()
        ]
        raise ConfigValidationError(
            f"Invalid backtest configuration: {'; '.join(errors)}", errors=errors
        ) from e


@dataclass(frozen=True)
class DataSourceConfig:
    """Where and how historical candles are obtained."""

    cache_path: Path | None = Path(DEFAULT_CACHE_DIRECTORY)
    enable_cache: bool = True
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValidationError(f"max_retries must be at least 1, got {self.max_retries}")
        if self.retry_delay_ms < 0:
            raise ValidationError(f"retry_delay_ms must be non-negative, got {self.retry_delay_ms}")


@dataclass(frozen=True)
class HistoricalDataResult:
    """Candles loaded for one symbol together with where they came from."""

    symbol: str
    interval: Timeframe
    candles: list[Candle]
    start_time: int
    end_time: int
    source: DataSource
    load_time_ms: float

    @property
    def is_empty(self) -> bool:
        return not self.candles


@dataclass(frozen=True)
class BacktestProgress:
    """Progress of a running backtest, reported once per simulated tick."""

    run_id: str
    current_timestamp: int
    progress_percentage: float
    trades_executed: int
    data_points_processed: int
    current_balance: float
    current_drawdown: float


@dataclass(frozen=True)
class BacktestResult:
    """Results of one completed backtest run. Immutable once created."""

    id: str
    config: BacktestConfig
    start_time: int
    end_time: int
    duration: int

    initial_balance: float
    final_balance: float
    overall: OverallPerformance
    trading: TradingMetrics

    symbol_performance: dict[str, SymbolPerformance]
    portfolio_history: list[PortfolioSnapshot]
    trades: list[Trade]
    market_data_stats: dict[str, MarketDataStats]

    execution_time_ms: float
    data_points_processed: int
    errors_encountered: list[str]

    created_at: int
    version: str = RESULT_SCHEMA_VERSION
    report_location: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def total_trades(self) -> int:
        return self.trading.total_trades

    @property
    def total_return_percentage(self) -> float:
        return self.overall.total_return_percentage

    def is_profitable(self) -> bool:
        """Check if the backtest was profitable."""
        return self.final_balance > self.initial_balance

    def performance_summary(self) -> dict[str, Any]:
        """Get a summary of key performance metrics."""
        return {
            "initial_balance": self.initial_balance,
            "final_balance": self.final_balance,
            "total_return_percentage": self.overall.total_return_percentage,
            "max_drawdown_percentage": self.overall.max_drawdown_percentage,
            "sharpe_ratio": self.overall.sharpe_ratio,
            "total_trades": self.trading.total_trades,
            "duration_days": self.config.duration_days(),
        }

    def trades_frame(self) -> pd.DataFrame:
        """Trade log as a DataFrame, one row per trade."""
        return pd.DataFrame([trade.to_dict() for trade in self.trades])

    def history_frame(self) -> pd.DataFrame:
        """Snapshot history as a DataFrame indexed by UTC timestamp."""
        if not self.portfolio_history:
            return pd.DataFrame()
        df = pd.DataFrame([snapshot.to_dict() for snapshot in self.portfolio_history])
        df.index = pd.to_datetime(df["timestamp"], unit="ms", utc=True)
        return df

    def to_dict(self) -> dict[str, Any]:
        """Convert results to dictionary. Every field is present."""
        return {
            "id": self.id,
            "version": self.version,
            "created_at": self.created_at,
            "config": self.config.to_dict(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
            "initial_balance": self.initial_balance,
            "final_balance": self.final_balance,
            **self.overall.to_dict(),
            **self.trading.to_dict(),
            "symbol_performance": {
                symbol: perf.to_dict() for symbol, perf in self.symbol_performance.items()
            },
            "portfolio_history": [snapshot.to_dict() for snapshot in self.portfolio_history],
            "trades": [trade.to_dict() for trade in self.trades],
            "market_data_stats": {
                symbol: stats.to_dict() for symbol, stats in self.market_data_stats.items()
            },
            "execution_time_ms": self.execution_time_ms,
            "data_points_processed": self.data_points_processed,
            "errors_encountered": list(self.errors_encountered),
            "report_location": self.report_location,
            "metadata": dict(self.metadata),
        }
