"""
Supplementary risk statistics over return series and trade logs.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

import numpy as np
import pandas as pd

from src.core.exceptions.backtest import ValidationError
from src.core.models.trade import Trade
from src.core.types.financial import ZERO

from .performance import profit_factor


@dataclass(frozen=True)
class TradeExcursions:
    """Favourable and adverse excursions approximated from realized profits."""

    average_mfe: float = 0.0
    average_mae: float = 0.0
    max_mfe: float = 0.0
    max_mae: float = 0.0


@dataclass(frozen=True)
class PeriodProfitFactor:
    """Profit factor of the trades closed within one time bucket."""

    period: str  # ISO-8601 start of the bucket (UTC)
    profit_factor: float
    trades: int


class PerformanceUtils:
    """Risk helpers that complement :class:`PerformanceCalculator`."""

    @staticmethod
    def calculate_var(returns: Sequence[float], confidence_level: float = 0.95) -> float:
        """Historical Value at Risk: the return at the (1 - confidence) quantile."""
        if not returns:
            return ZERO
        if not 0 < confidence_level < 1:
            raise ValidationError(f"confidence_level must be in (0, 1), got {confidence_level}")

        ordered = np.sort(np.asarray(returns, dtype=float))
        index = min(int(math.floor((1 - confidence_level) * ordered.size)), ordered.size - 1)
        return float(ordered[index])

    @staticmethod
    def calculate_cvar(returns: Sequence[float], confidence_level: float = 0.95) -> float:
        """Conditional VaR: mean of the returns at or below the VaR."""
        if not returns:
            return ZERO

        value_at_risk = PerformanceUtils.calculate_var(returns, confidence_level)
        values = np.asarray(returns, dtype=float)
        tail = values[values <= value_at_risk]
        return float(tail.mean()) if tail.size else ZERO

    @staticmethod
    def calculate_excursions(trades: Sequence[Trade]) -> TradeExcursions:
        """Approximate MFE/MAE from per-trade profits (no intrabar path is kept)."""
        profits = np.asarray([t.profit for t in trades if t.profit is not None], dtype=float)
        gains = profits[profits > 0]
        losses = np.abs(profits[profits < 0])

        return TradeExcursions(
            average_mfe=float(gains.mean()) if gains.size else ZERO,
            average_mae=float(losses.mean()) if losses.size else ZERO,
            max_mfe=float(gains.max()) if gains.size else ZERO,
            max_mae=float(losses.max()) if losses.size else ZERO,
        )

    @staticmethod
    def calculate_recovery_factor(net_profit: float, max_drawdown: float) -> float:
        """Net profit over max drawdown."""
        if max_drawdown > 0:
            return net_profit / max_drawdown
        return math.inf if net_profit > 0 else ZERO

    @staticmethod
    def calculate_profit_factor_by_period(
        trades: Sequence[Trade], period_ms: int
    ) -> list[PeriodProfitFactor]:
        """Profit factor per fixed-length time bucket, oldest bucket first."""
        if period_ms <= 0:
            raise ValidationError(f"period_ms must be positive, got {period_ms}")
        if not trades:
            return []

        df = pd.DataFrame(
            {
                "period": [trade.timestamp // period_ms * period_ms for trade in trades],
                "profit": [trade.profit for trade in trades],
            }
        )

        results = []
        for period_start, group in df.groupby("period", sort=True):
            profits = group["profit"].dropna()
            gross_profit = float(profits[profits > 0].sum())
            gross_loss = float(abs(profits[profits < 0].sum()))
            results.append(
                PeriodProfitFactor(
                    period=datetime.fromtimestamp(int(period_start) / 1000, tz=UTC).isoformat(),
                    profit_factor=profit_factor(gross_profit, gross_loss),
                    trades=len(group),
                )
            )
        return results
