"""
Performance calculation for backtest results.

Pure functions over the trade log, the snapshot history and the initial
balance. Returns are simple period returns; volatility is the sample standard
deviation (ddof=1). Ratios fall back to 0 when there are too few observations
to be meaningful.
"""

import math
from collections.abc import Sequence

import numpy as np

from src.core.constants import MS_PER_DAY
from src.core.enums import OrderSide
from src.core.models.performance import (
    OverallPerformance,
    PerformanceOptions,
    SymbolPerformance,
    TradingMetrics,
)
from src.core.models.snapshot import PortfolioSnapshot
from src.core.models.trade import Trade
from src.core.types.financial import HUNDRED, ZERO, safe_divide


def profit_factor(gross_profit: float, gross_loss: float) -> float:
    """Gross profit over gross loss; ``inf`` with profit but no loss, 0 with neither."""
    if gross_loss > 0:
        return gross_profit / gross_loss
    return math.inf if gross_profit > 0 else ZERO


def consecutive_streaks(profits: Sequence[float]) -> tuple[int, int]:
    """Longest winning and losing streaks. Break-even trades reset neither."""
    max_wins = max_losses = 0
    current_wins = current_losses = 0

    for profit in profits:
        if profit > 0:
            current_wins += 1
            current_losses = 0
            max_wins = max(max_wins, current_wins)
        elif profit < 0:
            current_losses += 1
            current_wins = 0
            max_losses = max(max_losses, current_losses)

    return max_wins, max_losses


class PerformanceCalculator:
    """Calculates run-level, trade-level and per-symbol metrics."""

    def __init__(self, options: PerformanceOptions | None = None) -> None:
        self.options = options or PerformanceOptions()

    # Return series

    @staticmethod
    def calculate_portfolio_returns(portfolio_history: Sequence[PortfolioSnapshot]) -> list[float]:
        """Snapshot-to-snapshot returns of total portfolio value."""
        returns: list[float] = []
        for previous, current in zip(portfolio_history, portfolio_history[1:], strict=False):
            if previous.total_value > 0:
                returns.append((current.total_value - previous.total_value) / previous.total_value)
        return returns

    @staticmethod
    def calculate_trade_returns(trades: Sequence[Trade]) -> list[float]:
        """Profit over traded value for every trade that realized profit."""
        return [
            trade.profit / trade.value
            for trade in trades
            if trade.profit is not None and trade.value > 0
        ]

    # Risk statistics

    @staticmethod
    def calculate_volatility(returns: Sequence[float]) -> float:
        """Sample standard deviation of returns (0 with fewer than two)."""
        if len(returns) < 2:
            return ZERO
        return float(np.std(np.asarray(returns, dtype=float), ddof=1))

    def calculate_sharpe_ratio(self, returns: Sequence[float]) -> float:
        """Mean excess return per period over return volatility."""
        if not returns or len(returns) < self.options.minimum_trades:
            return ZERO

        volatility = self.calculate_volatility(returns)
        if volatility == 0:
            return ZERO

        mean_return = float(np.mean(returns))
        return (mean_return - self.options.period_risk_free_rate) / volatility

    def calculate_sortino_ratio(self, returns: Sequence[float]) -> float:
        """Like Sharpe, but volatility is taken over negative returns only."""
        if not returns or len(returns) < self.options.minimum_trades:
            return ZERO

        values = np.asarray(returns, dtype=float)
        mean_return = float(values.mean())
        negative_returns = values[values < 0]

        if negative_returns.size == 0:
            return math.inf if mean_return >= 0 else ZERO

        downside_volatility = self.calculate_volatility(negative_returns.tolist())
        if downside_volatility == 0:
            return ZERO

        return (mean_return - self.options.period_risk_free_rate) / downside_volatility

    @staticmethod
    def calculate_drawdown_metrics(
        portfolio_history: Sequence[PortfolioSnapshot],
    ) -> tuple[float, float, int]:
        """Max drawdown (value, percent) and the longest time spent below a peak (ms).

        The duration of an underwater stretch runs from its first snapshot below
        the high-water mark to its last one.
        """
        peak = ZERO
        max_drawdown = ZERO
        max_drawdown_percentage = ZERO
        max_duration = 0
        underwater_since: int | None = None

        for snapshot in portfolio_history:
            if snapshot.total_value >= peak:
                peak = snapshot.total_value
                underwater_since = None
                continue

            drawdown = peak - snapshot.total_value
            if drawdown > max_drawdown:
                max_drawdown = drawdown
                max_drawdown_percentage = safe_divide(drawdown, peak) * HUNDRED

            if underwater_since is None:
                underwater_since = snapshot.timestamp
            max_duration = max(max_duration, snapshot.timestamp - underwater_since)

        return max_drawdown, max_drawdown_percentage, max_duration

    def calculate_annualized_return(
        self, initial_balance: float, final_balance: float, elapsed_ms: int
    ) -> float:
        """Compound annual growth rate in percent over a 365-day year by default."""
        years = elapsed_ms / (MS_PER_DAY * self.options.trading_days_per_year)
        if years <= 0 or initial_balance <= 0:
            return ZERO
        if final_balance <= 0:
            return -HUNDRED

        try:
            growth = math.pow(final_balance / initial_balance, 1 / years)
        except OverflowError:
            return math.inf
        return (growth - 1) * HUNDRED

    # Aggregates

    def calculate_overall_performance(
        self,
        portfolio_history: Sequence[PortfolioSnapshot],
        trades: Sequence[Trade],
        initial_balance: float,
    ) -> OverallPerformance:
        """Return and risk metrics for the whole run."""
        if not portfolio_history:
            return OverallPerformance()

        final_balance = portfolio_history[-1].total_value
        total_return = final_balance - initial_balance
        total_return_percentage = safe_divide(total_return, initial_balance) * HUNDRED

        elapsed_ms = portfolio_history[-1].timestamp - portfolio_history[0].timestamp
        annualized_return = self.calculate_annualized_return(
            initial_balance, final_balance, elapsed_ms
        )

        max_drawdown, max_drawdown_percentage, max_drawdown_duration = (
            self.calculate_drawdown_metrics(portfolio_history)
        )

        returns = self.calculate_portfolio_returns(portfolio_history)
        calmar_ratio = (
            annualized_return / max_drawdown_percentage if max_drawdown_percentage > 0 else ZERO
        )

        return OverallPerformance(
            total_return=total_return,
            total_return_percentage=total_return_percentage,
            annualized_return=annualized_return,
            max_drawdown=max_drawdown,
            max_drawdown_percentage=max_drawdown_percentage,
            max_drawdown_duration=max_drawdown_duration,
            volatility=self.calculate_volatility(returns) * HUNDRED,
            sharpe_ratio=self.calculate_sharpe_ratio(returns),
            sortino_ratio=self.calculate_sortino_ratio(returns),
            calmar_ratio=calmar_ratio,
        )

    @staticmethod
    def calculate_trading_metrics(trades: Sequence[Trade]) -> TradingMetrics:
        """Trade counts, win rate and cost totals across all symbols."""
        buy_trades = [trade for trade in trades if trade.side == OrderSide.BUY]
        sell_trades = [trade for trade in trades if trade.side == OrderSide.SELL]

        winning = [t for t in sell_trades if t.profit is not None and t.profit > 0]
        losing = [t for t in sell_trades if t.profit is not None and t.profit < 0]

        total_volume = sum((trade.value for trade in trades), ZERO)
        completed_pairs = min(len(buy_trades), len(sell_trades))

        return TradingMetrics(
            total_trades=len(trades),
            total_buy_trades=len(buy_trades),
            total_sell_trades=len(sell_trades),
            total_winning_trades=len(winning),
            total_losing_trades=len(losing),
            overall_win_rate=safe_divide(len(winning), completed_pairs) * HUNDRED,
            total_commission=sum((trade.commission for trade in trades), ZERO),
            total_slippage=sum((trade.slippage for trade in trades), ZERO),
            average_trade_size=safe_divide(total_volume, len(trades)),
            total_volume=total_volume,
        )

    def calculate_symbol_performance(
        self,
        symbol: str,
        trades: Sequence[Trade],
        portfolio_history: Sequence[PortfolioSnapshot],
    ) -> SymbolPerformance:
        """Trading statistics for one symbol; all zeros when it never traded.

        ``portfolio_history`` is accepted for symmetry with the overall
        calculation; per-symbol statistics derive from the trade log.
        """
        symbol_trades = [trade for trade in trades if trade.symbol == symbol]
        if not symbol_trades:
            return SymbolPerformance.empty(symbol)

        buy_trades = [trade for trade in symbol_trades if trade.side == OrderSide.BUY]
        sell_trades = [trade for trade in symbol_trades if trade.side == OrderSide.SELL]

        profits = [trade.profit for trade in sell_trades if trade.profit is not None]
        wins = [profit for profit in profits if profit > 0]
        losses = [profit for profit in profits if profit < 0]

        gross_profit = sum(wins, ZERO)
        gross_loss = abs(sum(losses, ZERO))
        net_profit = gross_profit - gross_loss
        total_volume = sum((trade.value for trade in symbol_trades), ZERO)
        max_wins, max_losses = consecutive_streaks(profits)

        initial_value = buy_trades[0].value if buy_trades else ZERO
        net_profit_percentage = safe_divide(net_profit, initial_value) * HUNDRED

        return SymbolPerformance(
            symbol=symbol,
            total_trades=len(symbol_trades),
            buy_trades=len(buy_trades),
            sell_trades=len(sell_trades),
            winning_trades=len(wins),
            losing_trades=len(losses),
            win_rate=safe_divide(len(wins), len(profits)) * HUNDRED,
            gross_profit=gross_profit,
            gross_loss=gross_loss,
            net_profit=net_profit,
            net_profit_percentage=net_profit_percentage,
            total_commission=sum((trade.commission for trade in symbol_trades), ZERO),
            average_win=safe_divide(gross_profit, len(wins)),
            average_loss=safe_divide(gross_loss, len(losses)),
            largest_win=max(wins) if wins else ZERO,
            largest_loss=abs(min(losses)) if losses else ZERO,
            profit_factor=profit_factor(gross_profit, gross_loss),
            sharpe_ratio=self.calculate_sharpe_ratio(self.calculate_trade_returns(symbol_trades)),
            max_consecutive_wins=max_wins,
            max_consecutive_losses=max_losses,
            average_trade_size=safe_divide(total_volume, len(symbol_trades)),
            total_volume=total_volume,
            holding_period_return=net_profit_percentage,
        )
