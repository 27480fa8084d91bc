"""
Backtest replay driver.

Replays historical candles for every configured symbol on a shared simulated
clock that advances one minute per tick. On each tick the strategy is fed the
next due candle of each symbol, its signals are matched by the order
simulator, and executed fills are booked on the portfolio ledger. After the
replay the analytics layer summarises the run into a ``BacktestResult``.
"""

import time
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from loguru import logger

from src.core.analytics.market_stats import calculate_market_data_stats
from src.core.analytics.performance import PerformanceCalculator
from src.core.constants import CLOCK_STEP_MS, DEFAULT_TAKER_FEE, SNAPSHOT_INTERVAL_MS
from src.core.enums import CostBasisMethod, OrderSide, RunState
from src.core.exceptions.backtest import (
    BacktestCancelledError,
    DataUnavailableError,
    PortfolioError,
    SignalGenerationError,
    ValidationError,
)
from src.core.interfaces.data import IHistoricalDataLoader
from src.core.interfaces.report import IReportWriter
from src.core.interfaces.strategy import ITradeSignalProvider
from src.core.models.backtest import (
    BacktestConfig,
    BacktestProgress,
    BacktestResult,
    parse_backtest_config,
)
from src.core.models.candle import Candle
from src.core.models.performance import PerformanceOptions
from src.core.models.portfolio import PortfolioLedger
from src.core.models.signal import Signal
from src.core.models.trade import Trade, build_trade_id
from src.core.utils.cancellation import CancellationToken
from src.core.utils.validation import validate_fraction

from .order_simulator import OrderSimulator

ProgressCallback = Callable[[BacktestProgress], None]


@dataclass
class _RunContext:
    """Mutable state of one run, discarded when the run ends."""

    run_id: str
    config: BacktestConfig
    ledger: PortfolioLedger
    candles: dict[str, list[Candle]]
    cursors: dict[str, int]
    token: CancellationToken
    trades: list[Trade] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    last_prices: dict[str, float] = field(default_factory=dict)
    data_points_processed: int = 0


class Backtester:
    """Drives a strategy over historical data and produces a result.

    One instance runs one backtest at a time. Collaborators are injected:
    the strategy that produces signals, the loader that provides candles and
    an optional report writer that stores the finished result.
    """

    def __init__(
        self,
        strategy: ITradeSignalProvider,
        data_loader: IHistoricalDataLoader,
        report_writer: IReportWriter | None = None,
        performance_options: PerformanceOptions | None = None,
        commission_rate: float = DEFAULT_TAKER_FEE,
        cost_basis_method: CostBasisMethod = CostBasisMethod.AVERAGE_COST,
        custom_logger: Any = None,
    ) -> None:
        self.strategy = strategy
        self.data_loader = data_loader
        self.report_writer = report_writer
        self.calculator = PerformanceCalculator(performance_options)
        self.commission_rate = validate_fraction(commission_rate, "commission_rate")
        self.cost_basis_method = cost_basis_method
        self.logger = custom_logger or logger.bind(component="Backtester")

        self.state: RunState | None = None
        self._token: CancellationToken | None = None

    def cancel(self, reason: str | None = None) -> None:
        """Cancel the running backtest at its next tick."""
        if self._token is not None:
            self._token.cancel(reason)

    def _transition(self, run_id: str, target: RunState) -> None:
        if self.state is not None and not self.state.can_transition_to(target):
            self.logger.warning(f"Backtest {run_id}: unexpected transition {self.state} -> {target}")
        self.state = target
        self.logger.debug(f"Backtest {run_id} is {target}")

    async def run_backtest(
        self,
        config: BacktestConfig | Mapping[str, Any],
        cancellation_token: CancellationToken | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> BacktestResult:
        """Run a complete backtest.

        Args:
            config: Backtest configuration or raw configuration data
            cancellation_token: Token polled once per tick; a new one is used if omitted
            progress_callback: Called once per tick with the run's progress

        Returns:
            The completed result

        Raises:
            ConfigValidationError: If the configuration is invalid
            DataUnavailableError: If data cannot be loaded or no symbol has candles
            BacktestCancelledError: If the token is cancelled during the replay
        """
        run_id = str(uuid.uuid4())
        self.state = None
        self._transition(run_id, RunState.INITIALIZING)
        started_at = time.time()
        self._token = cancellation_token or CancellationToken()

        try:
            config = parse_backtest_config(config)
            self.logger.info(
                f"Starting backtest {run_id}: {', '.join(config.symbols)} "
                f"{config.interval} from {config.start_time} to {config.end_time}"
            )

            context = await self._initialize(run_id, config, self._token)

            self._transition(run_id, RunState.RUNNING)
            self._replay(context, progress_callback)

            result = self._build_result(context, started_at)
        except BacktestCancelledError:
            self._transition(run_id, RunState.CANCELLED)
            self.logger.warning(f"Backtest {run_id} was cancelled")
            raise
        except Exception as e:
            self._transition(run_id, RunState.FAILED)
            self.logger.error(f"Backtest {run_id} failed: {e}")
            raise
        finally:
            self._token = None

        result = await self._save_report(result)
        self._transition(run_id, RunState.COMPLETED)
        self.logger.success(
            f"Backtest {run_id} completed in {result.execution_time_ms:.0f}ms: "
            f"{result.total_trades} trades, return {result.total_return_percentage:.2f}%"
        )
        return result

    async def _initialize(
        self, run_id: str, config: BacktestConfig, token: CancellationToken
    ) -> _RunContext:
        """Load data and warm up the strategy for every symbol."""
        loaded = await self.data_loader.load_many(
            config.symbols,
            config.interval,
            config.start_ms,
            config.end_ms,
            max_concurrency=config.max_concurrent_symbols,
            persist=config.save_historical_data,
        )

        candles = {symbol: list(loaded[symbol].candles) for symbol in config.symbols}
        if not any(candles.values()):
            raise DataUnavailableError(", ".join(config.symbols))

        warmup = max(0, self.strategy.get_minimum_data_requirement())
        cursors: dict[str, int] = {}
        for symbol in config.symbols:
            series = candles[symbol]
            if not series:
                self.logger.warning(f"No candles for {symbol}; it will not trade")
            self.strategy.initialize_strategy(symbol, series[:warmup])
            cursors[symbol] = min(warmup, len(series))

        return _RunContext(
            run_id=run_id,
            config=config,
            ledger=PortfolioLedger(
                config.initial_balance, config.quote_currency, self.cost_basis_method
            ),
            candles=candles,
            cursors=cursors,
            token=token,
        )

    def _replay(self, context: _RunContext, progress_callback: ProgressCallback | None) -> None:
        """Advance the simulated clock over the whole data range."""
        series = [candles for candles in context.candles.values() if candles]
        first_timestamp = min(candles[0].timestamp for candles in series)
        last_timestamp = max(candles[-1].timestamp for candles in series)
        span = last_timestamp - first_timestamp
        window = max(1, self.strategy.get_minimum_data_requirement())

        last_snapshot_time = first_timestamp
        clock = first_timestamp
        while clock <= last_timestamp:
            if context.token.is_cancelled:
                raise BacktestCancelledError(context.run_id, clock)

            for symbol in context.config.symbols:
                self._process_symbol(context, symbol, clock, window)

            if clock - last_snapshot_time >= SNAPSHOT_INTERVAL_MS and context.last_prices:
                context.ledger.snapshot(clock, context.last_prices)
                last_snapshot_time = clock

            if progress_callback is not None:
                progress_callback(self._progress(context, clock, first_timestamp, span))

            clock += CLOCK_STEP_MS

        final_prices = {
            symbol: candles[-1].close for symbol, candles in context.candles.items() if candles
        }
        context.ledger.snapshot(last_timestamp, final_prices)

    def _process_symbol(self, context: _RunContext, symbol: str, clock: int, window: int) -> None:
        """Feed the symbol's next due candle to the strategy and execute its signals."""
        series = context.candles[symbol]
        index = context.cursors[symbol]
        if index >= len(series) or series[index].timestamp > clock:
            return

        candle = series[index]
        context.last_prices[symbol] = candle.close

        try:
            recent_history = series[max(0, index + 1 - window) : index + 1]
            self.strategy.update_state(symbol, candle, recent_history)
            signals = self.strategy.get_trade_signals(symbol)
        except Exception as e:
            error = SignalGenerationError(symbol, e)
            self.logger.error(str(error))
            context.errors.append(str(error))
            return

        for signal in (*signals.buy, *signals.sell):
            if signal.quantity == 0:
                continue
            self._execute(context, symbol, signal, candle)

        context.cursors[symbol] = index + 1
        context.data_points_processed += 1

    def _execute(self, context: _RunContext, symbol: str, signal: Signal, candle: Candle) -> None:
        """Simulate one signal and book the fill on the ledger."""
        fill = OrderSimulator.simulate(
            signal, candle, context.config.slippage_percentage, self.commission_rate
        )
        if not fill.executed:
            if context.config.enable_detailed_logging:
                self.logger.debug(f"{symbol}: {fill.reason}")
            return

        profit: float | None = None
        try:
            if signal.side == OrderSide.BUY:
                context.ledger.apply_buy(
                    symbol, fill.executed_quantity, fill.execution_price, fill.commission
                )
            else:
                profit = context.ledger.apply_sell(
                    symbol, fill.executed_quantity, fill.execution_price, fill.commission
                )
        except (PortfolioError, ValidationError) as e:
            message = f"{signal.side.value} order failed for {symbol}: {e}"
            self.logger.warning(message)
            context.errors.append(message)
            return

        trade = Trade(
            timestamp=candle.timestamp,
            symbol=symbol,
            side=signal.side,
            order_type=signal.order_type,
            price=signal.price,
            quantity=fill.executed_quantity,
            value=fill.value,
            commission=fill.commission,
            grid_level=signal.grid_level,
            execution_price=fill.execution_price,
            slippage=fill.slippage,
            candle_time=candle.timestamp,
            profit=profit,
            id=build_trade_id(symbol, candle.timestamp, signal.side, len(context.trades)),
        )
        context.trades.append(trade)

        if context.config.enable_detailed_logging:
            self.logger.debug(
                f"{symbol}: {signal.side.value} {trade.quantity} @ {trade.execution_price:.8f}"
            )

    @staticmethod
    def _progress(
        context: _RunContext, clock: int, first_timestamp: int, span: int
    ) -> BacktestProgress:
        history = context.ledger.history
        latest = history[-1] if history else None
        percentage = 100.0 if span <= 0 else min(100.0, (clock - first_timestamp) / span * 100)
        return BacktestProgress(
            run_id=context.run_id,
            current_timestamp=clock,
            progress_percentage=percentage,
            trades_executed=len(context.trades),
            data_points_processed=context.data_points_processed,
            current_balance=latest.total_value if latest else context.ledger.quote_balance,
            current_drawdown=latest.drawdown_percentage if latest else 0.0,
        )

    def _build_result(self, context: _RunContext, started_at: float) -> BacktestResult:
        """Summarise the finished replay."""
        config = context.config
        history = context.ledger.history
        trades = list(context.trades)

        symbol_performance = {
            symbol: self.calculator.calculate_symbol_performance(symbol, trades, history)
            for symbol in config.symbols
        }
        market_data_stats = {
            symbol: calculate_market_data_stats(symbol, candles)
            for symbol, candles in context.candles.items()
        }

        return BacktestResult(
            id=context.run_id,
            config=config,
            start_time=config.start_ms,
            end_time=config.end_ms,
            duration=config.duration_ms,
            initial_balance=config.initial_balance,
            final_balance=history[-1].total_value if history else config.initial_balance,
            overall=self.calculator.calculate_overall_performance(
                history, trades, config.initial_balance
            ),
            trading=self.calculator.calculate_trading_metrics(trades),
            symbol_performance=symbol_performance,
            portfolio_history=history,
            trades=trades,
            market_data_stats=market_data_stats,
            execution_time_ms=(time.time() - started_at) * 1000,
            data_points_processed=context.data_points_processed,
            errors_encountered=list(context.errors),
            created_at=int(started_at * 1000),
        )

    async def _save_report(self, result: BacktestResult) -> BacktestResult:
        """Hand the result to the report writer; a failure is recorded, not raised."""
        if self.report_writer is None:
            return result

        try:
            location = await self.report_writer.save(result)
        except Exception as e:
            message = f"Failed to save report for backtest {result.id}: {e}"
            self.logger.error(message)
            return replace(result, errors_encountered=[*result.errors_encountered, message])

        self.logger.info(f"Report for backtest {result.id} saved to {location}")
        return replace(result, report_location=location)
