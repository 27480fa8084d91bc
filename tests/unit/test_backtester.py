"""
Unit tests for the Backtester replay driver.

Tests cover the run lifecycle, the simulated clock, signal execution,
error collection, cancellation and report hand-off.
"""

from unittest.mock import Mock

import pytest

from src.core.engine import Backtester
from src.core.enums import OrderSide, RunState
from src.core.exceptions.backtest import (
    BacktestCancelledError,
    ConfigValidationError,
    DataUnavailableError,
    ReportError,
    ValidationError,
)
from src.core.interfaces.report import IReportWriter
from src.core.models.performance import SymbolPerformance
from src.core.models.signal import TradeSignals
from src.core.utils.cancellation import CancellationToken
from tests.fakes import BASE_TS, HOUR_MS, ScriptedStrategy, StaticDataLoader

CLOSES = [100.0, 102.0, 104.0, 106.0, 108.0]


class RecordingReportWriter(IReportWriter):
    """Report writer that remembers what it stored."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.saved = []

    async def save(self, result) -> str:
        if self.error is not None:
            raise self.error
        self.saved.append(result)
        return f"reports/{result.id}.json"


@pytest.fixture
def round_trip(limit_signal) -> dict:
    """Buy at the first candle, sell at the last one."""
    return {
        ("BTC/USDT", BASE_TS): TradeSignals(buy=[limit_signal(OrderSide.BUY, 101.0, 10.0)]),
        ("BTC/USDT", BASE_TS + 4 * HOUR_MS): TradeSignals(
            sell=[limit_signal(OrderSide.SELL, 107.0, 10.0, timestamp=BASE_TS + 4 * HOUR_MS)]
        ),
    }


@pytest.fixture
def loader(hourly_series) -> StaticDataLoader:
    return StaticDataLoader({"BTC/USDT": hourly_series(CLOSES)})


class TestBacktesterLifecycle:
    """Test run states and result assembly."""

    @pytest.mark.asyncio
    async def test_should_complete_round_trip(self, backtest_config, loader, round_trip) -> None:
        """Test a buy and a sell produce two trades and a profitable result."""
        # Arrange
        backtester = Backtester(ScriptedStrategy(round_trip), loader)

        # Act
        result = await backtester.run_backtest(backtest_config())

        # Assert
        assert backtester.state == RunState.COMPLETED
        assert [t.side for t in result.trades] == [OrderSide.BUY, OrderSide.SELL]
        buy = result.trades[0]
        assert buy.price == 101.0
        assert buy.grid_level == 101.0
        assert buy.execution_price == 100.0
        assert buy.profit is None
        assert result.trades[1].profit == pytest.approx(80.0 - 1.0 - 1.08)
        assert result.final_balance == pytest.approx(10_000.0 + 77.92)
        assert result.data_points_processed == 5
        assert result.errors_encountered == []
        assert result.market_data_stats["BTC/USDT"].candle_count == 5
        assert result.created_at > 0
        assert result.report_location is None

    @pytest.mark.asyncio
    async def test_should_be_deterministic(self, backtest_config, loader, round_trip) -> None:
        """Test identical inputs produce identical trade logs and history."""
        first = await Backtester(ScriptedStrategy(round_trip), loader).run_backtest(
            backtest_config()
        )
        second = await Backtester(ScriptedStrategy(round_trip), loader).run_backtest(
            backtest_config()
        )

        assert [t.to_dict() for t in first.trades] == [t.to_dict() for t in second.trades]
        assert len({t.id for t in first.trades}) == 2
        assert first.portfolio_history == second.portfolio_history
        assert first.id != second.id

    @pytest.mark.asyncio
    async def test_should_fail_when_no_symbol_has_data(self, backtest_config) -> None:
        """Test an all-empty load is fatal."""
        backtester = Backtester(ScriptedStrategy(), StaticDataLoader({}))

        with pytest.raises(DataUnavailableError, match="BTC/USDT"):
            await backtester.run_backtest(backtest_config())

        assert backtester.state == RunState.FAILED

    @pytest.mark.asyncio
    async def test_should_reject_invalid_raw_config(self, loader) -> None:
        """Test raw mappings are validated before any data is loaded."""
        backtester = Backtester(ScriptedStrategy(), loader)

        with pytest.raises(ConfigValidationError):
            await backtester.run_backtest({"symbols": []})

        assert backtester.state == RunState.FAILED
        assert loader.calls == []

    def test_should_reject_invalid_commission_rate(self, loader) -> None:
        """Test commission validation."""
        with pytest.raises(ValidationError, match="commission_rate"):
            Backtester(ScriptedStrategy(), loader, commission_rate=1.5)

    @pytest.mark.asyncio
    async def test_should_pass_persist_flag_to_loader(self, backtest_config, loader) -> None:
        """Test save_historical_data controls cache write-back."""
        await Backtester(ScriptedStrategy(), loader).run_backtest(
            backtest_config(save_historical_data=False)
        )

        assert loader.calls == [("BTC/USDT", False)]

    @pytest.mark.asyncio
    async def test_should_report_empty_performance_for_symbol_without_data(
        self, backtest_config, hourly_series
    ) -> None:
        """Test a symbol with no candles never trades but still appears in the result."""
        loader = StaticDataLoader({"BTC/USDT": hourly_series(CLOSES)})
        config = backtest_config(symbols=("BTC/USDT", "ETH/USDT"))

        result = await Backtester(ScriptedStrategy(), loader).run_backtest(config)

        assert list(result.symbol_performance) == ["BTC/USDT", "ETH/USDT"]
        assert result.symbol_performance["ETH/USDT"] == SymbolPerformance.empty("ETH/USDT")
        assert result.market_data_stats["ETH/USDT"].candle_count == 0


class TestBacktesterClock:
    """Test the simulated clock, snapshots and warmup."""

    @pytest.mark.asyncio
    async def test_should_tick_every_minute_and_snapshot_hourly(
        self, backtest_config, loader
    ) -> None:
        """Test 241 ticks and 5 snapshots over four hours of data."""
        # Arrange
        progress = []

        # Act
        result = await Backtester(ScriptedStrategy(), loader).run_backtest(
            backtest_config(), progress_callback=progress.append
        )

        # Assert
        assert len(progress) == 241
        assert progress[0].current_timestamp == BASE_TS
        assert progress[0].progress_percentage == 0.0
        assert progress[-1].progress_percentage == 100.0
        assert progress[-1].data_points_processed == 5
        assert [s.timestamp for s in result.portfolio_history] == [
            BASE_TS + HOUR_MS,
            BASE_TS + 2 * HOUR_MS,
            BASE_TS + 3 * HOUR_MS,
            BASE_TS + 4 * HOUR_MS,
            BASE_TS + 4 * HOUR_MS,
        ]

    @pytest.mark.asyncio
    async def test_should_warm_up_strategy_before_replay(self, backtest_config, loader) -> None:
        """Test warmup candles go to initialize_strategy and are not replayed."""
        strategy = ScriptedStrategy(warmup=2)

        result = await Backtester(strategy, loader).run_backtest(backtest_config())

        assert [c.close for c in strategy.initialized["BTC/USDT"]] == [100.0, 102.0]
        assert [ts for _, ts, _ in strategy.updates] == [
            BASE_TS + 2 * HOUR_MS,
            BASE_TS + 3 * HOUR_MS,
            BASE_TS + 4 * HOUR_MS,
        ]
        assert all(length == 2 for _, _, length in strategy.updates)
        assert result.data_points_processed == 3


class TestBacktesterMultiSymbol:
    """Test symbols sharing the simulated clock."""

    ETH_CLOSES = [10.0, 11.0, 12.0, 13.0, 14.0]

    @pytest.fixture
    def two_symbol_loader(self, hourly_series) -> StaticDataLoader:
        return StaticDataLoader(
            {
                "BTC/USDT": hourly_series(CLOSES),
                "ETH/USDT": hourly_series(self.ETH_CLOSES, symbol="ETH/USDT"),
            }
        )

    @pytest.fixture
    def interleaved(self, limit_signal) -> dict:
        """ETH and BTC both trade on the first three candles."""
        first, second, third = BASE_TS, BASE_TS + HOUR_MS, BASE_TS + 2 * HOUR_MS
        return {
            ("BTC/USDT", first): TradeSignals(buy=[limit_signal(OrderSide.BUY, 101.0, 10.0)]),
            ("ETH/USDT", first): TradeSignals(buy=[limit_signal(OrderSide.BUY, 11.0, 100.0)]),
            ("BTC/USDT", second): TradeSignals(
                sell=[limit_signal(OrderSide.SELL, 101.0, 5.0, timestamp=second)]
            ),
            ("ETH/USDT", second): TradeSignals(
                buy=[limit_signal(OrderSide.BUY, 12.0, 50.0, timestamp=second)]
            ),
            ("ETH/USDT", third): TradeSignals(
                sell=[limit_signal(OrderSide.SELL, 11.0, 150.0, timestamp=third)]
            ),
        }

    @pytest.mark.asyncio
    async def test_should_execute_symbols_in_configured_order(
        self, backtest_config, two_symbol_loader, interleaved
    ) -> None:
        """Test trades within a tick follow the order of config.symbols."""
        # Arrange
        config = backtest_config(symbols=("ETH/USDT", "BTC/USDT"))

        # Act
        result = await Backtester(ScriptedStrategy(interleaved), two_symbol_loader).run_backtest(
            config
        )

        # Assert
        assert [(t.timestamp, t.symbol, t.side) for t in result.trades] == [
            (BASE_TS, "ETH/USDT", OrderSide.BUY),
            (BASE_TS, "BTC/USDT", OrderSide.BUY),
            (BASE_TS + HOUR_MS, "ETH/USDT", OrderSide.BUY),
            (BASE_TS + HOUR_MS, "BTC/USDT", OrderSide.SELL),
            (BASE_TS + 2 * HOUR_MS, "ETH/USDT", OrderSide.SELL),
        ]
        assert result.errors_encountered == []

    @pytest.mark.asyncio
    async def test_should_mark_every_symbol_at_its_last_close(
        self, backtest_config, two_symbol_loader, interleaved
    ) -> None:
        """Test each snapshot values every held asset at that symbol's latest close."""
        # Arrange
        config = backtest_config(symbols=("ETH/USDT", "BTC/USDT"))
        closes = {"BTC": CLOSES, "ETH": self.ETH_CLOSES}

        # Act
        result = await Backtester(ScriptedStrategy(interleaved), two_symbol_loader).run_backtest(
            config
        )

        # Assert
        first = result.portfolio_history[0]
        assert first.base_balances == {"BTC": pytest.approx(5.0), "ETH": pytest.approx(150.0)}
        for snapshot in result.portfolio_history:
            index = (snapshot.timestamp - BASE_TS) // HOUR_MS
            expected = snapshot.quote_balance + sum(
                balance * closes[asset][index] for asset, balance in snapshot.base_balances.items()
            )
            assert snapshot.total_value == pytest.approx(expected)


class TestBacktesterErrors:
    """Test collected, non-fatal errors."""

    @pytest.mark.asyncio
    async def test_should_retry_candle_after_signal_failure(
        self, backtest_config, loader, round_trip
    ) -> None:
        """Test a failing strategy call is recorded and the candle is retried next tick."""
        # Arrange
        strategy = ScriptedStrategy(round_trip, failures={"BTC/USDT": 1})

        # Act
        result = await Backtester(strategy, loader).run_backtest(backtest_config())

        # Assert
        assert result.errors_encountered == [
            "Strategy engine error for BTC/USDT: indicator window not ready"
        ]
        assert len(result.trades) == 2
        assert result.trades[0].timestamp == BASE_TS
        assert strategy.updates[0][1] == strategy.updates[1][1] == BASE_TS
        assert result.data_points_processed == 5

    @pytest.mark.asyncio
    async def test_should_record_insufficient_funds(
        self, backtest_config, loader, limit_signal
    ) -> None:
        """Test an unaffordable buy is recorded and skipped."""
        script = {
            ("BTC/USDT", BASE_TS): TradeSignals(buy=[limit_signal(OrderSide.BUY, 101.0, 1000.0)])
        }

        result = await Backtester(ScriptedStrategy(script), loader).run_backtest(backtest_config())

        assert result.trades == []
        assert len(result.errors_encountered) == 1
        assert result.errors_encountered[0].startswith(
            "BUY order failed for BTC/USDT: Insufficient funds"
        )

    @pytest.mark.asyncio
    async def test_should_record_sell_without_position(
        self, backtest_config, loader, limit_signal
    ) -> None:
        """Test selling an asset that is not held."""
        script = {
            ("BTC/USDT", BASE_TS): TradeSignals(sell=[limit_signal(OrderSide.SELL, 99.0, 1.0)])
        }

        result = await Backtester(ScriptedStrategy(script), loader).run_backtest(backtest_config())

        assert result.trades == []
        assert result.errors_encountered[0].startswith(
            "SELL order failed for BTC/USDT: Insufficient BTC position"
        )

    @pytest.mark.asyncio
    async def test_should_ignore_zero_quantity_signals_and_unfilled_limits(
        self, backtest_config, loader, limit_signal
    ) -> None:
        """Test skipped and unmatched signals leave no trade and no error."""
        script = {
            ("BTC/USDT", BASE_TS): TradeSignals(
                buy=[
                    limit_signal(OrderSide.BUY, 50.0, 1.0),
                    limit_signal(OrderSide.BUY, 101.0, 0.0),
                ],
                sell=[limit_signal(OrderSide.SELL, 99.0, 0.0)],
            )
        }

        result = await Backtester(ScriptedStrategy(script), loader).run_backtest(backtest_config())

        assert result.trades == []
        assert result.errors_encountered == []


class TestBacktesterCancellation:
    """Test cooperative cancellation."""

    @pytest.mark.asyncio
    async def test_should_stop_at_first_tick_when_token_is_cancelled(
        self, backtest_config, loader
    ) -> None:
        """Test a pre-cancelled token."""
        token = CancellationToken()
        token.cancel("user request")
        backtester = Backtester(ScriptedStrategy(), loader)

        with pytest.raises(BacktestCancelledError) as exc_info:
            await backtester.run_backtest(backtest_config(), cancellation_token=token)

        assert exc_info.value.timestamp == BASE_TS
        assert backtester.state == RunState.CANCELLED

    @pytest.mark.asyncio
    async def test_should_stop_at_next_tick_when_cancelled_mid_run(
        self, backtest_config, loader
    ) -> None:
        """Test Backtester.cancel from a progress callback."""
        backtester = Backtester(ScriptedStrategy(), loader)

        with pytest.raises(BacktestCancelledError) as exc_info:
            await backtester.run_backtest(
                backtest_config(), progress_callback=lambda _: backtester.cancel("stop")
            )

        assert exc_info.value.timestamp == BASE_TS + 60_000
        assert backtester.state == RunState.CANCELLED


class TestBacktesterReports:
    """Test report hand-off."""

    @pytest.mark.asyncio
    async def test_should_record_report_location(self, backtest_config, loader) -> None:
        """Test a successful save."""
        writer = RecordingReportWriter()

        result = await Backtester(ScriptedStrategy(), loader, writer).run_backtest(
            backtest_config()
        )

        assert result.report_location == f"reports/{result.id}.json"
        assert len(writer.saved) == 1

    @pytest.mark.asyncio
    async def test_should_record_report_failure_without_failing_run(
        self, backtest_config, loader
    ) -> None:
        """Test a failing writer only adds an error."""
        mock_logger = Mock()
        backtester = Backtester(
            ScriptedStrategy(),
            loader,
            RecordingReportWriter(ReportError("disk full")),
            custom_logger=mock_logger,
        )

        result = await backtester.run_backtest(backtest_config())

        assert backtester.state == RunState.COMPLETED
        assert result.report_location is None
        assert result.errors_encountered == [
            f"Failed to save report for backtest {result.id}: disk full"
        ]
        mock_logger.error.assert_called_once()
