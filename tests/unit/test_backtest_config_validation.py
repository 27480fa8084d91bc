"""
Unit tests for BacktestConfig validation.
Testing fail-fast behavior of the pydantic model and parse_backtest_config.
"""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError as PydanticValidationError

from src.core.enums import Timeframe
from src.core.exceptions.backtest import ConfigValidationError, ValidationError
from src.core.models.backtest import BacktestConfig, DataSourceConfig, parse_backtest_config


def _raw(**overrides) -> dict:
    values = {
        "start_time": "2024-01-01T00:00:00Z",
        "end_time": "2024-01-31T00:00:00Z",
        "symbols": ["BTC/USDT", "ETH/USDT"],
        "interval": "1h",
        "initial_balance": 10_000,
    }
    values.update(overrides)
    return values


class TestBacktestConfigValidation:
    """Test automatic validation in BacktestConfig."""

    def test_should_create_valid_backtest_config(self) -> None:
        """Test creating a valid BacktestConfig with defaults."""
        # Arrange & Act
        config = parse_backtest_config(_raw())

        # Assert
        assert config.symbols == ("BTC/USDT", "ETH/USDT")
        assert config.interval == Timeframe.H1
        assert config.slippage_percentage == 0.001
        assert config.max_concurrent_symbols == 5
        assert config.enable_detailed_logging is True
        assert config.save_historical_data is True
        assert config.quote_currency == "USDT"

    def test_should_expose_window_in_epoch_milliseconds(self) -> None:
        """Test derived window properties."""
        config = parse_backtest_config(_raw())

        assert config.start_ms == 1_704_067_200_000
        assert config.duration_ms == 30 * 86_400_000
        assert config.duration_days() == 30

    def test_should_treat_naive_datetimes_as_utc(self) -> None:
        """Test naive datetimes are interpreted as UTC."""
        config = BacktestConfig(
            start_time=datetime(2024, 1, 1),
            end_time=datetime(2024, 1, 2),
            symbols=("BTC/USDT",),
            interval=Timeframe.H1,
            initial_balance=1_000.0,
        )

        assert config.start_time.tzinfo is UTC
        assert config.start_ms == 1_704_067_200_000

    def test_should_accept_epoch_milliseconds(self) -> None:
        """Test the window can be given as epoch milliseconds."""
        config = parse_backtest_config(
            _raw(start_time=1_704_067_200_000, end_time=1_704_153_600_000)
        )

        assert config.start_ms == 1_704_067_200_000
        assert config.end_ms == 1_704_153_600_000

    def test_should_be_immutable(self) -> None:
        """Test frozen model."""
        config = parse_backtest_config(_raw())

        with pytest.raises(PydanticValidationError):
            config.initial_balance = 1.0  # type: ignore[misc]

    @pytest.mark.parametrize(
        ("overrides", "field"),
        [
            ({"end_time": "2023-12-31T00:00:00Z"}, "End time must be after start time"),
            ({"symbols": []}, "symbols"),
            ({"symbols": ["BTCUSDT"]}, "Invalid symbol format"),
            ({"symbols": ["BTC/USDT", "BTC/USDT"]}, "symbols must be unique"),
            ({"symbols": ["BTC/USDT", "ETH/BTC"]}, "one quote currency"),
            ({"interval": "2d"}, "interval"),
            ({"initial_balance": 0}, "initial_balance"),
            ({"slippage_percentage": 1.5}, "slippage_percentage"),
            ({"max_concurrent_symbols": 0}, "max_concurrent_symbols"),
        ],
    )
    def test_should_reject_invalid_fields(self, overrides: dict, field: str) -> None:
        """Test each constraint surfaces as ConfigValidationError."""
        with pytest.raises(ConfigValidationError, match=field) as exc_info:
            parse_backtest_config(_raw(**overrides))

        assert exc_info.value.errors
        assert isinstance(exc_info.value, ValidationError)

    def test_should_report_missing_fields(self) -> None:
        """Test missing required fields are listed."""
        raw = _raw()
        del raw["interval"]

        with pytest.raises(ConfigValidationError) as exc_info:
            parse_backtest_config(raw)

        assert any(error.startswith("interval") for error in exc_info.value.errors)

    def test_should_return_existing_config_unchanged(self) -> None:
        """Test parse_backtest_config is idempotent on models."""
        config = parse_backtest_config(_raw())
        assert parse_backtest_config(config) is config


class TestDataSourceConfig:
    """Test DataSourceConfig validation."""

    def test_should_default_to_three_retries(self) -> None:
        """Test defaults."""
        config = DataSourceConfig()
        assert config.max_retries == 3
        assert config.retry_delay_ms == 1000
        assert config.enable_cache is True

    def test_should_reject_invalid_retry_settings(self) -> None:
        """Test retry validation."""
        with pytest.raises(ValidationError, match="max_retries"):
            DataSourceConfig(max_retries=0)

        with pytest.raises(ValidationError, match="retry_delay_ms"):
            DataSourceConfig(retry_delay_ms=-1)
