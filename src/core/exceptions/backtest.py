"""
Custom exception hierarchy for the backtesting engine.

This module defines domain-specific exceptions for better error handling.
"""


class BacktestException(Exception):
    """Base exception for all backtesting-related errors."""

    pass


class ValidationError(BacktestException):
    """Raised when input validation fails."""

    pass


class ConfigValidationError(ValidationError):
    """Raised when a backtest configuration is malformed."""

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = errors or []
        super().__init__(message)


class DataError(BacktestException):
    """Raised when data access or processing fails."""

    pass


class TransientDataError(DataError):
    """Raised by a data source on a failure that may succeed when retried."""

    pass


class DataUnavailableError(DataError):
    """Raised when historical data cannot be obtained for a symbol."""

    def __init__(self, symbol: str, attempts: int | None = None, reason: str | None = None):
        self.symbol = symbol
        self.attempts = attempts
        if attempts is not None:
            message = f"Failed to load data for {symbol} after {attempts} attempts"
        else:
            message = f"No historical data available for {symbol}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class StrategyError(BacktestException):
    """Raised when strategy execution fails."""

    pass


class SignalGenerationError(StrategyError):
    """Raised when the strategy collaborator fails while producing signals."""

    def __init__(self, symbol: str, cause: BaseException):
        self.symbol = symbol
        super().__init__(f"Strategy engine error for {symbol}: {cause}")


class PortfolioError(BacktestException):
    """Raised when portfolio operations fail."""

    pass


class InsufficientFundsError(PortfolioError):
    """Raised when there are insufficient funds for an operation."""

    def __init__(self, required: float, available: float, operation: str = "operation"):
        self.required = required
        self.available = available
        self.operation = operation
        super().__init__(
            f"Insufficient funds for {operation}: required={required:.2f}, available={available:.2f}"
        )


class InsufficientPositionError(PortfolioError):
    """Raised when selling more of an asset than the ledger holds."""

    def __init__(self, asset: str, required: float, available: float):
        self.asset = asset
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient {asset} position: required={required:.8f}, available={available:.8f}"
        )


class BacktestCancelledError(BacktestException):
    """Raised when a run observes its cancellation token."""

    def __init__(self, run_id: str, timestamp: int | None = None):
        self.run_id = run_id
        self.timestamp = timestamp
        where = f" at {timestamp}" if timestamp is not None else ""
        super().__init__(f"Backtest {run_id} was cancelled{where}")


class ReportError(BacktestException):
    """Raised when the report collaborator fails to store a result."""

    pass
