"""
Cooperative cancellation for long-running backtests.
"""

import threading


class CancellationToken:
    """Flag shared between a running backtest and whoever may stop it.

    The driver polls :attr:`is_cancelled` once per simulated tick, so a
    cancellation takes effect at the next minute boundary. Setting the flag is
    safe from any thread.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    def cancel(self, reason: str | None = None) -> None:
        """Request cancellation."""
        self.reason = reason
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.is_cancelled}, reason={self.reason!r})"
