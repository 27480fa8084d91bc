"""
Backtest run state and data source enumerations.
"""

from enum import StrEnum


class RunState(StrEnum):
    """
    Lifecycle states of a single backtest run.

    INITIALIZING -> RUNNING -> (CANCELLED | COMPLETED). FAILED marks a run
    aborted by a fatal error before or during the replay.
    """

    INITIALIZING = "initializing"
    RUNNING = "running"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Check if no further transition is possible."""
        return self in [self.CANCELLED, self.COMPLETED, self.FAILED]

    def can_transition_to(self, target: "RunState") -> bool:
        """Check whether moving from this state to ``target`` is allowed."""
        allowed = {
            RunState.INITIALIZING: {RunState.RUNNING, RunState.FAILED, RunState.CANCELLED},
            RunState.RUNNING: {RunState.CANCELLED, RunState.COMPLETED, RunState.FAILED},
        }
        return target in allowed.get(self, set())


class DataSource(StrEnum):
    """Where a historical data load was served from."""

    CACHE = "cache"
    API = "api"


class CostBasisMethod(StrEnum):
    """
    Cost basis policy used when realizing profit on a SELL.

    ZERO_COST reproduces the legacy behaviour where purchase prices are not
    tracked and the whole sell proceeds count as profit.
    """

    AVERAGE_COST = "average_cost"
    ZERO_COST = "zero_cost"
