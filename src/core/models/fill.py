"""
Simulated fill model.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SimulatedFill:
    """Outcome of matching one signal against one candle.

    When ``executed`` is False, quantity, value and commission are zero and
    ``reason`` explains why the order did not fill.
    """

    executed: bool
    execution_price: float
    executed_quantity: float
    slippage: float
    commission: float
    value: float
    reason: str | None = None

    @property
    def total_cost(self) -> float:
        """Quote currency consumed by a BUY fill, commission included."""
        return self.value + self.commission
