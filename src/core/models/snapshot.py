"""
Portfolio snapshot model.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Mark-to-market state of the ledger at one instant.

    ``drawdown_percentage`` is a fraction of the high-water mark (0..1).
    """

    timestamp: int
    total_value: float
    quote_balance: float
    unrealized_pnl: float
    realized_pnl: float
    drawdown: float
    drawdown_percentage: float
    base_balances: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert snapshot to dictionary."""
        return {
            "timestamp": self.timestamp,
            "total_value": self.total_value,
            "base_balances": dict(self.base_balances),
            "quote_balance": self.quote_balance,
            "unrealized_pnl": self.unrealized_pnl,
            "realized_pnl": self.realized_pnl,
            "drawdown": self.drawdown,
            "drawdown_percentage": self.drawdown_percentage,
        }
