"""
Trade signal models produced by the strategy collaborator.
"""

from dataclasses import dataclass, field

from src.core.enums import OrderSide, OrderType
from src.core.exceptions.backtest import ValidationError


@dataclass(frozen=True)
class Signal:
    """A pending order the strategy wants evaluated against the current candle."""

    side: OrderSide
    price: float
    quantity: float
    grid_level: float
    timestamp: int
    order_type: OrderType = OrderType.LIMIT
    confidence: float | None = None

    def __post_init__(self) -> None:
        """Validate signal data after initialization."""
        if self.quantity < 0:
            raise ValidationError(f"Quantity must be non-negative, got {self.quantity}")
        if self.order_type.requires_price and self.price <= 0:
            raise ValidationError(f"Limit price must be positive, got {self.price}")


@dataclass
class TradeSignals:
    """Signals for one symbol and one tick, split by side."""

    buy: list[Signal] = field(default_factory=list)
    sell: list[Signal] = field(default_factory=list)

    def is_empty(self) -> bool:
        """Check whether the strategy asked for nothing this tick."""
        return not self.buy and not self.sell
