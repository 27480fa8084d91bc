"""
Trade domain model.
Optimized for high-performance backtesting with float operations.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any

from src.core.enums import OrderSide, OrderType
from src.core.exceptions.backtest import ValidationError


TRADE_ID_NAMESPACE = uuid.UUID("5b0d6f1e-8c1a-4f7e-9a53-2d4c8e6b7a10")


def _new_trade_id() -> str:
    return str(uuid.uuid4())


def build_trade_id(symbol: str, candle_time: int, side: OrderSide, ordinal: int) -> str:
    """Derive a stable trade id from where the trade sits in the replay.

    Identical runs produce identical ids, so their trade logs compare equal.
    """
    return str(uuid.uuid5(TRADE_ID_NAMESPACE, f"{symbol}:{candle_time}:{side.value}:{ordinal}"))


@dataclass(frozen=True)
class Trade:
    """Represents an executed simulated trade.

    ``profit`` is only set on SELL trades, after cost-basis accounting.
    """

    timestamp: int
    symbol: str
    side: OrderSide
    order_type: OrderType
    price: float
    quantity: float
    value: float
    commission: float
    grid_level: float
    execution_price: float
    slippage: float
    candle_time: int
    profit: float | None = None
    id: str = field(default_factory=_new_trade_id)

    def __post_init__(self) -> None:
        """Validate trade data after initialization."""
        if self.quantity <= 0:
            raise ValidationError(f"Quantity must be positive, got {self.quantity}")
        if self.execution_price <= 0:
            raise ValidationError(f"Execution price must be positive, got {self.execution_price}")
        if self.commission < 0:
            raise ValidationError(f"Commission must be non-negative, got {self.commission}")
        if self.slippage < 0:
            raise ValidationError(f"Slippage must be non-negative, got {self.slippage}")
        if self.profit is not None and self.side != OrderSide.SELL:
            raise ValidationError("Only SELL trades can carry a realized profit")

    @property
    def is_closing(self) -> bool:
        """Check whether this trade realized profit or loss."""
        return self.side == OrderSide.SELL and self.profit is not None

    def notional_value(self) -> float:
        """Calculate the notional value of the trade."""
        return abs(self.quantity) * self.execution_price

    def to_dict(self) -> dict[str, Any]:
        """Convert trade to dictionary."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "symbol": self.symbol,
            "side": self.side.value,
            "type": self.order_type.value,
            "price": self.price,
            "quantity": self.quantity,
            "value": self.value,
            "commission": self.commission,
            "profit": self.profit,
            "grid_level": self.grid_level,
            "execution_price": self.execution_price,
            "slippage": self.slippage,
            "candle_time": self.candle_time,
        }
