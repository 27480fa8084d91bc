"""
Order side and order type enumerations.

This module defines the sides and order types a simulated fill can carry.
"""

from enum import StrEnum


class OrderSide(StrEnum):
    """
    Allowed order sides.

    A BUY spends quote currency for base asset, a SELL does the reverse.
    """

    BUY = "BUY"
    SELL = "SELL"

    @property
    def is_buy(self) -> bool:
        """Check if side is a buy."""
        return self == self.BUY

    @property
    def is_sell(self) -> bool:
        """Check if side is a sell."""
        return self == self.SELL

    def opposite(self) -> "OrderSide":
        """Get the opposite side."""
        return self.SELL if self.is_buy else self.BUY  # type: ignore[return-value]


class OrderType(StrEnum):
    """Allowed order types."""

    LIMIT = "LIMIT"
    MARKET = "MARKET"

    @property
    def requires_price(self) -> bool:
        """Check if the order type needs a limit price to be matched."""
        return self == self.LIMIT
