"""
Order simulation against OHLC candles.

Decides whether a signal fills within a candle and at what price, using only
the candle's open/high/low/close. There is no order book: MARKET orders take
the worst price of the bar, LIMIT orders fill when the bar traded through the
limit.
"""

from src.core.enums import OrderSide, OrderType
from src.core.models.candle import Candle
from src.core.models.fill import SimulatedFill
from src.core.models.signal import Signal
from src.core.types.financial import ZERO, calculate_commission


class OrderSimulator:
    """Stateless matcher of signals against candles."""

    @staticmethod
    def simulate(
        signal: Signal,
        candle: Candle,
        slippage_percentage: float,
        commission_rate: float,
    ) -> SimulatedFill:
        """Simulate execution of ``signal`` within ``candle``.

        Args:
            signal: Pending order from the strategy
            candle: Candle the order is evaluated against
            slippage_percentage: Extra adverse price move applied to every fill (fraction)
            commission_rate: Fee rate charged on executed value (fraction)

        Returns:
            The fill; ``executed`` is False with a ``reason`` when the order did not match
        """
        side = signal.side
        quantity = signal.quantity

        if signal.order_type == OrderType.MARKET:
            execution_price, slippage = OrderSimulator._match_market(side, quantity, candle)
        else:
            matched = OrderSimulator._match_limit(side, signal.price, candle)
            if matched is None:
                return SimulatedFill(
                    executed=False,
                    execution_price=signal.price or candle.close,
                    executed_quantity=ZERO,
                    slippage=ZERO,
                    commission=ZERO,
                    value=ZERO,
                    reason=(
                        f"Limit price not reached: {side.value} @ {signal.price}, "
                        f"candle range: {candle.low}-{candle.high}"
                    ),
                )
            execution_price, slippage = matched, ZERO

        # Configured slippage always moves the price against the trader
        if slippage_percentage > 0:
            additional_slippage = execution_price * slippage_percentage
            if side == OrderSide.BUY:
                execution_price += additional_slippage
            else:
                execution_price -= additional_slippage
            slippage += additional_slippage * quantity

        value = quantity * execution_price
        return SimulatedFill(
            executed=True,
            execution_price=execution_price,
            executed_quantity=quantity,
            slippage=slippage,
            commission=calculate_commission(value, commission_rate),
            value=value,
        )

    @staticmethod
    def _match_market(side: OrderSide, quantity: float, candle: Candle) -> tuple[float, float]:
        """Worst-case price of the bar and the slippage versus its close."""
        if side == OrderSide.BUY:
            execution_price = candle.high
            slippage = (execution_price - candle.close) * quantity
        else:
            execution_price = candle.low
            slippage = (candle.close - execution_price) * quantity
        return execution_price, max(ZERO, slippage)

    @staticmethod
    def _match_limit(side: OrderSide, limit_price: float, candle: Candle) -> float | None:
        """Fill price of a limit order, or None when the bar never reached it."""
        if side == OrderSide.BUY and candle.low <= limit_price:
            return min(limit_price, candle.close)
        if side == OrderSide.SELL and candle.high >= limit_price:
            return max(limit_price, candle.close)
        return None
