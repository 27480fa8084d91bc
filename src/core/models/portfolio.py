"""
Portfolio ledger for simulated spot trading.

The ledger is the only component that mutates balances. It holds one quote
currency balance plus a balance per base asset, applies fills, values the
portfolio at market prices, and keeps the append-only snapshot history used
for drawdown and return analytics.
"""

from collections.abc import Mapping

from src.core.constants import BALANCE_TOLERANCE, DEFAULT_QUOTE_CURRENCY
from src.core.enums import CostBasisMethod
from src.core.exceptions.backtest import (
    InsufficientFundsError,
    InsufficientPositionError,
    ValidationError,
)
from src.core.models.snapshot import PortfolioSnapshot
from src.core.types.financial import ZERO, is_less_than, safe_divide
from src.core.utils.decorators import validate_inputs
from src.core.utils.validation import split_symbol, validate_positive


class PortfolioLedger:
    """Quote and base-asset balances for one backtest run.

    Prices passed to :meth:`value_at` and :meth:`snapshot` are keyed by
    trading symbol (``"BTC/USDT"``); balances are keyed by base asset
    (``"BTC"``).

    Cost basis:
        ``CostBasisMethod.AVERAGE_COST`` capitalises buy commissions into the
        asset's running cost and releases the average cost of the sold units
        on each SELL. ``CostBasisMethod.ZERO_COST`` keeps the legacy
        behaviour of treating cost basis as zero, so realized profit equals
        the net sell proceeds.
    """

    def __init__(
        self,
        initial_balance: float,
        quote_currency: str = DEFAULT_QUOTE_CURRENCY,
        cost_basis_method: CostBasisMethod = CostBasisMethod.AVERAGE_COST,
    ) -> None:
        validate_positive(initial_balance, "initial_balance")

        self.initial_balance = float(initial_balance)
        self.quote_currency = quote_currency
        self.cost_basis_method = cost_basis_method

        self._quote_balance = float(initial_balance)
        self._base_balances: dict[str, float] = {}
        self._cost_basis: dict[str, float] = {}  # Total cost of units currently held
        self._realized_pnl = ZERO
        self._high_water_mark: float | None = None
        self._history: list[PortfolioSnapshot] = []

    @property
    def quote_balance(self) -> float:
        """Current quote currency balance."""
        return self._quote_balance

    @property
    def base_balances(self) -> dict[str, float]:
        """Copy of the per-asset balances."""
        return dict(self._base_balances)

    @property
    def realized_pnl(self) -> float:
        """Cumulative realized profit of all SELL fills."""
        return self._realized_pnl

    @property
    def high_water_mark(self) -> float | None:
        """Highest total value seen across snapshots (None before the first)."""
        return self._high_water_mark

    @property
    def history(self) -> list[PortfolioSnapshot]:
        """Copy of the snapshot history, oldest first."""
        return list(self._history)

    def _asset_for(self, symbol: str) -> str:
        base, quote = split_symbol(symbol)
        if quote != self.quote_currency:
            raise ValidationError(
                f"Symbol {symbol} is not quoted in ledger currency {self.quote_currency}"
            )
        return base

    def get_balance(self, asset: str) -> float:
        """Get the held quantity of a base asset."""
        return self._base_balances.get(asset, ZERO)

    def get_position_size(self, symbol: str) -> float:
        """Get the held quantity of the symbol's base asset."""
        return self.get_balance(self._asset_for(symbol))

    def average_cost(self, asset: str) -> float:
        """Per-unit cost basis of a held asset under the configured policy."""
        if self.cost_basis_method == CostBasisMethod.ZERO_COST:
            return ZERO
        return safe_divide(self._cost_basis.get(asset, ZERO), self.get_balance(asset))

    @validate_inputs
    def apply_buy(self, symbol: str, quantity: float, price: float, commission: float) -> None:
        """Spend quote currency to acquire ``quantity`` of the symbol's base asset.

        Raises:
            InsufficientFundsError: If the quote balance cannot cover value plus commission
        """
        asset = self._asset_for(symbol)
        cost = quantity * price + commission

        if self._quote_balance < cost:
            raise InsufficientFundsError(
                required=cost,
                available=self._quote_balance,
                operation=f"buying {quantity} {symbol} at {price}",
            )

        self._quote_balance -= cost
        self._base_balances[asset] = self.get_balance(asset) + quantity
        self._cost_basis[asset] = self._cost_basis.get(asset, ZERO) + cost

    @validate_inputs
    def apply_sell(self, symbol: str, quantity: float, price: float, commission: float) -> float:
        """Sell ``quantity`` of the symbol's base asset and return the realized profit.

        Raises:
            InsufficientPositionError: If the ledger holds less than ``quantity``
        """
        asset = self._asset_for(symbol)
        held = self.get_balance(asset)

        if is_less_than(held, quantity, BALANCE_TOLERANCE):
            raise InsufficientPositionError(asset=asset, required=quantity, available=held)

        cost_released = self.average_cost(asset) * quantity
        proceeds = quantity * price - commission
        profit = proceeds - cost_released

        remaining = held - quantity
        if abs(remaining) < BALANCE_TOLERANCE:
            remaining = ZERO
            self._cost_basis[asset] = ZERO
        else:
            self._cost_basis[asset] = max(ZERO, self._cost_basis.get(asset, ZERO) - cost_released)

        self._base_balances[asset] = remaining
        self._quote_balance += proceeds
        self._realized_pnl += profit
        return profit

    def _price_for(self, asset: str, prices: Mapping[str, float]) -> float:
        return prices.get(f"{asset}/{self.quote_currency}", ZERO)

    def value_at(self, prices: Mapping[str, float]) -> float:
        """Mark-to-market value: quote balance plus every held asset at its price.

        Assets without a price contribute nothing.
        """
        total_value = self._quote_balance
        for asset, balance in self._base_balances.items():
            if balance > ZERO:
                total_value += balance * self._price_for(asset, prices)
        return total_value

    def unrealized_pnl(self, prices: Mapping[str, float]) -> float:
        """Market value of held assets minus their cost basis."""
        unrealized = ZERO
        for asset, balance in self._base_balances.items():
            if balance > ZERO:
                market_value = balance * self._price_for(asset, prices)
                unrealized += market_value - balance * self.average_cost(asset)
        return unrealized

    def snapshot(self, timestamp: int, prices: Mapping[str, float]) -> PortfolioSnapshot:
        """Record and return the portfolio state at ``timestamp``.

        Drawdown is measured against the highest total value observed so far,
        this snapshot included.
        """
        total_value = self.value_at(prices)

        if self._high_water_mark is None or total_value > self._high_water_mark:
            self._high_water_mark = total_value

        drawdown = max(ZERO, self._high_water_mark - total_value)
        drawdown_percentage = safe_divide(drawdown, self._high_water_mark)

        snapshot = PortfolioSnapshot(
            timestamp=timestamp,
            total_value=total_value,
            quote_balance=self._quote_balance,
            unrealized_pnl=self.unrealized_pnl(prices),
            realized_pnl=self._realized_pnl,
            drawdown=drawdown,
            drawdown_percentage=drawdown_percentage,
            base_balances=dict(self._base_balances),
        )

        self._history.append(snapshot)
        return snapshot
