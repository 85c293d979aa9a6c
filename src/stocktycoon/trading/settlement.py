"""Trade settlement: buy/sell against a user's cash and holdings."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from stocktycoon.constants import TradeSide
from stocktycoon.db.base import GameStore
from stocktycoon.errors import BusinessRuleError, ValidationError
from stocktycoon.market.state import MarketState
from stocktycoon.trading.models import Holding, TradeRequest, TradeResult, UserAccount

logger = logging.getLogger(__name__)


def parse_amount(amount: Any) -> int:
    """Units must be a positive whole number."""
    if isinstance(amount, bool):
        raise ValidationError("amount must be a positive integer")
    if isinstance(amount, float):
        if not amount.is_integer():
            raise ValidationError("amount must be a positive integer")
        amount = int(amount)
    if not isinstance(amount, int) or amount <= 0:
        raise ValidationError("amount must be a positive integer")
    return amount


def apply_trade(
    account: UserAccount,
    side: TradeSide,
    instrument_id: str,
    amount: int,
    price: Decimal,
) -> None:
    """
    Apply one buy or sell to `account` in place at `price`.

    Buys fold the lot into the weighted average cost. Sells realize against
    the average without changing it; the holding is dropped at zero units.

    Raises:
        BusinessRuleError: Insufficient funds or insufficient holdings.
    """
    holding = account.holding(instrument_id)
    value = price * amount

    if side == TradeSide.BUY:
        if account.cash < value:
            raise BusinessRuleError("insufficient funds")
        account.cash -= value
        new_units = holding.units_held + amount
        holding = Holding(
            instrument_id=instrument_id,
            units_held=new_units,
            average_cost=(holding.average_cost * holding.units_held + value) / new_units,
        )
    else:
        if holding.units_held < amount:
            raise BusinessRuleError("insufficient holdings")
        account.cash += value
        new_units = holding.units_held - amount
        holding = Holding(
            instrument_id=instrument_id,
            units_held=new_units,
            average_cost=holding.average_cost if new_units > 0 else Decimal("0"),
        )

    if holding.units_held > 0:
        account.portfolio[instrument_id] = holding
    else:
        account.portfolio.pop(instrument_id, None)


class SettlementService:
    """
    Validates trade requests and settles them in one store transaction.

    Prices are read from the live market state inside the transaction, so a
    retried transaction settles at the then-current price.
    """

    def __init__(self, state: MarketState, store: GameStore) -> None:
        self.state = state
        self.store = store

    def build_request(self, uid: Any, instrument_id: Any, side: Any, amount: Any) -> TradeRequest:
        """
        Validate raw inputs.

        Raises:
            ValidationError: Missing uid, unknown instrument or side, bad amount.
        """
        if not uid or not isinstance(uid, str):
            raise ValidationError("uid is required")
        if not instrument_id or not isinstance(instrument_id, str):
            raise ValidationError("stockId is required")
        if not self.state.has_instrument(instrument_id):
            raise ValidationError(f"unknown instrument: {instrument_id}")
        try:
            trade_side = TradeSide(str(side).lower())
        except ValueError as e:
            raise ValidationError(f"type must be 'buy' or 'sell', got: {side}") from e

        return TradeRequest(
            uid=uid,
            instrument_id=instrument_id,
            side=trade_side,
            amount=parse_amount(amount),
        )

    def settle(self, request: TradeRequest) -> TradeResult:
        """
        Settle a validated request.

        Raises:
            NotFoundError: Unknown account.
            BusinessRuleError: Insufficient funds or holdings.
            PersistenceError: Store failure; nothing was applied.
        """
        fill_price: Decimal | None = None

        def mutate(account: UserAccount) -> None:
            nonlocal fill_price
            prices = self.state.prices()
            fill_price = prices[request.instrument_id]
            apply_trade(account, request.side, request.instrument_id, request.amount, fill_price)
            account.total_asset = account.compute_total_asset(prices)

        account = self.store.transact_account(request.uid, mutate)
        assert fill_price is not None

        result = TradeResult(request=request, price=fill_price, account=account)
        logger.info(
            f"Settled {request.side.value} {request.amount} {request.instrument_id} "
            f"@ {fill_price} for {request.uid}: cash={account.cash}"
        )
        return result

    def execute(self, uid: Any, instrument_id: Any, side: Any, amount: Any) -> TradeResult:
        """Validate and settle in one call."""
        return self.settle(self.build_request(uid, instrument_id, side, amount))
