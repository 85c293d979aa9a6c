"""Pending limit-order collection."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from stocktycoon.constants import TradeSide
from stocktycoon.db.base import GameStore
from stocktycoon.errors import NotFoundError, ValidationError
from stocktycoon.market.state import MarketState
from stocktycoon.trading.models import PendingOrder
from stocktycoon.trading.settlement import parse_amount

logger = logging.getLogger(__name__)


class OrderService:
    """Create, list and cancel a user's standing limit orders."""

    def __init__(self, state: MarketState, store: GameStore) -> None:
        self.state = state
        self.store = store

    def place(
        self,
        uid: Any,
        instrument_id: Any,
        side: Any,
        target_price: Any,
        amount: Any,
    ) -> PendingOrder:
        if not uid or not isinstance(uid, str):
            raise ValidationError("uid is required")
        if not isinstance(instrument_id, str) or not self.state.has_instrument(instrument_id):
            raise ValidationError(f"unknown instrument: {instrument_id}")
        try:
            trade_side = TradeSide(str(side).lower())
        except ValueError as e:
            raise ValidationError(f"type must be 'buy' or 'sell', got: {side}") from e
        try:
            price = Decimal(str(target_price))
        except InvalidOperation as e:
            raise ValidationError(f"invalid target price: {target_price}") from e
        if not price.is_finite() or price <= 0:
            raise ValidationError("target price must be positive")

        if self.store.get_account(uid) is None:
            raise NotFoundError(f"account not found: {uid}")

        order = PendingOrder(
            uid=uid,
            instrument_id=instrument_id,
            side=trade_side,
            target_price=price,
            amount=parse_amount(amount),
        )
        self.store.add_order(order)
        logger.info(
            f"Limit order {order.id} placed: {uid} {trade_side.value} {order.amount} "
            f"{instrument_id} @ {price}"
        )
        return order

    def pending(self, uid: str) -> list[PendingOrder]:
        return self.store.list_orders(uid)

    def cancel(self, uid: str, order_id: str) -> None:
        if not self.store.delete_order(uid, order_id):
            raise NotFoundError(f"order not found: {order_id}")
        logger.info(f"Limit order {order_id} removed for {uid}")
