"""Client-side limit-order watcher."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from decimal import Decimal

from stocktycoon.market.models import utc_now
from stocktycoon.trading.models import PendingOrder

logger = logging.getLogger(__name__)

OrderAction = Callable[[PendingOrder], Awaitable[None]]


class InFlightTracker:
    """
    Tracks which order ids may be submitted.

    An id is busy while its settlement is in flight, blocked for a cooldown
    after a failed settlement, and done for good after a successful one.
    """

    def __init__(self, cooldown_seconds: float) -> None:
        self.cooldown = timedelta(seconds=cooldown_seconds)
        self._in_flight: set[str] = set()
        self._blocked_until: dict[str, datetime] = {}
        self._completed: set[str] = set()

    def try_acquire(self, order_id: str) -> bool:
        """Mark `order_id` in flight. Returns False if it may not be submitted now."""
        if order_id in self._in_flight or order_id in self._completed:
            return False

        blocked_until = self._blocked_until.get(order_id)
        if blocked_until is not None:
            if utc_now() < blocked_until:
                return False
            del self._blocked_until[order_id]

        self._in_flight.add(order_id)
        return True

    def complete(self, order_id: str) -> None:
        self._in_flight.discard(order_id)
        self._blocked_until.pop(order_id, None)
        self._completed.add(order_id)

    def fail(self, order_id: str) -> None:
        self._in_flight.discard(order_id)
        self._blocked_until[order_id] = utc_now() + self.cooldown

    def is_in_flight(self, order_id: str) -> bool:
        return order_id in self._in_flight

    def is_blocked(self, order_id: str) -> bool:
        blocked_until = self._blocked_until.get(order_id)
        return blocked_until is not None and utc_now() < blocked_until


class LimitOrderWatcher:
    """
    Fires settlement for standing orders whose target price has been crossed.

    Each triggered order is settled once; it is deleted only after settlement
    succeeds. A failed order stays pending and is retried after the cooldown.
    """

    def __init__(
        self,
        settle: OrderAction,
        delete: OrderAction,
        retry_cooldown_seconds: float = 5.0,
    ) -> None:
        """
        Args:
            settle: Submits one settlement for the order; raises on failure.
            delete: Removes the order from the pending collection.
            retry_cooldown_seconds: Wait before retrying a failed order.
        """
        self.settle = settle
        self.delete = delete
        self.tracker = InFlightTracker(retry_cooldown_seconds)

    def evaluate(
        self,
        orders: list[PendingOrder],
        prices: dict[str, Decimal],
    ) -> list[asyncio.Task[bool]]:
        """
        Check every order against live prices and start settlement for the
        triggered ones. Returns the started tasks (True = settled).
        """
        tasks = []
        for order in orders:
            price = prices.get(order.instrument_id)
            if price is None or not order.is_triggered(price):
                continue
            if not self.tracker.try_acquire(order.id):
                continue

            logger.info(
                f"Limit order triggered: {order.side.value} {order.amount} {order.instrument_id} "
                f"target={order.target_price} live={price}"
            )
            tasks.append(asyncio.create_task(self._execute(order)))
        return tasks

    async def _execute(self, order: PendingOrder) -> bool:
        try:
            await self.settle(order)
        except Exception as e:
            logger.warning(f"Limit order {order.id} settlement failed: {e}")
            self.tracker.fail(order.id)
            return False

        self.tracker.complete(order.id)

        try:
            await self.delete(order)
        except Exception as e:
            # Settled already; the tracker keeps it from being submitted again.
            logger.error(f"Limit order {order.id} settled but could not be removed: {e}")

        logger.info(f"Limit order {order.id} filled")
        return True
