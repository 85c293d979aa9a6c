"""Polling loop that runs the limit-order watcher against a game server."""

from __future__ import annotations

import asyncio
import logging

import httpx

from stocktycoon.client.http import GameClient
from stocktycoon.client.watcher import LimitOrderWatcher
from stocktycoon.trading.models import PendingOrder

logger = logging.getLogger(__name__)


class OrderWatchRunner:
    """
    Polls prices and the user's pending orders, feeding them to the watcher.

    Settlements run as background tasks so a slow settlement does not delay
    the next poll; the watcher's in-flight tracker prevents resubmission.
    """

    def __init__(self, client: GameClient, uid: str, poll_seconds: float, retry_cooldown: float):
        self.client = client
        self.uid = uid
        self.poll_seconds = poll_seconds
        self.watcher = LimitOrderWatcher(
            settle=self._settle,
            delete=self._delete,
            retry_cooldown_seconds=retry_cooldown,
        )
        self._pending_tasks: set[asyncio.Task[bool]] = set()
        self._running = False

    async def _settle(self, order: PendingOrder) -> None:
        msg = await self.client.trade(self.uid, order.instrument_id, order.side.value, order.amount)
        logger.info(f"Order {order.id}: {msg}")

    async def _delete(self, order: PendingOrder) -> None:
        await self.client.delete_order(self.uid, order.id)

    async def poll_once(self) -> list[asyncio.Task[bool]]:
        prices = await self.client.get_prices()
        orders = await self.client.list_orders(self.uid)
        tasks = self.watcher.evaluate(orders, prices)
        for task in tasks:
            self._pending_tasks.add(task)
            task.add_done_callback(self._pending_tasks.discard)
        return tasks

    async def start(self) -> None:
        self._running = True
        logger.info(f"Watching limit orders for {self.uid}")
        while self._running:
            try:
                await self.poll_once()
            except (httpx.HTTPError, ValueError, KeyError) as e:
                logger.warning(f"Poll failed: {type(e).__name__}: {e}")
            await asyncio.sleep(self.poll_seconds)

        if self._pending_tasks:
            await asyncio.gather(*self._pending_tasks, return_exceptions=True)

    def stop(self) -> None:
        self._running = False
