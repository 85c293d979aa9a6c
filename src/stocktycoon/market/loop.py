"""Market tick loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from stocktycoon.ai.news import NewsGenerator
from stocktycoon.db.base import GameStore
from stocktycoon.errors import PersistenceError
from stocktycoon.market.models import NewsItem
from stocktycoon.market.simulator import PriceSimulator
from stocktycoon.market.state import MarketState

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[dict[str, Any]], Awaitable[None]]


class MarketLoop:
    """
    Drives the market once per interval: price walk, occasional news,
    mirror to the store, then notify subscribers.

    News runs as a background task so a slow generation request never delays
    the next tick; the shock lands on whichever tick follows the headline.
    No error stops the loop; store failures are logged and the next tick's
    write overwrites the missed one.
    """

    def __init__(
        self,
        state: MarketState,
        simulator: PriceSimulator,
        news: NewsGenerator,
        store: GameStore,
        interval_sec: float = 1.0,
    ):
        self.state = state
        self.simulator = simulator
        self.news = news
        self.store = store
        self.interval_sec = interval_sec
        self._update_callbacks: list[UpdateCallback] = []
        self._news_tasks: set[asyncio.Task[NewsItem]] = set()
        self._running = False

    def add_update_callback(self, callback: UpdateCallback) -> None:
        """Register callback receiving the market document after each tick."""
        self._update_callbacks.append(callback)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def news_in_flight(self) -> bool:
        return bool(self._news_tasks)

    async def run_tick(self) -> dict[str, Any]:
        """Execute one tick and return the published market document."""
        tick = self.simulator.step()

        if self.news.should_fire(tick):
            if self._news_tasks:
                logger.debug(f"Tick {tick}: previous news still generating, skipped")
            else:
                task = asyncio.create_task(self.news.generate())
                self._news_tasks.add(task)
                task.add_done_callback(self._on_news_done)

        document = self.state.to_document()
        await self._mirror(document)

        for cb in self._update_callbacks:
            try:
                await cb(document)
            except Exception as e:
                logger.error(f"Market update callback failed: {e}", exc_info=True)

        return document

    def _on_news_done(self, task: asyncio.Task[NewsItem]) -> None:
        self._news_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"News generation task failed: {exc}", exc_info=exc)

    async def wait_for_news(self) -> None:
        """Wait until every started news event has been published."""
        if self._news_tasks:
            await asyncio.gather(*self._news_tasks, return_exceptions=True)

    async def _mirror(self, document: dict[str, Any]) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self.store.write_market_state, document)
        except PersistenceError as e:
            logger.error(f"Market state write failed: {e.message}")

    async def start(self) -> None:
        """Run ticks until stopped."""
        self._running = True
        logger.info(
            f"Market loop started for {list(self.state.instruments)} every {self.interval_sec}s"
        )

        try:
            while self._running:
                try:
                    await self.run_tick()
                except Exception as e:
                    logger.error(f"Error in market tick: {e}", exc_info=True)
                await asyncio.sleep(self.interval_sec)
        finally:
            for task in list(self._news_tasks):
                task.cancel()

    def stop(self) -> None:
        """Stop after the current tick."""
        self._running = False
        logger.info("Market loop stopped")
