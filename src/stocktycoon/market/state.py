"""Shared in-memory market state."""

from __future__ import annotations

import threading
from collections import deque
from datetime import datetime
from decimal import Decimal
from typing import Any

from stocktycoon.config_loader import MarketConfig
from stocktycoon.market.history import HistoryBuffer
from stocktycoon.market.models import Instrument, NewsItem, utc_now


class MarketState:
    """
    Single owned market state object.

    The market loop is the only writer of prices; HTTP handlers read through
    `price_of` / `prices` / `to_document`, all of which take the same lock.
    """

    def __init__(
        self,
        instruments: list[Instrument],
        history_capacity: int,
        recent_history: int,
        news_log_size: int,
    ) -> None:
        self.lock = threading.RLock()
        self.instruments: dict[str, Instrument] = {inst.id: inst for inst in instruments}
        self.history: dict[str, HistoryBuffer] = {
            inst.id: HistoryBuffer(history_capacity) for inst in instruments
        }
        self.recent_history = recent_history
        self.tick = 0
        self.latest_news: NewsItem | None = None
        self.news_log: deque[NewsItem] = deque(maxlen=news_log_size)
        self.last_updated: datetime = utc_now()

    @classmethod
    def from_config(cls, config: MarketConfig, news_log_size: int) -> MarketState:
        """Build a fresh market from configured defaults."""
        instruments = [
            Instrument(
                id=ic.id,
                name=ic.name,
                price=ic.price,
                volatility=ic.volatility,
                sector=ic.sector,
            )
            for ic in config.instruments
        ]
        return cls(
            instruments,
            history_capacity=config.history_capacity,
            recent_history=config.recent_history,
            news_log_size=news_log_size,
        )

    def has_instrument(self, instrument_id: str) -> bool:
        return instrument_id in self.instruments

    def price_of(self, instrument_id: str) -> Decimal | None:
        with self.lock:
            inst = self.instruments.get(instrument_id)
            return inst.price if inst else None

    def prices(self) -> dict[str, Decimal]:
        """Consistent snapshot of all live prices."""
        with self.lock:
            return {inst_id: inst.price for inst_id, inst in self.instruments.items()}

    def apply_shock(self, instrument_id: str, factor: Decimal) -> Decimal:
        """Multiply one instrument's price by `factor`. Returns the new price."""
        with self.lock:
            inst = self.instruments[instrument_id]
            inst.price = inst.price * factor
            return inst.price

    def publish_news(self, item: NewsItem) -> None:
        with self.lock:
            self.latest_news = item
            self.news_log.appendleft(item)

    def history_for(self, instrument_id: str, recent_only: bool = True) -> list[dict[str, Any]]:
        with self.lock:
            buffer = self.history[instrument_id]
            count = self.recent_history if recent_only else None
            return [point.to_dict() for point in buffer.recent(count)]

    def to_document(self) -> dict[str, Any]:
        """Market document as mirrored to the store and pushed to clients."""
        with self.lock:
            return {
                "stocks": [inst.to_dict() for inst in self.instruments.values()],
                "gameTime": self.tick,
                "latestNews": self.latest_news.to_dict() if self.latest_news else None,
                "newsLogs": [item.to_dict() for item in self.news_log],
                "history": {
                    inst_id: [p.to_dict() for p in buffer.recent(self.recent_history)]
                    for inst_id, buffer in self.history.items()
                },
                "lastUpdated": int(self.last_updated.timestamp() * 1000),
            }
