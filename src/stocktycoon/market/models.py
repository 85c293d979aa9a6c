"""Market data structures: instruments, history points and news items."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import uuid4

from stocktycoon.constants import Sentiment


def generate_id() -> str:
    """Generate unique ID."""
    return str(uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Instrument:
    """One tradable simulated asset. Only the market loop mutates price."""

    id: str
    name: str
    price: Decimal
    volatility: float
    sector: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": float(self.price),
            "volatility": self.volatility,
            "sector": self.sector,
        }


@dataclass(frozen=True)
class HistoryPoint:
    """Price of one instrument at one tick."""

    tick: int
    price: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {"time": self.tick, "price": float(self.price)}


@dataclass(frozen=True)
class NewsItem:
    """Published news event."""

    text: str
    sentiment: Sentiment
    instrument_id: str
    id: str = field(default_factory=generate_id)
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "type": self.sentiment.value,
            "stockId": self.instrument_id,
            "time": self.timestamp.isoformat(),
        }
