"""Bounded per-instrument price history."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator
from decimal import Decimal

from stocktycoon.market.models import HistoryPoint


class HistoryBuffer:
    """
    FIFO ring buffer of HistoryPoints.

    Appending past capacity evicts the oldest point.
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError(f"History capacity must be positive, got: {capacity}")
        self.capacity = capacity
        self._points: deque[HistoryPoint] = deque(maxlen=capacity)

    def append(self, tick: int, price: Decimal) -> HistoryPoint:
        point = HistoryPoint(tick=tick, price=price)
        self._points.append(point)
        return point

    def recent(self, count: int | None = None) -> list[HistoryPoint]:
        """Return the newest `count` points (all of them if None), oldest first."""
        if count is None or count >= len(self._points):
            return list(self._points)
        if count <= 0:
            return []
        return list(self._points)[-count:]

    @property
    def latest(self) -> HistoryPoint | None:
        return self._points[-1] if self._points else None

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[HistoryPoint]:
        return iter(list(self._points))
