"""Client-side helpers: HTTP client and the limit-order watcher."""

from stocktycoon.client.http import GameClient, TradeRejected
from stocktycoon.client.watcher import InFlightTracker, LimitOrderWatcher

__all__ = ["GameClient", "InFlightTracker", "LimitOrderWatcher", "TradeRejected"]
