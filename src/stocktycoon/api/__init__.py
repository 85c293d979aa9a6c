"""HTTP and websocket surface."""

from stocktycoon.api.feed import MarketFeed
from stocktycoon.api.server import create_app

__all__ = ["MarketFeed", "create_app"]
