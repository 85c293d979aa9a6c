"""Stock Tycoon: a stock trading simulation game server."""

__version__ = "0.1.0"
