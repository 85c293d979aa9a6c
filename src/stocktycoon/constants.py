"""Core constants for Stock Tycoon."""

from decimal import Decimal
from enum import Enum


class StoreMode(str, Enum):
    """Persistence backend selection."""

    MEMORY = "memory"
    SUPABASE = "supabase"


class TradeSide(str, Enum):
    """Trade side (buy/sell)."""

    BUY = "buy"
    SELL = "sell"


class Sentiment(str, Enum):
    """News sentiment driving the price shock direction."""

    GOOD = "good"
    BAD = "bad"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


# ============================================
# Default Values
# ============================================

DEFAULT_TICK_SECONDS = 1.0
DEFAULT_MIN_PRICE = Decimal("100")
DEFAULT_HISTORY_CAPACITY = 600
DEFAULT_RECENT_HISTORY = 60

DEFAULT_NEWS_EVERY_TICKS = 25
DEFAULT_NEWS_PROBABILITY = 0.4
DEFAULT_NEWS_SHOCK_PCT = Decimal("0.05")
DEFAULT_NEWS_LOG_SIZE = 20

DEFAULT_INITIAL_CASH = Decimal("10000000")
DEFAULT_REWARD_MIN = 100_000
DEFAULT_REWARD_MAX = 3_000_000
DEFAULT_REWARD_COOLDOWN_SECONDS = 60

DEFAULT_ORDER_RETRY_COOLDOWN_SECONDS = 5.0
DEFAULT_LEADERBOARD_LIMIT = 50

# ============================================
# Application Constants
# ============================================

MARKET_DOCUMENT_ID = "main"
NEWS_PREFIX = "[Breaking] "
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
