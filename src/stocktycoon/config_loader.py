"""Configuration loader with Pydantic validation and environment variable interpolation."""

from __future__ import annotations

import os
import re
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

# Load environment variables at module level
load_dotenv(find_dotenv(usecwd=True))

from stocktycoon.constants import (
    DEFAULT_HISTORY_CAPACITY,
    DEFAULT_INITIAL_CASH,
    DEFAULT_MIN_PRICE,
    DEFAULT_NEWS_EVERY_TICKS,
    DEFAULT_NEWS_LOG_SIZE,
    DEFAULT_NEWS_PROBABILITY,
    DEFAULT_NEWS_SHOCK_PCT,
    DEFAULT_ORDER_RETRY_COOLDOWN_SECONDS,
    DEFAULT_RECENT_HISTORY,
    DEFAULT_REWARD_COOLDOWN_SECONDS,
    DEFAULT_REWARD_MAX,
    DEFAULT_REWARD_MIN,
    DEFAULT_TICK_SECONDS,
    LogLevel,
    Sentiment,
    StoreMode,
)


def interpolate_env_vars(value: Any) -> Any:
    """
    Interpolate environment variables in string values.

    Supports formats:
    - ${VAR_NAME} - required, empty string if not set
    - ${VAR_NAME:default} - optional with default value
    """
    if not isinstance(value, str):
        return value

    pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)

        env_value = os.environ.get(var_name)

        if env_value is not None:
            return env_value
        elif default is not None:
            return default
        else:
            return ""

    return re.sub(pattern, replacer, value)


def process_config_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively process config dict to interpolate env vars."""
    result = {}
    for key, value in data.items():
        if isinstance(value, dict):
            result[key] = process_config_dict(value)
        elif isinstance(value, list):
            result[key] = [
                process_config_dict(item) if isinstance(item, dict) else interpolate_env_vars(item)
                for item in value
            ]
        else:
            result[key] = interpolate_env_vars(value)
    return result


def _to_decimal(v: Any) -> Decimal:
    if isinstance(v, Decimal):
        return v
    return Decimal(str(v))


# ============================================
# Pydantic Configuration Models
# ============================================


class EnvironmentConfig(BaseModel):
    """Environment and runtime settings."""

    log_level: LogLevel = LogLevel.INFO
    store_mode: StoreMode = StoreMode.MEMORY


class ServerConfig(BaseModel):
    """HTTP server settings."""

    host: str = "0.0.0.0"
    port: int = 5000
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    @field_validator("port", mode="before")
    @classmethod
    def validate_port(cls, v: Any) -> int:
        """Accept ports from env interpolation (strings) and check the range."""
        port = int(v)
        if not 0 < port < 65536:
            raise ValueError(f"Port must be 1-65535, got: {port}")
        return port


class InstrumentConfig(BaseModel):
    """Starting definition of one tradable instrument."""

    id: str
    name: str
    price: Decimal
    volatility: float
    sector: str = ""

    @field_validator("price", mode="before")
    @classmethod
    def convert_to_decimal(cls, v: Any) -> Decimal:
        return _to_decimal(v)

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError(f"Starting price must be positive, got: {v}")
        return v

    @field_validator("volatility")
    @classmethod
    def validate_volatility(cls, v: float) -> float:
        """Volatility is a per-tick fraction strictly between 0 and 1."""
        if not 0 < v < 1:
            raise ValueError(f"Volatility must be in (0, 1), got: {v}")
        return v


def _default_instruments() -> list[InstrumentConfig]:
    return [
        InstrumentConfig(
            id="SAMS", name="Samsung Electronics", price=72000, volatility=0.012,
            sector="Semiconductors",
        ),
        InstrumentConfig(id="KAKO", name="Kakao", price=54000, volatility=0.020, sector="Platforms"),
        InstrumentConfig(
            id="HYUN", name="Hyundai Motor", price=198000, volatility=0.015, sector="Automotive"
        ),
        InstrumentConfig(
            id="ECOP", name="EcoPro", price=850000, volatility=0.035, sector="Batteries"
        ),
        InstrumentConfig(
            id="BTC", name="Bitcoin", price=45000000, volatility=0.050, sector="Crypto"
        ),
    ]


class MarketConfig(BaseModel):
    """Price simulation settings."""

    tick_seconds: float = DEFAULT_TICK_SECONDS
    min_price: Decimal = DEFAULT_MIN_PRICE
    history_capacity: int = DEFAULT_HISTORY_CAPACITY
    recent_history: int = DEFAULT_RECENT_HISTORY
    instruments: list[InstrumentConfig] = Field(default_factory=_default_instruments)

    @field_validator("min_price", mode="before")
    @classmethod
    def convert_to_decimal(cls, v: Any) -> Decimal:
        return _to_decimal(v)

    @field_validator("tick_seconds")
    @classmethod
    def validate_tick_seconds(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Tick interval must be positive, got: {v}")
        return v

    @model_validator(mode="after")
    def validate_history(self) -> MarketConfig:
        """The published window cannot exceed what is retained."""
        if self.history_capacity <= 0:
            raise ValueError(f"history_capacity must be positive, got: {self.history_capacity}")
        if not 0 < self.recent_history <= self.history_capacity:
            raise ValueError(
                f"recent_history ({self.recent_history}) must be between 1 and "
                f"history_capacity ({self.history_capacity})"
            )
        ids = [inst.id for inst in self.instruments]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Instrument ids must be unique, got: {ids}")
        if not ids:
            raise ValueError("At least one instrument is required")
        return self


class BackupHeadline(BaseModel):
    """Canned headline used when the generation service is unavailable."""

    headline: str
    sentiment: Sentiment


def _default_backup_headlines() -> list[BackupHeadline]:
    return [
        BackupHeadline(
            headline="foreign buying returns on hopes of a chip upcycle", sentiment=Sentiment.GOOD
        ),
        BackupHeadline(headline="rate hike fears dent investor sentiment", sentiment=Sentiment.BAD),
        BackupHeadline(
            headline="traders stay on the sidelines ahead of tech earnings",
            sentiment=Sentiment.BAD,
        ),
        BackupHeadline(
            headline="shares surge after new AI technology unveiled", sentiment=Sentiment.GOOD
        ),
        BackupHeadline(
            headline="global supply chain disruption worries deepen", sentiment=Sentiment.BAD
        ),
        BackupHeadline(headline="EV sales hit an all-time high", sentiment=Sentiment.GOOD),
    ]


class NewsConfig(BaseModel):
    """News event settings."""

    enabled: bool = True
    every_ticks: int = DEFAULT_NEWS_EVERY_TICKS
    probability: float = DEFAULT_NEWS_PROBABILITY
    shock_pct: Decimal = DEFAULT_NEWS_SHOCK_PCT
    log_size: int = DEFAULT_NEWS_LOG_SIZE
    backup_headlines: list[BackupHeadline] = Field(default_factory=_default_backup_headlines)

    @field_validator("shock_pct", mode="before")
    @classmethod
    def convert_to_decimal(cls, v: Any) -> Decimal:
        return _to_decimal(v)

    @field_validator("every_ticks", "log_size")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Value must be positive, got: {v}")
        return v

    @field_validator("probability")
    @classmethod
    def validate_probability(cls, v: float) -> float:
        if not 0 <= v <= 1:
            raise ValueError(f"Probability must be in [0, 1], got: {v}")
        return v

    @field_validator("backup_headlines")
    @classmethod
    def validate_backup_headlines(cls, v: list[BackupHeadline]) -> list[BackupHeadline]:
        if not v:
            raise ValueError("At least one backup headline is required")
        return v


class OpenAIConfig(BaseModel):
    """OpenAI headline generation configuration."""

    enabled: bool = False
    api_key: str = ""
    model: str = "gpt-4o-mini"
    timeout_seconds: float = 10.0
    temperature: float = 0.9
    max_tokens: int = 120


class SupabaseConfig(BaseModel):
    """Supabase persistence configuration."""

    url: str = ""
    key: str = ""
    max_retries: int = 5
    market_table: str = "market_state"
    accounts_table: str = "accounts"
    orders_table: str = "pending_orders"
    leaderboard_table: str = "leaderboard"
    commit_function: str = "commit_account"


class GameConfig(BaseModel):
    """Account and reward settings."""

    initial_cash: Decimal = DEFAULT_INITIAL_CASH
    reward_min: int = DEFAULT_REWARD_MIN
    reward_max: int = DEFAULT_REWARD_MAX
    reward_cooldown_seconds: int = DEFAULT_REWARD_COOLDOWN_SECONDS

    @field_validator("initial_cash", mode="before")
    @classmethod
    def convert_to_decimal(cls, v: Any) -> Decimal:
        return _to_decimal(v)

    @model_validator(mode="after")
    def validate_reward_range(self) -> GameConfig:
        if not 0 < self.reward_min < self.reward_max:
            raise ValueError(
                f"reward_min ({self.reward_min}) must be positive and less than "
                f"reward_max ({self.reward_max})"
            )
        return self


class WatcherConfig(BaseModel):
    """Limit-order watcher settings."""

    poll_seconds: float = 1.0
    retry_cooldown_seconds: float = DEFAULT_ORDER_RETRY_COOLDOWN_SECONDS
    server_url: str = "http://127.0.0.1:5000"


class AppConfig(BaseModel):
    """Root application configuration."""

    environment: EnvironmentConfig = Field(default_factory=EnvironmentConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    market: MarketConfig = Field(default_factory=MarketConfig)
    news: NewsConfig = Field(default_factory=NewsConfig)
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    supabase: SupabaseConfig = Field(default_factory=SupabaseConfig)
    game: GameConfig = Field(default_factory=GameConfig)
    watcher: WatcherConfig = Field(default_factory=WatcherConfig)

    @property
    def uses_supabase(self) -> bool:
        """Check if accounts are persisted to Supabase."""
        return self.environment.store_mode == StoreMode.SUPABASE


# ============================================
# Configuration Loader
# ============================================


class ConfigLoader:
    """Load and validate configuration from YAML files with env var interpolation."""

    def __init__(self, config_path: str | Path) -> None:
        """
        Initialize config loader.

        Args:
            config_path: Path to the YAML configuration file.
        """
        self.config_path = Path(config_path)
        self._config: AppConfig | None = None

    def load(self) -> AppConfig:
        """
        Load and validate configuration.

        Returns:
            Validated AppConfig instance.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            yaml.YAMLError: If YAML is invalid.
            pydantic.ValidationError: If config validation fails.
        """
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        with open(self.config_path, encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)

        if raw_config is None:
            raw_config = {}

        processed_config = process_config_dict(raw_config)

        self._config = AppConfig.model_validate(processed_config)

        return self._config

    @property
    def config(self) -> AppConfig:
        """Get loaded config, loading if necessary."""
        if self._config is None:
            return self.load()
        return self._config

    def reload(self) -> AppConfig:
        """Force reload configuration from disk."""
        self._config = None
        return self.load()


def load_config(config_path: str | Path) -> AppConfig:
    """
    Convenience function to load configuration.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Validated AppConfig instance.
    """
    loader = ConfigLoader(config_path)
    return loader.load()


def load_config_with_overrides(
    config_path: str | Path,
    *,
    port: int | None = None,
    store_mode: str | None = None,
) -> AppConfig:
    """
    Load configuration with CLI overrides.

    Args:
        config_path: Path to the YAML configuration file.
        port: Override the listen port.
        store_mode: Override the persistence backend.

    Returns:
        Validated AppConfig instance with overrides applied.
    """
    config = load_config(config_path)

    updates: dict[str, Any] = {}

    if port is not None:
        updates["server"] = config.server.model_copy(update={"port": port})

    if store_mode is not None:
        store_enum = StoreMode(store_mode.lower())
        updates["environment"] = config.environment.model_copy(update={"store_mode": store_enum})

    if updates:
        return config.model_copy(update=updates)

    return config
