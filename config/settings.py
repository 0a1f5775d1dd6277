"""
Main Settings Module for Options Trading Bot.

This module provides centralized configuration for the bot: brokerage
credentials and endpoints, polling schedule, trading policy and logging,
read from environment variables and an optional ``.env`` file.
"""

import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from config.logging_config import LogFormat, LoggingConfig
from src.core.models import DEFAULT_SYMBOLS, BotConfig, ScheduleConfig
from src.data.alpaca_broker import AlpacaConfig
from src.data.broker import OptionType


class LogLevel(str, Enum):
    """Logging level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class AlpacaSettings(BaseModel):
    """Alpaca broker API configuration settings."""

    api_key: SecretStr = Field(default=SecretStr(""), description="Alpaca API key")
    api_secret: SecretStr = Field(default=SecretStr(""), description="Alpaca API secret")
    base_url: str = Field(
        default="https://paper-api.alpaca.markets",
        description="Alpaca trading API URL"
    )
    data_url: str = Field(
        default="https://data.alpaca.markets",
        description="Alpaca market data URL"
    )
    max_retries: int = Field(default=3, ge=1, le=10, description="Max API attempts")
    retry_delay: float = Field(default=1.0, ge=0.0, le=30.0, description="Retry delay seconds")
    timeout: float = Field(default=30.0, ge=1.0, le=120.0, description="API timeout seconds")

    @property
    def is_configured(self) -> bool:
        """Check if Alpaca credentials are configured."""
        return bool(self.api_key.get_secret_value() and self.api_secret.get_secret_value())


class SchedulerSettings(BaseModel):
    """Polling schedule settings."""

    interval_ms: int = Field(default=30000, gt=0, description="Cycle interval in milliseconds")
    start_time: str = Field(default="09:30", description="Regular session open (HH:MM)")
    end_time: str = Field(default="16:00", description="Regular session close (HH:MM)")
    timezone: str = Field(default="America/New_York", description="Market timezone")
    trading_days: List[int] = Field(
        default_factory=lambda: [1, 2, 3, 4, 5],
        description="Trading weekdays, 0 = Sunday"
    )
    pre_market_start: str = Field(default="04:00", description="Pre-market open (HH:MM)")
    after_hours_end: str = Field(default="20:00", description="After-hours close (HH:MM)")


class BotSettings(BaseModel):
    """Trading policy settings."""

    symbols: List[str] = Field(default_factory=lambda: list(DEFAULT_SYMBOLS))
    max_positions: int = Field(default=10, ge=1)
    risk_percentage: float = Field(default=0.02, ge=0.0, le=1.0)
    max_position_size: float = Field(default=1000.0, gt=0)
    use_consensus: bool = Field(default=True)
    dry_run: bool = Field(default=False)
    enable_logging: bool = Field(default=True)
    use_options: bool = Field(default=True)
    option_type: OptionType = Field(default=OptionType.CALL)
    max_strike_price: Optional[float] = Field(default=None)
    min_volume: int = Field(default=10, ge=0)
    expiration_days: int = Field(default=30, ge=1)
    history_limit: int = Field(default=50, ge=0, le=1000)


class LoggingSettings(BaseModel):
    """Logging output settings."""

    level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    format: LogFormat = Field(default=LogFormat.SIMPLE, description="Console format")
    log_file: Optional[Path] = Field(default=None, description="Optional log file")
    colorize_console: bool = Field(default=True, description="Colorize console output")


class Settings(BaseSettings):
    """
    Main application settings.

    Nested groups are set with ``OPTIONS_BOT_<GROUP>__<FIELD>``, e.g.
    ``OPTIONS_BOT_BOT__DRY_RUN=true``. The conventional ``ALPACA_API_KEY``,
    ``ALPACA_SECRET_KEY``, ``ALPACA_BASE_URL``, ``ALPACA_DATA_URL`` and
    ``BOT_INTERVAL_MS`` variables are honoured when the prefixed ones are unset.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="OPTIONS_BOT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore"
    )

    app_name: str = Field(default="Options Trading Bot", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")

    alpaca: AlpacaSettings = Field(default_factory=AlpacaSettings, description="Alpaca settings")
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings, description="Scheduler settings")
    bot: BotSettings = Field(default_factory=BotSettings, description="Trading policy settings")
    logging: LoggingSettings = Field(default_factory=LoggingSettings, description="Logging settings")

    @model_validator(mode='after')
    def apply_conventional_env(self) -> 'Settings':
        """Fill unset values from the unprefixed Alpaca and interval variables."""
        if not self.alpaca.api_key.get_secret_value() and os.getenv("ALPACA_API_KEY"):
            self.alpaca.api_key = SecretStr(os.environ["ALPACA_API_KEY"])
        if not self.alpaca.api_secret.get_secret_value() and os.getenv("ALPACA_SECRET_KEY"):
            self.alpaca.api_secret = SecretStr(os.environ["ALPACA_SECRET_KEY"])
        if "base_url" not in self.alpaca.model_fields_set and os.getenv("ALPACA_BASE_URL"):
            self.alpaca.base_url = os.environ["ALPACA_BASE_URL"]
        if "data_url" not in self.alpaca.model_fields_set and os.getenv("ALPACA_DATA_URL"):
            self.alpaca.data_url = os.environ["ALPACA_DATA_URL"]
        if "interval_ms" not in self.scheduler.model_fields_set and os.getenv("BOT_INTERVAL_MS"):
            self.scheduler.interval_ms = int(os.environ["BOT_INTERVAL_MS"])
        return self

    def to_alpaca_config(self) -> AlpacaConfig:
        """Brokerage settings with the secrets unwrapped."""
        return AlpacaConfig(
            api_key=self.alpaca.api_key.get_secret_value(),
            api_secret=self.alpaca.api_secret.get_secret_value(),
            base_url=self.alpaca.base_url,
            data_url=self.alpaca.data_url,
            max_retries=self.alpaca.max_retries,
            retry_delay=self.alpaca.retry_delay,
            timeout_seconds=self.alpaca.timeout,
        )

    def to_bot_config(self) -> BotConfig:
        """Trading policy as the core config model."""
        return BotConfig.model_validate(self.bot.model_dump())

    def to_schedule_config(self) -> ScheduleConfig:
        """Polling policy as the core config model."""
        return ScheduleConfig.model_validate(self.scheduler.model_dump())

    def to_logging_config(self) -> LoggingConfig:
        """Logging settings as the logging config model."""
        return LoggingConfig(
            level=self.logging.level.value,
            format=self.logging.format,
            log_file=self.logging.log_file,
            colorize_console=self.logging.colorize_console,
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Singleton Settings instance
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Reload settings, clearing the cache.

    Returns:
        New Settings instance
    """
    get_settings.cache_clear()
    return get_settings()
