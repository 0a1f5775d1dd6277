"""
Core Models Module for Options Trading Bot.

This module defines the run-time configuration, scheduler status, market
snapshot and trade outcome models shared across the bot.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.data.broker import OptionContract, OptionType, OrderSide, Position, Quote


logger = logging.getLogger(__name__)

HHMM_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")

DEFAULT_SYMBOLS = ["AAPL", "MSFT", "GOOGL", "TSLA", "AMZN"]


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class BotConfig(BaseModel):
    """Run-time trading policy."""

    symbols: list[str] = Field(default_factory=lambda: list(DEFAULT_SYMBOLS))
    max_positions: int = Field(default=10, ge=1)
    risk_percentage: float = Field(default=0.02, ge=0.0, le=1.0)
    max_position_size: float = Field(default=1000.0, gt=0)
    use_consensus: bool = Field(default=True)
    dry_run: bool = Field(default=False)
    enable_logging: bool = Field(default=True)

    use_options: bool = Field(default=True)
    option_type: OptionType = Field(default=OptionType.CALL)
    max_strike_price: Optional[float] = Field(default=None, gt=0)
    min_volume: int = Field(default=10, ge=0)
    expiration_days: int = Field(default=30, ge=1)

    history_limit: int = Field(default=50, ge=0, le=1000)

    @field_validator("symbols")
    @classmethod
    def validate_symbols(cls, v: list[str]) -> list[str]:
        """Uppercase and de-duplicate symbols, keeping order."""
        seen: list[str] = []
        for symbol in v:
            cleaned = symbol.upper().strip()
            if cleaned and cleaned not in seen:
                seen.append(cleaned)
        return seen

    def merged(self, partial: dict[str, Any]) -> "BotConfig":
        """
        Return a new config with top-level fields of ``partial`` overwritten.

        Args:
            partial: Field updates

        Returns:
            Validated config
        """
        return BotConfig.model_validate({**self.model_dump(), **partial})


class ScheduleConfig(BaseModel):
    """Polling and trading-window policy."""

    interval_ms: int = Field(default=30000, gt=0)
    start_time: str = Field(default="09:30")
    end_time: str = Field(default="16:00")
    timezone: str = Field(default="America/New_York")
    trading_days: list[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5])
    pre_market_start: str = Field(default="04:00")
    after_hours_end: str = Field(default="20:00")

    @field_validator("start_time", "end_time", "pre_market_start", "after_hours_end")
    @classmethod
    def validate_hhmm(cls, v: str) -> str:
        """Validate HH:MM formatting."""
        if not HHMM_PATTERN.match(v.strip()):
            raise ValueError(f"Expected HH:MM time, got {v!r}")
        return v.strip()

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate the timezone name."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone {v!r}") from e
        return v

    @field_validator("trading_days")
    @classmethod
    def validate_trading_days(cls, v: list[int]) -> list[int]:
        """Weekdays use 0 for Sunday through 6 for Saturday."""
        for day in v:
            if not 0 <= day <= 6:
                raise ValueError(f"Trading day out of range 0-6: {day}")
        return sorted(set(v))

    @property
    def tz(self) -> ZoneInfo:
        """Configured timezone."""
        return ZoneInfo(self.timezone)

    @property
    def interval_seconds(self) -> float:
        """Interval in seconds."""
        return self.interval_ms / 1000

    def merged(self, partial: dict[str, Any]) -> "ScheduleConfig":
        """Return a new config with top-level fields of ``partial`` overwritten."""
        return ScheduleConfig.model_validate({**self.model_dump(), **partial})


class RunStatus(BaseModel):
    """Scheduler health counters."""

    is_running: bool = Field(default=False)
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    start_time: Optional[datetime] = None
    total_runs: int = Field(default=0)
    errors: int = Field(default=0)
    last_error: Optional[str] = None
    is_market_open: bool = Field(default=False)


class SessionCountdown(BaseModel):
    """Time remaining until the next trading session opens."""

    hours: int = Field(default=0, ge=0)
    minutes: int = Field(default=0, ge=0, le=59)
    seconds: int = Field(default=0, ge=0, le=59)

    @classmethod
    def from_seconds(cls, total: float) -> "SessionCountdown":
        """Split a number of seconds into hours, minutes and seconds."""
        total_seconds = max(0, int(total))
        hours, remainder = divmod(total_seconds, 3600)
        minutes, seconds = divmod(remainder, 60)
        return cls(hours=hours, minutes=minutes, seconds=seconds)

    @property
    def total_seconds(self) -> int:
        """Countdown as seconds."""
        return self.hours * 3600 + self.minutes * 60 + self.seconds


class MarketSnapshot(BaseModel):
    """Immutable per-symbol market view handed to every strategy."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    current_price: float
    volume: int = Field(default=0)
    timestamp: datetime = Field(default_factory=_now_utc)
    quote: Quote
    position: Optional[Position] = None
    price_history: Optional[tuple[float, ...]] = None
    option_chain: Optional[tuple[OptionContract, ...]] = None

    @property
    def has_position(self) -> bool:
        """Whether a non-zero position is held."""
        return self.position is not None and self.position.is_open


class TradeOutcome(BaseModel):
    """Result of one trade attempt."""

    success: bool
    symbol: str
    action: OrderSide
    contract_symbol: Optional[str] = None
    quantity: float = Field(default=0.0)
    price: Optional[float] = None
    price_pending: bool = Field(default=False)
    order_id: Optional[str] = None
    reason: str = Field(default="")
    strategy_name: Optional[str] = None
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=_now_utc)

    @model_validator(mode="after")
    def validate_price(self) -> "TradeOutcome":
        """A successful outcome carries a price or is marked as filling later."""
        if self.success and self.price is None and not self.price_pending:
            raise ValueError("Successful trade outcome needs a price or price_pending")
        return self
