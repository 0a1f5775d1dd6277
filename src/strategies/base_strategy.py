"""
Base Strategy Module for Options Trading Bot.

This module provides the signal and configuration models shared by every
trading rule, the rule function signature, and the indicator helpers the
rules are built from.
"""

import logging
import math
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

from pydantic import BaseModel, Field

from src.core.models import MarketSnapshot


logger = logging.getLogger(__name__)


class SignalAction(str, Enum):
    """Signal action enumeration."""

    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


class StrategySignal(BaseModel):
    """Trading signal produced by one rule."""

    action: SignalAction
    confidence: float = Field(ge=0.0, le=1.0, default=0.0)
    reason: str = Field(default="")
    quantity: Optional[float] = None
    price: Optional[float] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def strategy_name(self) -> Optional[str]:
        """Name of the rule that produced the signal, once tagged."""
        return self.metadata.get("strategy_name")

    @classmethod
    def hold(cls, reason: str, **metadata: Any) -> "StrategySignal":
        """Zero-confidence hold signal."""
        return cls(action=SignalAction.HOLD, confidence=0.0, reason=reason, metadata=metadata)


class StrategyConfig(BaseModel):
    """Per-rule configuration."""

    name: str = Field(default="default")
    enabled: bool = Field(default=True)
    risk_percentage: float = Field(default=0.02, ge=0.0, le=1.0)
    max_position_size: float = Field(default=1000.0, gt=0)
    min_confidence: float = Field(default=0.6, ge=0.0, le=1.0)
    parameters: dict[str, Any] = Field(default_factory=dict)

    def param(self, key: str, default: Any) -> Any:
        """Parameter value, falling back to ``default`` when unset."""
        value = self.parameters.get(key)
        return default if value is None else value


StrategyFunction = Callable[
    [MarketSnapshot, StrategyConfig],
    Union[StrategySignal, Awaitable[StrategySignal]],
]


def calculate_sma(prices: Sequence[float]) -> float:
    """
    Simple moving average.

    Args:
        prices: Price window

    Returns:
        Arithmetic mean of the window
    """
    return sum(prices) / len(prices)


def calculate_rsi(prices: Sequence[float], period: int) -> float:
    """
    Relative strength index over the most recent ``period`` changes.

    RSI = 100 - (100 / (1 + RS)) with RS = average gain / average loss.
    A window without losses yields 100.

    Args:
        prices: Price history, oldest first
        period: Number of price changes to average

    Returns:
        RSI between 0 and 100, or 50 with too little data
    """
    if len(prices) < period + 1:
        return 50.0

    window = list(prices[-(period + 1):])
    gains = 0.0
    losses = 0.0
    for previous, current in zip(window, window[1:]):
        change = current - previous
        if change > 0:
            gains += change
        else:
            losses += -change

    avg_gain = gains / period
    avg_loss = losses / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def calculate_position_size(price: float, max_value: float) -> int:
    """Whole shares affordable within ``max_value`` at ``price``."""
    if price <= 0:
        return 0
    return int(math.floor(max_value / price))
