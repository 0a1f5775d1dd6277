"""
SMA Crossover Strategy Module for Options Trading Bot.

Buys when the short simple moving average is above the long one and price
is above the short average with nothing held; sells on the reverse while
holding a position.
"""

import logging

from src.core.models import MarketSnapshot
from src.strategies.base_strategy import (
    SignalAction,
    StrategyConfig,
    StrategySignal,
    calculate_position_size,
    calculate_sma,
)


logger = logging.getLogger(__name__)

NAME = "SMA Strategy"
MAX_CONFIDENCE = 0.8
GAP_SCALE = 10.0


def default_config() -> StrategyConfig:
    """Registered configuration of the crossover rule."""
    return StrategyConfig(
        name=NAME,
        parameters={"short_period": 10, "long_period": 20},
    )


def sma_crossover_strategy(snapshot: MarketSnapshot, config: StrategyConfig) -> StrategySignal:
    """
    Evaluate the dual moving-average crossover.

    Confidence is ten times the relative gap between the averages, capped
    at 0.8.

    Args:
        snapshot: Market snapshot
        config: Rule configuration

    Returns:
        Strategy signal
    """
    short_period = int(config.param("short_period", 10))
    long_period = int(config.param("long_period", 20))
    prices = snapshot.price_history or ()
    needed = max(short_period, long_period)

    if len(prices) < needed:
        return StrategySignal.hold(
            f"Need at least {needed} data points for SMA analysis"
        )

    short_sma = calculate_sma(prices[-short_period:])
    long_sma = calculate_sma(prices[-long_period:])
    price = snapshot.current_price
    has_position = snapshot.has_position

    metadata = {
        "short_sma": short_sma,
        "long_sma": long_sma,
        "current_price": price,
        "has_position": has_position,
    }

    if short_sma > long_sma and price > short_sma and not has_position:
        return StrategySignal(
            action=SignalAction.BUY,
            confidence=min(MAX_CONFIDENCE, (short_sma - long_sma) / long_sma * GAP_SCALE),
            reason=f"Golden cross: Short SMA ({short_sma:.2f}) > Long SMA ({long_sma:.2f})",
            quantity=calculate_position_size(price, config.max_position_size),
            metadata=metadata,
        )

    if short_sma < long_sma and price < short_sma and has_position:
        return StrategySignal(
            action=SignalAction.SELL,
            confidence=min(MAX_CONFIDENCE, (long_sma - short_sma) / long_sma * GAP_SCALE),
            reason=f"Death cross: Short SMA ({short_sma:.2f}) < Long SMA ({long_sma:.2f})",
            quantity=snapshot.position.qty,
            metadata=metadata,
        )

    return StrategySignal(
        action=SignalAction.HOLD,
        reason=f"No clear signal: Short SMA ({short_sma:.2f}), Long SMA ({long_sma:.2f})",
        metadata=metadata,
    )
