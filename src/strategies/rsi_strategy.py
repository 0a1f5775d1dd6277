"""
RSI Strategy Module for Options Trading Bot.

Buys an oversold symbol that is not held and sells an overbought symbol
that is held.
"""

import logging

from src.core.models import MarketSnapshot
from src.strategies.base_strategy import (
    SignalAction,
    StrategyConfig,
    StrategySignal,
    calculate_position_size,
    calculate_rsi,
)


logger = logging.getLogger(__name__)

NAME = "RSI Strategy"
MAX_CONFIDENCE = 0.9


def default_config() -> StrategyConfig:
    """Registered configuration of the RSI rule."""
    return StrategyConfig(
        name=NAME,
        parameters={"period": 14, "oversold_threshold": 30, "overbought_threshold": 70},
    )


def rsi_strategy(snapshot: MarketSnapshot, config: StrategyConfig) -> StrategySignal:
    """
    Evaluate the RSI threshold rule.

    Args:
        snapshot: Market snapshot
        config: Rule configuration

    Returns:
        Strategy signal
    """
    period = int(config.param("period", 14))
    oversold = float(config.param("oversold_threshold", 30))
    overbought = float(config.param("overbought_threshold", 70))
    prices = snapshot.price_history or ()

    if len(prices) < period + 1:
        return StrategySignal.hold(
            f"Need at least {period + 1} data points for RSI analysis"
        )

    rsi = calculate_rsi(prices, period)
    has_position = snapshot.has_position
    metadata = {
        "rsi": rsi,
        "current_price": snapshot.current_price,
        "has_position": has_position,
    }

    if rsi < oversold and not has_position:
        return StrategySignal(
            action=SignalAction.BUY,
            confidence=min(MAX_CONFIDENCE, (oversold - rsi) / oversold),
            reason=f"RSI oversold: {rsi:.2f} < {oversold:g}",
            quantity=calculate_position_size(snapshot.current_price, config.max_position_size),
            metadata=metadata,
        )

    if rsi > overbought and has_position:
        return StrategySignal(
            action=SignalAction.SELL,
            confidence=min(MAX_CONFIDENCE, (rsi - overbought) / (100 - overbought)),
            reason=f"RSI overbought: {rsi:.2f} > {overbought:g}",
            quantity=snapshot.position.qty,
            metadata=metadata,
        )

    return StrategySignal(
        action=SignalAction.HOLD,
        reason=f"RSI neutral: {rsi:.2f} ({oversold:g}-{overbought:g})",
        metadata=metadata,
    )
