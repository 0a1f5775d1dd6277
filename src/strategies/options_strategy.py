"""
Options Strategy Module for Options Trading Bot.

This module provides the two option-chain rules: a momentum rule that buys
the most liquid near-the-money call, and an open-interest rule that buys a
near-the-money call when the whole chain is actively traded.
"""

import logging

from src.core.models import MarketSnapshot
from src.data.broker import OptionType
from src.data.option_chain import liquid_contracts, most_open_interest, strike_between
from src.strategies.base_strategy import SignalAction, StrategyConfig, StrategySignal


logger = logging.getLogger(__name__)

MOMENTUM_NAME = "Options Momentum Strategy"
VOLATILITY_NAME = "Options Volatility Strategy"


def momentum_config() -> StrategyConfig:
    """Registered configuration of the momentum rule."""
    return StrategyConfig(
        name=MOMENTUM_NAME,
        min_confidence=0.4,
        parameters={
            "min_open_interest": 10,
            "lower_strike_ratio": 0.95,
            "upper_strike_ratio": 1.10,
            "open_interest_scale": 1000,
        },
    )


def volatility_config() -> StrategyConfig:
    """Registered configuration of the open-interest rule."""
    return StrategyConfig(
        name=VOLATILITY_NAME,
        min_confidence=0.5,
        parameters={
            "min_open_interest": 5,
            "open_interest_threshold": 100,
            "lower_strike_ratio": 0.98,
            "upper_strike_ratio": 1.05,
        },
    )


def options_momentum_strategy(snapshot: MarketSnapshot, config: StrategyConfig) -> StrategySignal:
    """
    Buy one contract of the most liquid near-the-money call.

    Confidence blends normalized open interest (70%) with positive
    moneyness (30%), capped at 0.8.

    Args:
        snapshot: Market snapshot
        config: Rule configuration

    Returns:
        Strategy signal
    """
    if not snapshot.option_chain:
        return StrategySignal.hold("No options chain available for analysis")

    price = snapshot.current_price
    calls = strike_between(
        liquid_contracts(
            snapshot.option_chain,
            int(config.param("min_open_interest", 10)),
            OptionType.CALL,
        ),
        price * float(config.param("lower_strike_ratio", 0.95)),
        price * float(config.param("upper_strike_ratio", 1.10)),
    )

    best = most_open_interest(calls)
    if best is None:
        return StrategySignal.hold("No suitable call options found")

    moneyness = (price - best.strike_price) / price
    oi_score = min(1.0, best.open_interest / float(config.param("open_interest_scale", 1000)))
    confidence = min(0.8, oi_score * 0.7 + max(0.0, moneyness * 0.3))

    return StrategySignal(
        action=SignalAction.BUY,
        confidence=confidence,
        reason=f"Options momentum: High volume call option with {moneyness * 100:.1f}% moneyness",
        quantity=1,
        metadata={
            "option_symbol": best.symbol,
            "strike_price": best.strike_price,
            "expiration_date": best.expiration_date,
            "open_interest": best.open_interest,
            "moneyness": moneyness,
        },
    )


def options_volatility_strategy(snapshot: MarketSnapshot, config: StrategyConfig) -> StrategySignal:
    """
    Buy a near-the-money call when average open interest is high.

    Args:
        snapshot: Market snapshot
        config: Rule configuration

    Returns:
        Strategy signal
    """
    if not snapshot.option_chain:
        return StrategySignal.hold("No options chain available for volatility analysis")

    active = liquid_contracts(snapshot.option_chain, int(config.param("min_open_interest", 5)))
    if not active:
        return StrategySignal.hold("No options with sufficient open interest found")

    avg_oi = sum(c.open_interest for c in active) / len(active)
    threshold = float(config.param("open_interest_threshold", 100))

    if avg_oi > threshold:
        price = snapshot.current_price
        calls = strike_between(
            [c for c in active if c.type == OptionType.CALL],
            price * float(config.param("lower_strike_ratio", 0.98)),
            price * float(config.param("upper_strike_ratio", 1.05)),
        )
        best = most_open_interest(calls)
        if best is not None:
            return StrategySignal(
                action=SignalAction.BUY,
                confidence=min(0.9, (avg_oi - threshold) / 1000),
                reason=f"High OI play: Average OI {avg_oi:.0f} suggests active trading",
                quantity=1,
                metadata={
                    "option_symbol": best.symbol,
                    "strike_price": best.strike_price,
                    "expiration_date": best.expiration_date,
                    "open_interest": best.open_interest,
                    "avg_open_interest": avg_oi,
                },
            )

    return StrategySignal.hold(f"Low OI environment: Average OI {avg_oi:.0f}", avg_open_interest=avg_oi)
