"""
Random Strategy Module for Options Trading Bot.

Low-confidence random signals used to exercise the pipeline end to end.
"""

import logging
import random
from typing import Callable, Optional

from src.core.models import MarketSnapshot
from src.strategies.base_strategy import (
    SignalAction,
    StrategyConfig,
    StrategySignal,
    StrategyFunction,
)


logger = logging.getLogger(__name__)

NAME = "Random Strategy"
SIGNAL_CONFIDENCE = 0.3


def default_config() -> StrategyConfig:
    """Registered configuration of the random rule."""
    return StrategyConfig(name=NAME, min_confidence=0.2)


def make_random_strategy(draw: Optional[Callable[[], float]] = None) -> StrategyFunction:
    """
    Build the random rule around a number source in [0, 1).

    Args:
        draw: Number source, ``random.random`` by default

    Returns:
        Rule function
    """
    draw = draw or random.random

    def random_strategy(snapshot: MarketSnapshot, config: StrategyConfig) -> StrategySignal:
        value = draw()
        has_position = snapshot.has_position

        if value < 0.1 and not has_position:
            return StrategySignal(
                action=SignalAction.BUY,
                confidence=SIGNAL_CONFIDENCE,
                reason="Random buy signal",
                quantity=1,
                metadata={"random": value},
            )
        if value > 0.9 and has_position:
            return StrategySignal(
                action=SignalAction.SELL,
                confidence=SIGNAL_CONFIDENCE,
                reason="Random sell signal",
                quantity=snapshot.position.qty,
                metadata={"random": value},
            )
        return StrategySignal.hold("Random hold signal", random=value)

    return random_strategy
