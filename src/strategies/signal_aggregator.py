"""
Signal Aggregator Module for Options Trading Bot.

This module reduces the qualifying signals for a symbol to one decision,
either by highest confidence or by majority vote.
"""

import logging
from typing import Optional

from src.strategies.base_strategy import SignalAction, StrategySignal


logger = logging.getLogger(__name__)

# Majority ties resolve in this order.
CONSENSUS_PRIORITY = (SignalAction.BUY, SignalAction.SELL, SignalAction.HOLD)


def select_best(signals: list[StrategySignal]) -> Optional[StrategySignal]:
    """
    Signal with the strictly highest confidence; the earliest wins ties.

    Args:
        signals: Qualifying signals in evaluation order

    Returns:
        Winning signal or None for an empty list
    """
    if not signals:
        return None

    best = signals[0]
    for signal in signals[1:]:
        if signal.confidence > best.confidence:
            best = signal
    return best


def select_consensus(signals: list[StrategySignal]) -> Optional[StrategySignal]:
    """
    Majority vote over signal actions.

    The largest group wins with ties broken buy, then sell, then hold. The
    decision carries the group's mean confidence. Only a buy decision carries
    a quantity, taken from the first buy signal.

    Args:
        signals: Qualifying signals in evaluation order

    Returns:
        Consensus signal or None for an empty list
    """
    if not signals:
        return None

    groups: dict[SignalAction, list[StrategySignal]] = {
        action: [s for s in signals if s.action == action]
        for action in CONSENSUS_PRIORITY
    }
    largest = max(len(group) for group in groups.values())

    winner = SignalAction.HOLD
    for action in CONSENSUS_PRIORITY[:-1]:
        if groups[action] and len(groups[action]) == largest:
            winner = action
            break

    group = groups[winner]
    confidence = sum(s.confidence for s in group) / max(len(group), 1)

    return StrategySignal(
        action=winner,
        confidence=confidence,
        reason=f"Consensus {winner.value} ({len(group)}/{len(signals)} strategies)",
        quantity=group[0].quantity if winner == SignalAction.BUY and group else None,
        metadata={
            "consensus": True,
            "total_strategies": len(signals),
            "strategies": [s.strategy_name for s in group if s.strategy_name],
        },
    )


def aggregate(signals: list[StrategySignal], use_consensus: bool) -> Optional[StrategySignal]:
    """Apply the configured aggregation policy."""
    return select_consensus(signals) if use_consensus else select_best(signals)
