"""
Strategies Package for Options Trading Bot.

This package provides the trading rules, the strategy registry and the
signal aggregation policies.
"""

from src.strategies.base_strategy import (
    SignalAction,
    StrategyConfig,
    StrategyFunction,
    StrategySignal,
)
from src.strategies.signal_aggregator import aggregate, select_best, select_consensus
from src.strategies.strategy_manager import RegisteredStrategy, StrategyManager


__all__ = [
    "SignalAction",
    "StrategyConfig",
    "StrategyFunction",
    "StrategySignal",
    "aggregate",
    "select_best",
    "select_consensus",
    "RegisteredStrategy",
    "StrategyManager",
]
