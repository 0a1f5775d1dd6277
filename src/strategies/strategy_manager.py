"""
Strategy Manager Module for Options Trading Bot.

This module provides the strategy registry: named rule functions with their
own mutable configuration, evaluated against a market snapshot to produce
the qualifying signals for a symbol.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Optional

from src.core.models import MarketSnapshot
from src.strategies.base_strategy import StrategyConfig, StrategyFunction, StrategySignal
from src.strategies import options_strategy, random_strategy, rsi_strategy, sma_crossover_strategy
from src.utils.helpers import merge_one_level


logger = logging.getLogger(__name__)


@dataclass
class RegisteredStrategy:
    """Rule function paired with its configuration."""

    name: str
    function: StrategyFunction
    config: StrategyConfig


class StrategyManager:
    """
    Registry of trading rules.

    Rules can be added, removed and reconfigured at any time; changes apply
    from the next evaluation.
    """

    def __init__(self, register_defaults: bool = True) -> None:
        """
        Initialize StrategyManager.

        Args:
            register_defaults: Register the built-in rules
        """
        self._strategies: dict[str, RegisteredStrategy] = {}
        self._evaluation_count = 0
        self._total_signals = 0

        if register_defaults:
            self.register_default_strategies()

        logger.info(f"StrategyManager initialized with {len(self._strategies)} strategies")

    def register_default_strategies(self) -> None:
        """Register the built-in crossover, RSI, random and options rules."""
        self.add_strategy(
            sma_crossover_strategy.NAME,
            sma_crossover_strategy.sma_crossover_strategy,
            sma_crossover_strategy.default_config(),
        )
        self.add_strategy(
            rsi_strategy.NAME,
            rsi_strategy.rsi_strategy,
            rsi_strategy.default_config(),
        )
        self.add_strategy(
            random_strategy.NAME,
            random_strategy.make_random_strategy(),
            random_strategy.default_config(),
        )
        self.add_strategy(
            options_strategy.MOMENTUM_NAME,
            options_strategy.options_momentum_strategy,
            options_strategy.momentum_config(),
        )
        self.add_strategy(
            options_strategy.VOLATILITY_NAME,
            options_strategy.options_volatility_strategy,
            options_strategy.volatility_config(),
        )

    def add_strategy(
        self,
        name: str,
        function: StrategyFunction,
        config: Optional[StrategyConfig] = None,
    ) -> None:
        """
        Add or replace a rule.

        Args:
            name: Unique rule name
            function: Rule function
            config: Rule configuration
        """
        config = config or StrategyConfig(name=name)
        self._strategies[name] = RegisteredStrategy(name=name, function=function, config=config)
        logger.info(f"Strategy added: {name}")

    def remove_strategy(self, name: str) -> bool:
        """
        Remove a rule.

        Args:
            name: Rule name

        Returns:
            True if removed
        """
        if name not in self._strategies:
            return False

        del self._strategies[name]
        logger.info(f"Strategy removed: {name}")
        return True

    def get_strategy(self, name: str) -> Optional[RegisteredStrategy]:
        """Get a registered rule by name."""
        return self._strategies.get(name)

    def get_enabled_strategies(self) -> list[RegisteredStrategy]:
        """Rules whose configuration is enabled."""
        return [s for s in self._strategies.values() if s.config.enabled]

    def list_strategies(self) -> list[dict]:
        """List all registered rules with their configuration."""
        return [
            {
                "name": s.name,
                "enabled": s.config.enabled,
                "config": s.config.model_dump(),
            }
            for s in self._strategies.values()
        ]

    def update_strategy_config(self, name: str, partial: dict[str, Any]) -> Optional[StrategyConfig]:
        """
        Update a rule's configuration.

        Top-level fields are overwritten; ``parameters`` is merged key by key
        one level deep.

        Args:
            name: Rule name
            partial: Field updates

        Returns:
            Updated configuration, or None for an unknown rule
        """
        strategy = self._strategies.get(name)
        if strategy is None:
            logger.warning(f"Cannot update unknown strategy: {name}")
            return None

        merged = merge_one_level(strategy.config.model_dump(), partial)
        strategy.config = StrategyConfig.model_validate(merged)
        logger.info(f"Strategy configuration updated: {name}")
        return strategy.config

    async def analyze_symbol(self, symbol: str, snapshot: MarketSnapshot) -> list[StrategySignal]:
        """
        Evaluate every enabled rule against a snapshot.

        Signals below the rule's minimum confidence are dropped. Kept signals
        are tagged with ``metadata["strategy_name"]``. A failing rule is logged
        and skipped.

        Args:
            symbol: Trading symbol
            snapshot: Market snapshot

        Returns:
            Qualifying signals in registry order
        """
        self._evaluation_count += 1
        signals: list[StrategySignal] = []

        for strategy in self.get_enabled_strategies():
            signal = await self._evaluate_strategy(strategy, snapshot)
            if signal is None:
                continue

            logger.debug(
                f"Strategy {strategy.name} on {symbol}: {signal.action.value} "
                f"({signal.confidence:.2f}) {signal.reason}"
            )

            if signal.confidence >= strategy.config.min_confidence:
                signals.append(
                    signal.model_copy(
                        update={"metadata": {**signal.metadata, "strategy_name": strategy.name}}
                    )
                )

        self._total_signals += len(signals)
        return signals

    async def _evaluate_strategy(
        self,
        strategy: RegisteredStrategy,
        snapshot: MarketSnapshot,
    ) -> Optional[StrategySignal]:
        """Run one rule, returning None when it raises or returns something other than a signal."""
        try:
            result = strategy.function(snapshot, strategy.config)
            if inspect.isawaitable(result):
                result = await result
            if result is not None and not isinstance(result, StrategySignal):
                raise TypeError(f"expected StrategySignal, got {type(result).__name__}")
            return result
        except Exception as e:
            logger.error(f"Strategy analysis failed for {strategy.name} on {snapshot.symbol}: {e}")
            return None

    def get_statistics(self) -> dict:
        """Get manager statistics."""
        return {
            "total_strategies": len(self._strategies),
            "enabled_strategies": len(self.get_enabled_strategies()),
            "evaluation_count": self._evaluation_count,
            "total_signals": self._total_signals,
        }

    def __len__(self) -> int:
        return len(self._strategies)

    def __repr__(self) -> str:
        """String representation."""
        return f"StrategyManager(strategies={len(self._strategies)})"
