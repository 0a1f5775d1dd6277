"""
Trading Bot Module for Options Trading Bot.

This module provides the bot service object: it owns the run-time
configuration, strategy registry, metrics, execution pipeline and
scheduler, and exposes the control surface used by callers such as an
HTTP layer or the command-line runner.
"""

import logging
from typing import Any, Optional

from config.logging_config import TradeLogger, get_trade_logger
from src.core.clock import Clock, SystemClock
from src.core.models import BotConfig, ScheduleConfig, TradeOutcome
from src.core.scheduler import Scheduler
from src.data.broker import BrokerPort, Position
from src.data.market_data import MarketDataAssembler
from src.execution.trade_executor import TradeExecutor
from src.monitoring.metrics import RunMetrics
from src.strategies.base_strategy import SignalAction, StrategyConfig, StrategySignal
from src.strategies.signal_aggregator import aggregate
from src.strategies.strategy_manager import StrategyManager
from src.utils.exceptions import APIAuthenticationError, ConfigurationError


logger = logging.getLogger(__name__)

MANUAL_STRATEGY = "manual"


class TradingBot:
    """
    Options trading bot service.

    One instance holds all mutable state; collaborators (broker, clock,
    strategy registry) are injected. Only one trading cycle runs at a time;
    a cycle requested while another is in flight is skipped. Manual buy and
    sell requests are not serialized against cycles.
    """

    def __init__(
        self,
        broker: BrokerPort,
        clock: Optional[Clock] = None,
        bot_config: Optional[BotConfig] = None,
        schedule_config: Optional[ScheduleConfig] = None,
        strategy_manager: Optional[StrategyManager] = None,
        trade_logger: Optional[TradeLogger] = None,
    ) -> None:
        """
        Initialize TradingBot.

        Args:
            broker: Brokerage port
            clock: Time source
            bot_config: Trading policy
            schedule_config: Polling policy
            strategy_manager: Strategy registry, defaults to the built-in rules
            trade_logger: Trade event logger
        """
        self._broker = broker
        self._clock = clock or SystemClock()
        self._config = bot_config or BotConfig()
        self._strategies = strategy_manager or StrategyManager()
        self._trade_logger = trade_logger or get_trade_logger()

        self._metrics = RunMetrics()
        self._assembler = MarketDataAssembler(broker, self._clock)
        self._executor = TradeExecutor(broker, self._clock, self._trade_logger)
        self._scheduler = Scheduler(self.run_cycle_once, broker, self._clock, schedule_config)

        self._initialized = False
        self._cycle_in_flight = False

        logger.info(f"Trading bot created: symbols={self._config.symbols}")

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_running(self) -> bool:
        """Check if the scheduler is running."""
        return self._scheduler.is_running

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    @property
    def strategies(self) -> StrategyManager:
        return self._strategies

    @property
    def metrics(self) -> RunMetrics:
        return self._metrics

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def initialize(self) -> None:
        """
        Verify the brokerage connection.

        Raises:
            ConfigurationError: If the brokerage rejects the credentials
            ExternalServiceError: If the brokerage cannot be reached
        """
        if self._initialized:
            logger.warning("Bot is already initialized")
            return

        try:
            account = await self._broker.get_account()
        except APIAuthenticationError as e:
            logger.error(f"Failed to initialize trading bot: {e}")
            raise ConfigurationError(
                "Brokerage rejected the configured credentials", cause=e
            ) from e

        self._initialized = True
        logger.info(f"Brokerage connection verified: account={account.id} status={account.status}")

    async def start(self) -> None:
        """Initialize if needed and start the scheduler."""
        if not self._initialized:
            await self.initialize()

        if self._scheduler.is_running:
            logger.warning("Bot is already running")
            return

        await self._scheduler.start()
        self._trade_logger.bot_status("Bot started successfully", symbols=self._config.symbols)

    async def stop(self) -> None:
        """Stop the scheduler; an in-flight cycle finishes on its own."""
        await self._scheduler.stop()
        self._trade_logger.bot_status("Bot stopped")

    # =========================================================================
    # TRADING CYCLE
    # =========================================================================

    async def run_cycle_once(self) -> Optional[list[TradeOutcome]]:
        """
        Run one trading cycle over all configured symbols.

        Positions are fetched once; symbols are then processed in order and a
        failing symbol is logged and skipped.

        Returns:
            Outcomes of executed trades, or None when the cycle was skipped

        Raises:
            ExternalServiceError: If the positions cannot be fetched
        """
        if not self._initialized:
            logger.error("Bot not initialized")
            return None

        if self._cycle_in_flight:
            logger.warning("Trading cycle already in progress, skipping")
            return None

        self._cycle_in_flight = True
        try:
            symbols = list(self._config.symbols)
            logger.info(f"Starting trading cycle: symbols={symbols}")

            positions = await self._broker.get_positions()
            position_map = {p.symbol: p for p in positions}

            outcomes: list[TradeOutcome] = []
            for symbol in symbols:
                try:
                    outcome = await self._process_symbol(symbol, position_map.get(symbol))
                except Exception as e:
                    logger.error(f"Failed to process symbol {symbol}: {e}")
                    continue
                if outcome is not None:
                    outcomes.append(outcome)

            self._trade_logger.cycle_completed(len(symbols), self._metrics.total_trades)
            return outcomes
        finally:
            self._cycle_in_flight = False

    async def _process_symbol(
        self,
        symbol: str,
        position: Optional[Position],
    ) -> Optional[TradeOutcome]:
        """Snapshot, evaluate, aggregate and execute for one symbol."""
        config = self._config

        snapshot = await self._assembler.build_snapshot(symbol, position, config)
        signals = await self._strategies.analyze_symbol(symbol, snapshot)

        if not signals:
            logger.debug(f"No strategy decisions for {symbol}")
            return None

        decision = aggregate(signals, config.use_consensus)
        if decision is None:
            logger.debug(f"No final decision for {symbol}")
            return None

        if config.enable_logging:
            self._trade_logger.decision_made(
                symbol,
                decision.action.value,
                decision.confidence,
                decision.strategy_name,
                decision.reason,
            )

        if decision.action == SignalAction.HOLD:
            return None

        outcome = await self._executor.execute(symbol, decision, position, config)
        self._record(outcome, decision)
        return outcome

    def _record(self, outcome: TradeOutcome, decision: StrategySignal) -> None:
        """Credit the decision's rule, or every rule behind a consensus."""
        if decision.strategy_name:
            names = [decision.strategy_name]
        else:
            names = list(decision.metadata.get("strategies", []))
        self._metrics.record(outcome, names)

    # =========================================================================
    # MANUAL TRADES
    # =========================================================================

    async def buy(self, symbol: str, quantity: float, reason: str = "Manual buy") -> TradeOutcome:
        """
        Buy through the execution pipeline.

        Args:
            symbol: Trading symbol
            quantity: Shares to buy
            reason: Reason recorded on the outcome

        Returns:
            Trade outcome
        """
        return await self._manual_trade(symbol, SignalAction.BUY, quantity, reason)

    async def sell(self, symbol: str, quantity: float, reason: str = "Manual sell") -> TradeOutcome:
        """
        Sell through the execution pipeline.

        Args:
            symbol: Trading symbol
            quantity: Shares to sell
            reason: Reason recorded on the outcome

        Returns:
            Trade outcome
        """
        return await self._manual_trade(symbol, SignalAction.SELL, quantity, reason)

    async def _manual_trade(
        self,
        symbol: str,
        action: SignalAction,
        quantity: float,
        reason: str,
    ) -> TradeOutcome:
        symbol = symbol.upper().strip()
        decision = StrategySignal(
            action=action,
            confidence=1.0,
            reason=reason,
            quantity=quantity,
            metadata={"strategy_name": MANUAL_STRATEGY},
        )

        position = await self._broker.get_position(symbol)
        outcome = await self._executor.execute(symbol, decision, position, self._config)
        # Counted in the totals, but "manual" is not a rule.
        self._metrics.record(outcome)
        return outcome

    # =========================================================================
    # STATUS AND CONFIGURATION
    # =========================================================================

    def get_status(self) -> dict[str, Any]:
        """Scheduler status with metrics and configuration."""
        return {
            **self._scheduler.get_status().model_dump(),
            "metrics": self._metrics.to_dict(),
            "config": self._config.model_dump(),
            "schedule": self._scheduler.get_config().model_dump(),
        }

    def get_config(self) -> BotConfig:
        """Get a copy of the bot configuration."""
        return self._config.model_copy(deep=True)

    def update_config(self, partial: dict[str, Any]) -> BotConfig:
        """
        Overwrite top-level bot configuration fields.

        Args:
            partial: Field updates

        Returns:
            Updated configuration
        """
        self._config = self._config.merged(partial)
        logger.info(f"Bot configuration updated: {self._config.model_dump()}")
        return self._config

    def update_schedule_config(self, partial: dict[str, Any]) -> ScheduleConfig:
        """Overwrite top-level schedule configuration fields."""
        return self._scheduler.update_config(partial)

    def list_strategies(self) -> list[dict]:
        """List registered strategies with their configuration."""
        return self._strategies.list_strategies()

    def update_strategy_config(self, name: str, partial: dict[str, Any]) -> Optional[StrategyConfig]:
        """Update one strategy's configuration."""
        return self._strategies.update_strategy_config(name, partial)

    def reset_metrics(self) -> None:
        """Zero the trade metrics."""
        self._metrics.reset()

    def get_performance_summary(self) -> dict:
        """Success rate and trade counts."""
        return self._metrics.get_performance_summary()

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"TradingBot(running={self.is_running}, symbols={len(self._config.symbols)}, "
            f"trades={self._metrics.total_trades})"
        )
