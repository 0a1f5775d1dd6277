"""
Scheduler Module for Options Trading Bot.

This module drives the trading cycle on a fixed interval, gated by the
configured trading days and the brokerage market clock, and keeps the
run and error counters exposed through the bot status.
"""

import asyncio
import inspect
import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable, Optional, Union

from src.core.clock import Clock, SystemClock
from src.core.market_hours import (
    is_in_session,
    is_within_trading_hours,
    time_until_next_session,
    weekday_index,
)
from src.core.models import RunStatus, ScheduleConfig, SessionCountdown
from src.data.broker import BrokerPort
from src.utils.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    SchedulerStateError,
)


logger = logging.getLogger(__name__)

CycleFunction = Callable[[], Union[Awaitable[Any], Any]]


class Scheduler:
    """
    Interval scheduler with two states, stopped and running.

    ``start`` runs the cycle once immediately and then every
    ``interval_ms``. ``stop`` cancels the timer only; a tick that is already
    executing completes on its own.
    """

    def __init__(
        self,
        cycle: Optional[CycleFunction],
        broker: BrokerPort,
        clock: Optional[Clock] = None,
        config: Optional[ScheduleConfig] = None,
    ) -> None:
        """
        Initialize Scheduler.

        Args:
            cycle: Function invoked on each qualifying tick
            broker: Brokerage used for the market clock
            clock: Time source
            config: Schedule configuration
        """
        self._cycle = cycle
        self._broker = broker
        self._clock = clock or SystemClock()
        self._config = config or ScheduleConfig()

        self._status = RunStatus()
        self._timer_task: Optional[asyncio.Task] = None
        self._ticks: set[asyncio.Task] = set()

        logger.info(
            f"Scheduler initialized: interval={self._config.interval_ms}ms "
            f"window={self._config.start_time}-{self._config.end_time} "
            f"tz={self._config.timezone}"
        )

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._status.is_running

    @property
    def config(self) -> ScheduleConfig:
        """Current schedule configuration."""
        return self._config

    async def start(self) -> None:
        """
        Start the timer and run the cycle once right away.

        Raises:
            ConfigurationError: If no cycle function was provided
        """
        if self._status.is_running:
            logger.warning(str(SchedulerStateError("Scheduler is already running")))
            return

        if self._cycle is None:
            raise ConfigurationError("Scheduler has no cycle function to run")

        self._status.is_running = True
        self._status.start_time = self._clock.now()
        self._status.last_error = None

        logger.info(
            f"Starting scheduler: interval={self._config.interval_ms}ms "
            f"trading_hours={self._config.start_time}-{self._config.end_time}"
        )

        self._timer_task = asyncio.create_task(
            self._timer_loop(),
            name="scheduler_timer"
        )

        await self.execute_tick()

    async def stop(self) -> None:
        """Stop the timer; ticks already executing are left to finish."""
        if not self._status.is_running:
            logger.warning(str(SchedulerStateError("Scheduler is not running")))
            return

        self._status.is_running = False
        self._status.next_run = None

        if self._timer_task:
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass
            self._timer_task = None

        logger.info(
            f"Scheduler stopped: total_runs={self._status.total_runs} "
            f"errors={self._status.errors}"
        )

    async def wait_for_ticks(self) -> None:
        """Wait for every tick started by the timer to finish."""
        if self._ticks:
            await asyncio.gather(*list(self._ticks), return_exceptions=True)

    async def _timer_loop(self) -> None:
        """Fire a tick every interval until cancelled."""
        while self._status.is_running:
            await asyncio.sleep(self._config.interval_seconds)
            if not self._status.is_running:
                break
            tick = asyncio.create_task(self.execute_tick(), name="scheduler_tick")
            self._ticks.add(tick)
            tick.add_done_callback(self._ticks.discard)

    async def execute_tick(self) -> None:
        """
        Run one scheduler tick.

        Stamps the run counters, checks ``should_run``, invokes the cycle and
        refreshes the cached market-open flag. Failures are counted and
        recorded; they never propagate.
        """
        try:
            now = self._clock.now()
            self._status.last_run = now
            self._status.total_runs += 1
            self._status.next_run = now + timedelta(milliseconds=self._config.interval_ms)

            if await self.should_run():
                logger.debug("Executing scheduled cycle")
                result = self._cycle() if self._cycle else None
                if inspect.isawaitable(result):
                    await result
            else:
                logger.debug("Skipping execution - outside trading hours or market closed")

            self._status.is_market_open = await self.is_market_open()

        except Exception as e:
            self._status.errors += 1
            self._status.last_error = str(e)
            logger.error(f"Scheduled cycle execution failed: {e}")

    async def should_run(self) -> bool:
        """
        Decide whether the cycle may run now.

        Non-trading weekdays never run and skip the brokerage check. On a
        trading day the brokerage market clock decides; when it cannot be
        reached the local trading windows decide instead.

        Returns:
            True if the cycle should run
        """
        local_now = self._clock.local_now(self._config.tz)
        if weekday_index(local_now) not in self._config.trading_days:
            return False

        try:
            return await self._broker.is_market_open()
        except ExternalServiceError as e:
            logger.warning(
                f"Failed to check market status from broker, using local time check: {e}"
            )
            return is_within_trading_hours(local_now.strftime("%H:%M"), self._config)

    async def is_market_open(self) -> bool:
        """
        Market-open flag from the brokerage, or the local session check.

        Returns:
            True if the market is considered open
        """
        try:
            return await self._broker.is_market_open()
        except ExternalServiceError as e:
            logger.warning(f"Failed to check market status, using local time check: {e}")
            return is_in_session(self._clock.now(), self._config)

    def time_until_next_session(self) -> SessionCountdown:
        """Countdown to the next session open, zero while in session."""
        return time_until_next_session(self._clock.now(), self._config)

    def update_config(self, partial: dict[str, Any]) -> ScheduleConfig:
        """
        Overwrite top-level schedule fields.

        A new interval applies from the next timer wait.

        Args:
            partial: Field updates

        Returns:
            Updated configuration
        """
        self._config = self._config.merged(partial)
        logger.info(f"Scheduler configuration updated: {self._config.model_dump()}")
        return self._config

    def get_config(self) -> ScheduleConfig:
        """Get a copy of the schedule configuration."""
        return self._config.model_copy(deep=True)

    def get_status(self) -> RunStatus:
        """Get a copy of the run status."""
        return self._status.model_copy()

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"Scheduler(running={self._status.is_running}, "
            f"runs={self._status.total_runs}, errors={self._status.errors})"
        )
