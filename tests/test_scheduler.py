import asyncio
from datetime import datetime, timezone

import pytest

from src.core.clock import FixedClock
from src.core.models import ScheduleConfig
from src.core.scheduler import Scheduler
from src.utils.exceptions import APIConnectionError, ConfigurationError

SATURDAY = datetime(2024, 1, 6, 15, 0, tzinfo=timezone.utc)
SLOW = ScheduleConfig(interval_ms=3_600_000)


def counting_cycle(calls):
    async def cycle():
        calls.append(1)
    return cycle


def test_weekend_skips_without_broker_call(broker):
    scheduler = Scheduler(counting_cycle([]), broker, FixedClock(SATURDAY))
    assert asyncio.run(scheduler.should_run()) is False
    assert broker.called('is_market_open') == []


def test_trading_day_asks_the_broker(broker, clock):
    broker.market_open = False
    scheduler = Scheduler(counting_cycle([]), broker, clock)
    assert asyncio.run(scheduler.should_run()) is False
    assert len(broker.called('is_market_open')) == 1


def test_market_clock_failure_falls_back_to_local_hours(broker, clock):
    broker.errors['is_market_open'] = APIConnectionError('clock down')
    scheduler = Scheduler(counting_cycle([]), broker, clock)
    assert asyncio.run(scheduler.should_run()) is True

    # Wednesday 22:00 New York, after the after-hours window.
    clock.set(datetime(2024, 1, 4, 3, 0, tzinfo=timezone.utc))
    assert asyncio.run(scheduler.should_run()) is False
    assert asyncio.run(scheduler.is_market_open()) is False


def test_cycle_error_is_counted(broker, clock):
    def failing():
        raise RuntimeError('boom')

    scheduler = Scheduler(failing, broker, clock)
    asyncio.run(scheduler.execute_tick())
    status = scheduler.get_status()
    assert status.errors == 1
    assert status.last_error == 'boom'
    assert status.total_runs == 1


def test_tick_stamps_run_counters(broker, clock):
    calls = []
    scheduler = Scheduler(counting_cycle(calls), broker, clock, ScheduleConfig(interval_ms=60000))
    asyncio.run(scheduler.execute_tick())
    status = scheduler.get_status()
    assert calls == [1]
    assert status.last_run == clock.now()
    assert (status.next_run - status.last_run).total_seconds() == 60
    assert status.is_market_open is True


def test_closed_market_skips_cycle_but_counts_run(broker, clock):
    broker.market_open = False
    calls = []
    scheduler = Scheduler(counting_cycle(calls), broker, clock)
    asyncio.run(scheduler.execute_tick())
    assert calls == []
    assert scheduler.get_status().total_runs == 1


def test_sync_cycle_is_supported(broker, clock):
    calls = []
    scheduler = Scheduler(lambda: calls.append(1), broker, clock)
    asyncio.run(scheduler.execute_tick())
    assert calls == [1]


def test_start_without_cycle_raises(broker, clock):
    scheduler = Scheduler(None, broker, clock)
    with pytest.raises(ConfigurationError):
        asyncio.run(scheduler.start())
    assert not scheduler.is_running


def test_start_runs_immediately_and_stop_cancels_timer(broker, clock):
    calls = []
    scheduler = Scheduler(counting_cycle(calls), broker, clock, SLOW)

    async def scenario():
        await scheduler.start()
        assert scheduler.is_running
        assert calls == [1]
        await scheduler.start()
        await scheduler.stop()
        await scheduler.stop()

    asyncio.run(scenario())
    assert calls == [1]
    assert not scheduler.is_running
    assert scheduler.get_status().next_run is None


def test_timer_fires_repeatedly(broker, clock):
    calls = []
    scheduler = Scheduler(counting_cycle(calls), broker, clock, ScheduleConfig(interval_ms=10))

    async def scenario():
        await scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()
        await scheduler.wait_for_ticks()

    asyncio.run(scenario())
    assert len(calls) > 1
    assert scheduler.get_status().total_runs == len(calls)


def test_update_config_and_copies(broker, clock):
    scheduler = Scheduler(counting_cycle([]), broker, clock)
    updated = scheduler.update_config({'interval_ms': 5000})
    assert updated.interval_ms == 5000
    assert updated.start_time == '09:30'

    copy = scheduler.get_config()
    copy.interval_ms = 1
    assert scheduler.config.interval_ms == 5000


def test_time_until_next_session_uses_clock(broker):
    scheduler = Scheduler(counting_cycle([]), broker, FixedClock(SATURDAY))
    assert scheduler.time_until_next_session().total_seconds > 0
