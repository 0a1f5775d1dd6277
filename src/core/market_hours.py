"""
Market Hours Module for Options Trading Bot.

This module provides the trading-day and trading-window arithmetic used by
the scheduler: HH:MM parsing, window containment with overnight wraparound,
and the countdown to the next session open.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from src.core.models import ScheduleConfig, SessionCountdown


logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


def time_to_minutes(value: str) -> int:
    """
    Convert an HH:MM string to minutes since midnight.

    Args:
        value: Time of day as HH:MM

    Returns:
        Minutes since midnight
    """
    hours, minutes = value.strip().split(":")
    return int(hours) * 60 + int(minutes)


def is_time_between(current: str, start: str, end: str) -> bool:
    """
    Check whether a time of day lies inside a window, bounds inclusive.

    A window whose end is earlier than its start spans midnight.

    Args:
        current: Time to test as HH:MM
        start: Window start as HH:MM
        end: Window end as HH:MM

    Returns:
        True if inside the window
    """
    now = time_to_minutes(current)
    lower = time_to_minutes(start)
    upper = time_to_minutes(end)

    if lower <= upper:
        return lower <= now <= upper
    return now >= lower or now <= upper


def weekday_index(moment: datetime) -> int:
    """Weekday with 0 for Sunday through 6 for Saturday."""
    return moment.isoweekday() % 7


def is_trading_day(moment: datetime, config: ScheduleConfig) -> bool:
    """
    Check whether the local date of an instant is a configured trading day.

    Args:
        moment: Timezone-aware instant
        config: Schedule configuration

    Returns:
        True for a trading day
    """
    local = moment.astimezone(config.tz)
    return weekday_index(local) in config.trading_days


def is_within_trading_hours(current: str, config: ScheduleConfig) -> bool:
    """
    Check the regular, pre-market and after-hours windows.

    Args:
        current: Local time of day as HH:MM
        config: Schedule configuration

    Returns:
        True when any window contains the time
    """
    if is_time_between(current, config.start_time, config.end_time):
        return True

    if config.pre_market_start and is_time_between(
        current, config.pre_market_start, config.start_time
    ):
        return True

    if config.after_hours_end and is_time_between(
        current, config.end_time, config.after_hours_end
    ):
        return True

    return False


def is_in_session(moment: datetime, config: ScheduleConfig) -> bool:
    """Trading day and inside a trading window, both in the configured timezone."""
    local = moment.astimezone(config.tz)
    return (
        weekday_index(local) in config.trading_days
        and is_within_trading_hours(local.strftime("%H:%M"), config)
    )


def session_open_at(day: datetime, config: ScheduleConfig) -> datetime:
    """
    Session open time on the local date of ``day``.

    Args:
        day: Timezone-aware instant
        config: Schedule configuration

    Returns:
        Timezone-aware open time
    """
    local = day.astimezone(config.tz)
    minutes = time_to_minutes(config.start_time)
    naive = datetime(local.year, local.month, local.day, minutes // 60, minutes % 60)
    return naive.replace(tzinfo=config.tz)


def next_trading_day(moment: datetime, config: ScheduleConfig) -> Optional[datetime]:
    """
    First trading day strictly after the local date of ``moment``.

    Args:
        moment: Timezone-aware instant
        config: Schedule configuration

    Returns:
        An instant on the next trading day, or None if no day is configured
    """
    if not config.trading_days:
        return None

    local = moment.astimezone(config.tz)
    candidate = local
    for _ in range(7):
        candidate = candidate + timedelta(days=1)
        if weekday_index(candidate) in config.trading_days:
            return candidate
    return None


def time_until_next_session(moment: datetime, config: ScheduleConfig) -> SessionCountdown:
    """
    Countdown to the next session open.

    Zero while inside a trading window on a trading day. Otherwise targets
    today's open when today is a trading day and the open is still ahead,
    else the open of the next trading day.

    Args:
        moment: Timezone-aware instant
        config: Schedule configuration

    Returns:
        Hours, minutes and seconds until the open
    """
    if is_in_session(moment, config):
        return SessionCountdown()

    target: Optional[datetime] = None
    if is_trading_day(moment, config):
        today_open = session_open_at(moment, config)
        if moment.astimezone(timezone.utc) < today_open.astimezone(timezone.utc):
            target = today_open

    if target is None:
        next_day = next_trading_day(moment, config)
        if next_day is None:
            logger.warning("No trading days configured, no next session")
            return SessionCountdown()
        target = session_open_at(next_day, config)

    delta = target.astimezone(timezone.utc) - moment.astimezone(timezone.utc)
    return SessionCountdown.from_seconds(delta.total_seconds())
