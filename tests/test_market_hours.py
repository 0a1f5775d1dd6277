from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from src.core.market_hours import (
    is_in_session,
    is_time_between,
    is_within_trading_hours,
    time_to_minutes,
    time_until_next_session,
    weekday_index,
)
from src.core.models import ScheduleConfig


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def test_time_to_minutes():
    assert time_to_minutes('09:30') == 570
    assert time_to_minutes('00:00') == 0
    assert time_to_minutes('23:59') == 1439


def test_window_bounds_are_inclusive():
    assert is_time_between('09:30', '09:30', '16:00')
    assert is_time_between('16:00', '09:30', '16:00')
    assert not is_time_between('16:01', '09:30', '16:00')


def test_window_wraps_past_midnight():
    assert is_time_between('23:00', '20:00', '04:00')
    assert is_time_between('02:00', '20:00', '04:00')
    assert not is_time_between('10:00', '20:00', '04:00')


def test_weekday_index_starts_on_sunday():
    assert weekday_index(datetime(2024, 1, 7)) == 0
    assert weekday_index(datetime(2024, 1, 8)) == 1
    assert weekday_index(datetime(2024, 1, 6)) == 6


def test_extended_windows_count_as_trading_hours():
    config = ScheduleConfig()
    assert is_within_trading_hours('05:00', config)
    assert is_within_trading_hours('12:00', config)
    assert is_within_trading_hours('18:00', config)
    assert not is_within_trading_hours('03:59', config)
    assert not is_within_trading_hours('21:00', config)


def test_session_uses_configured_timezone():
    config = ScheduleConfig()
    # Saturday 01:00 UTC is still Friday evening in New York.
    assert is_in_session(utc(2024, 1, 6, 1, 0), config)
    assert not is_in_session(utc(2024, 1, 6, 15, 0), config)


def test_countdown_is_zero_in_session(clock):
    countdown = time_until_next_session(clock.now(), ScheduleConfig())
    assert countdown.total_seconds == 0


def test_countdown_before_open_targets_today():
    # Wednesday 02:00 New York.
    countdown = time_until_next_session(utc(2024, 1, 3, 7, 0), ScheduleConfig())
    assert (countdown.hours, countdown.minutes, countdown.seconds) == (7, 30, 0)


def test_countdown_after_close_targets_next_day():
    # Wednesday 21:00 New York.
    countdown = time_until_next_session(utc(2024, 1, 4, 2, 0), ScheduleConfig())
    assert (countdown.hours, countdown.minutes) == (12, 30)


def test_countdown_over_weekend():
    # Saturday 12:00 New York to Monday 09:30.
    countdown = time_until_next_session(utc(2024, 1, 6, 17, 0), ScheduleConfig())
    assert (countdown.hours, countdown.minutes) == (45, 30)


def test_schedule_config_validation():
    with pytest.raises(ValidationError):
        ScheduleConfig(start_time='25:00')
    with pytest.raises(ValidationError):
        ScheduleConfig(timezone='Mars/Olympus')
    with pytest.raises(ValidationError):
        ScheduleConfig(trading_days=[1, 7])
    assert ScheduleConfig(trading_days=[5, 1, 1]).trading_days == [1, 5]
