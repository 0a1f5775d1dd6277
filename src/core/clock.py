"""
Clock Module for Options Trading Bot.

This module provides the time source used by the scheduler and the bot,
so that tests can substitute a fixed instant for the wall clock.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo


logger = logging.getLogger(__name__)

UTC = timezone.utc


class Clock(ABC):
    """Abstract time source."""

    @abstractmethod
    def now(self) -> datetime:
        """Current timezone-aware UTC time."""

    def local_now(self, tz: ZoneInfo) -> datetime:
        """
        Current time in a given timezone.

        Args:
            tz: Target timezone

        Returns:
            Timezone-aware local datetime
        """
        return self.now().astimezone(tz)


class SystemClock(Clock):
    """Wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock(Clock):
    """
    Clock frozen at a given instant until moved explicitly.

    Naive datetimes are interpreted as UTC.
    """

    def __init__(self, instant: Optional[datetime] = None) -> None:
        self._instant = self._aware(instant or datetime.now(UTC))

    @staticmethod
    def _aware(instant: datetime) -> datetime:
        if instant.tzinfo is None:
            return instant.replace(tzinfo=UTC)
        return instant.astimezone(UTC)

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        """Move the clock to an instant."""
        self._instant = self._aware(instant)

    def __repr__(self) -> str:
        return f"FixedClock({self._instant.isoformat()})"
