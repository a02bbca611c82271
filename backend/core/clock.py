"""
Injectable time source.

The engine, the reminder scheduler and the revenue aggregator read the
current time through a Clock so tests and scripts can pin it.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time as a timezone-aware datetime."""
        ...


class SystemClock(Clock):
    """Wall clock in the host's local timezone (calendar days follow the shop)."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).astimezone()


class FixedClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, at: Optional[datetime] = None):
        at = at or datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
        if at.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware datetime")
        self._now = at

    def now(self) -> datetime:
        return self._now

    def set(self, at: datetime) -> None:
        if at.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware datetime")
        self._now = at

    def advance(self, **kwargs) -> datetime:
        self._now = self._now + timedelta(**kwargs)
        return self._now
