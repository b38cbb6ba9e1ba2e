"""
Locate Clock
============

Injectable source of "now" for every time-dependent rule.

The running service uses a TickingClock advanced once per tick by the
scheduler, so every record is formatted against the same instant within
a tick. Tests use ManualClock.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable, List, Optional

from shared.infrastructure.logging import get_logger


logger = get_logger(__name__)

TickListener = Callable[[datetime], None]


class Clock(ABC):
    """Interface for anything that can tell the current time."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current timezone-aware instant."""
        pass


class SystemClock(Clock):
    """Wall-clock time in a fixed timezone."""

    def __init__(self, tz: tzinfo = timezone.utc):
        self._tz = tz

    def now(self) -> datetime:
        return datetime.now(self._tz)


class ManualClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: datetime):
        if start.tzinfo is None:
            raise ValueError("ManualClock requires a timezone-aware start")
        self._now = start

    def now(self) -> datetime:
        return self._now

    def set(self, value: datetime) -> None:
        if value.tzinfo is None:
            raise ValueError("ManualClock requires timezone-aware datetimes")
        self._now = value

    def advance(self, delta: Optional[timedelta] = None, **kwargs) -> datetime:
        """Move forward by ``delta`` or by ``timedelta(**kwargs)``."""
        self._now = self._now + (delta if delta is not None else timedelta(**kwargs))
        return self._now


class TickingClock(Clock):
    """
    Clock whose reading only changes on ``tick()``.

    Between ticks every caller sees the same instant. Listeners are
    notified after each tick; a failing listener is logged and skipped.
    """

    def __init__(self, source: Clock):
        self._source = source
        self._now = source.now()
        self._listeners: List[TickListener] = []

    def now(self) -> datetime:
        return self._now

    def subscribe(self, listener: TickListener) -> None:
        self._listeners.append(listener)

    def tick(self) -> datetime:
        """Read the source clock and notify listeners."""
        self._now = self._source.now()
        for listener in list(self._listeners):
            try:
                listener(self._now)
            except Exception as e:
                logger.error(
                    "Clock tick listener failed",
                    extra={
                        "listener": getattr(listener, "__qualname__", repr(listener)),
                        "error": str(e)
                    }
                )
        return self._now
