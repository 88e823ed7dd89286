"""
clock.py - Time sources for the pool

The pool samples "now" once per operation from an injected clock. Timestamps
are integer seconds.
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Protocol, Union, runtime_checkable
import time

from .core import ONE_DAY


@runtime_checkable
class Clock(Protocol):
    def now(self) -> int:
        """Current time in integer seconds."""
        ...


class SystemClock:
    """Wall-clock seconds since the epoch."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """
    Logical clock driven by the caller (simulations and tests).

    Time can only move forward, never backward.
    """

    def __init__(self, start: Union[int, datetime] = 0):
        self._now = to_timestamp(start)

    def now(self) -> int:
        return self._now

    def set_time(self, new_time: Union[int, datetime]) -> int:
        """
        Jump to new_time.

        Raises:
            ValueError: If new_time is before the current time
        """
        ts = to_timestamp(new_time)
        if ts < self._now:
            raise ValueError(f"Cannot move time backwards: {ts} < {self._now}")
        self._now = ts
        return ts

    def advance(self, seconds: int = 0, days: int = 0) -> int:
        """Move forward by seconds + days and return the new time."""
        return self.set_time(self._now + seconds + days * ONE_DAY)

    def __repr__(self) -> str:
        return f"ManualClock({self._now})"


def to_timestamp(value: Union[int, datetime]) -> int:
    """Integer seconds for an int or a datetime (naive datetimes are UTC)."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"timestamp must be int or datetime, got {type(value).__name__}")
    return value
