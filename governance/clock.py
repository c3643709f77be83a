"""
Injectable Clock
================

All time reads in the governance core go through a clock object, so decision
timestamps and the aggregator's trailing windows are reproducible in tests.

MODES:
======
1. LIVE: reads system time
2. FIXED: returns a pinned time that only moves when told to
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional
import threading

from .contracts.base import Timestamp


class Clock:
    """Clock interface."""

    def now(self) -> Timestamp:
        raise NotImplementedError


class SystemClock(Clock):
    """LIVE mode: UTC wall-clock time."""

    def now(self) -> Timestamp:
        return Timestamp(value=datetime.now(timezone.utc))


@dataclass
class FixedClock(Clock):
    """
    FIXED mode: pinned time, advanced explicitly.

    Every read is logged so a test can assert how many times the core asked
    for the time.
    """
    _current: datetime = field(default_factory=lambda: datetime(2026, 1, 1, tzinfo=timezone.utc))
    _ticks: List[datetime] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def now(self) -> Timestamp:
        with self._lock:
            self._ticks.append(self._current)
            return Timestamp(value=self._current)

    def advance(self, delta: timedelta) -> None:
        with self._lock:
            self._current = self._current + delta

    def tick_count(self) -> int:
        return len(self._ticks)

    @classmethod
    def at(cls, when: datetime) -> FixedClock:
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        return cls(_current=when)


def default_clock(clock: Optional[Clock] = None) -> Clock:
    return clock if clock is not None else SystemClock()
