"""Clock abstraction for the transcript engine.

WHY: Utterance boundaries depend on elapsed time between fragments and
each finalized entry carries a wall-clock timestamp. Reading time
through an injected clock lets tests and offline replays drive those
decisions without real waiting.

HOW: A clock exposes monotonic() (seconds, for elapsed-time maths) and
now() (timezone-aware datetime, for entry timestamps). SystemClock
reads the real clocks; ManualClock is advanced explicitly.

RULES:
- Elapsed-time decisions use monotonic() only, never now()
- ManualClock keeps both readings in step when advanced
"""

from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol


class Clock(Protocol):
    """Source of monotonic and wall-clock time."""

    def monotonic(self) -> float:
        ...

    def now(self) -> datetime:
        ...


class SystemClock:
    """Clock backed by time.monotonic() and the local wall clock."""

    def monotonic(self) -> float:
        return time.monotonic()

    def now(self) -> datetime:
        return datetime.now().astimezone()


class ManualClock:
    """Clock that only moves when told to.

    Used by tests and by the offline replay, where arrival times come
    from the recorded event log rather than from the host.
    """

    def __init__(self, start: Optional[datetime] = None) -> None:
        self._start = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._elapsed_s = 0.0

    def monotonic(self) -> float:
        return self._elapsed_s

    def now(self) -> datetime:
        return self._start + timedelta(seconds=self._elapsed_s)

    def advance(self, milliseconds: float) -> None:
        """Move time forward by the given number of milliseconds."""
        if milliseconds < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._elapsed_s += milliseconds / 1000.0

    def set_ms(self, milliseconds: float) -> None:
        """Jump to an absolute offset (ms) from the start; never backwards."""
        target = milliseconds / 1000.0
        if target > self._elapsed_s:
            self._elapsed_s = target
