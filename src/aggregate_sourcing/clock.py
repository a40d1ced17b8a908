"""
Time sources used to stamp new events.

Events take their timestamp from an injected `Clock` rather than reading the
wall clock directly, so tests can produce fully deterministic histories.
"""
from datetime import datetime, timedelta, timezone


class SystemClock:
    """The default clock: current UTC time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    A deterministic clock. Returns `start` on the first call and advances by
    `step` on every call after that, so consecutive timestamps never decrease.
    """

    def __init__(self, start: datetime, step: timedelta = timedelta(0)):
        if step < timedelta(0):
            raise ValueError("FixedClock step must not be negative")
        self._current = start
        self._step = step

    def now(self) -> datetime:
        current = self._current
        self._current = current + self._step
        return current
