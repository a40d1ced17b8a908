"""
An in-memory implementation of the `EventLog` protocol.

Useful for tests and for short-lived processes; nothing survives the
process. Reads hand out tuples, so a caller's view never changes underneath
it when other callers append.
"""
import asyncio
from typing import Any, Dict, Iterable, List, Sequence
from uuid import UUID

from .models import Event


def _check_events(events: List[Event]):
    if not all(isinstance(e, Event) for e in events):
        raise TypeError("All items in events list must be Event objects")


class InMemoryEventLog:
    def __init__(self):
        self._events: List[Event] = []
        self._lock = asyncio.Lock()

    async def append(self, event: Event) -> None:
        await self.append_many([event])

    async def append_many(self, events: Iterable[Event]) -> int:
        """Appends events in the given order and returns the new length of the log."""
        events = list(events)
        _check_events(events)
        async with self._lock:
            self._events.extend(events)
            return len(self._events)

    async def read_all(self) -> Sequence[Event]:
        return tuple(self._events)

    async def read(self, from_position: int = 0) -> Sequence[Event]:
        """Returns the events after the first `from_position` ones."""
        if from_position < 0:
            raise ValueError("from_position must not be negative")
        return tuple(self._events[from_position:])

    async def read_for(self, aggregate_id: UUID) -> Sequence[Event]:
        return tuple(e for e in self._events if e.aggregate_id == aggregate_id)

    async def metrics(self) -> Dict[str, Any]:
        return {
            "event_count": len(self._events),
            "last_timestamp": self._events[-1].timestamp if self._events else None,
        }

    async def close(self):
        # Nothing to release.
        pass
