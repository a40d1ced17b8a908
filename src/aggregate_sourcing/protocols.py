"""
This module defines the abstract protocols for the event log and the clock.

Aggregates never talk to storage; callers move events between an aggregate
and an `EventLog`. Any backend that satisfies this protocol (in-memory,
SQLite, or something else) can be used interchangeably.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, Protocol, Sequence
from uuid import UUID

from .models import Event


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class EventLog(Protocol):
    """
    Defines the contract that all event logs must implement.

    Append is the only mutation. Reads return events in exactly the order
    they were appended, as finite tuples that can be iterated any number of
    times.
    """

    async def append(self, event: Event) -> None:
        ...

    async def append_many(self, events: Iterable[Event]) -> int:
        ...

    async def read_all(self) -> Sequence[Event]:
        ...

    async def read(self, from_position: int = 0) -> Sequence[Event]:
        ...

    async def read_for(self, aggregate_id: UUID) -> Sequence[Event]:
        ...

    async def metrics(self) -> Dict[str, Any]:
        ...

    async def close(self):
        ...
