"""
The caller side of event sourcing: load an aggregate's history from a log,
replay it into a fresh instance, and persist whatever the aggregate produced.

Aggregates are not safe for concurrent mutation. `Repository.session` holds
a per-identity lock for the whole load/mutate/save sequence, so two tasks
working on the same account take turns.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Generic, Tuple, Type, TypeVar
from uuid import UUID

from .aggregate import Aggregate
from .protocols import Clock, EventLog

A = TypeVar("A", bound=Aggregate)


class Repository(Generic[A]):
    def __init__(self, log: EventLog, aggregate_type: Type[A], *, clock: Clock | None = None):
        self.log = log
        self.aggregate_type = aggregate_type
        self.clock = clock
        # Identity -> (lock, number of sessions holding or waiting on it).
        self._locks: Dict[UUID, Tuple[asyncio.Lock, int]] = {}
        self._locks_creator_lock = asyncio.Lock()

    async def load(self, aggregate_id: UUID) -> A:
        """
        Rebuilds the aggregate from its recorded events. An identity with no
        history comes back unborn (version -1).
        """
        history = await self.log.read_for(aggregate_id)
        return self.aggregate_type.from_history(aggregate_id, history, clock=self.clock)

    async def save(self, aggregate: A) -> int:
        """
        Appends the aggregate's uncommitted changes to the log, then marks
        them committed. Returns the number of events written.
        """
        changes = aggregate.get_uncommitted_changes()
        if not changes:
            return 0
        await self.log.append_many(changes)
        aggregate.mark_changes_as_committed()
        logging.info(
            f"Saved {len(changes)} events for {type(aggregate).__name__} {aggregate.id} at version {aggregate.version}"
        )
        return len(changes)

    async def _acquire_lock_entry(self, aggregate_id: UUID) -> asyncio.Lock:
        async with self._locks_creator_lock:
            if aggregate_id in self._locks:
                lock, users = self._locks[aggregate_id]
            else:
                lock, users = asyncio.Lock(), 0
            self._locks[aggregate_id] = (lock, users + 1)
            return lock

    async def _release_lock_entry(self, aggregate_id: UUID):
        """Drops the identity's lock once no session holds or awaits it."""
        async with self._locks_creator_lock:
            lock, users = self._locks[aggregate_id]
            if users <= 1:
                del self._locks[aggregate_id]
            else:
                self._locks[aggregate_id] = (lock, users - 1)

    @asynccontextmanager
    async def session(self, aggregate_id: UUID) -> AsyncIterator[A]:
        """
        Loads the aggregate under its identity lock and saves it when the
        block exits normally. If the block raises, unsaved changes are
        dropped and the exception propagates.
        """
        lock = await self._acquire_lock_entry(aggregate_id)
        try:
            async with lock:
                aggregate = await self.load(aggregate_id)
                yield aggregate
                await self.save(aggregate)
        finally:
            await self._release_lock_entry(aggregate_id)
