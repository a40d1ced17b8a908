"""
This module provides the SQLite-backed implementation of the `EventLog`
protocol. It is responsible for all direct database interactions: creating
the schema, appending encoded events, and reading them back in order.

Appends are wrapped in a `SAVEPOINT` so a batch is either stored completely
or not at all.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Dict, Iterable, List, Sequence, Type
from uuid import UUID

import aiosqlite

from ..codec import EventCodec
from ..models import Event


class SQLiteEventLog:
    """
    An append-only event log stored in a single SQLite table.

    The `position` column is assigned by SQLite on insert and is the order of
    record; every read orders by it.
    """

    def __init__(self, conn: aiosqlite.Connection, codec: EventCodec):
        self.conn = conn
        self.codec = codec
        self._write_lock = asyncio.Lock()
        self.closed = False

    async def _create_schema(self):
        await self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS events (
                position INTEGER PRIMARY KEY AUTOINCREMENT,
                aggregate_id TEXT NOT NULL,
                event_type TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                data BLOB NOT NULL
            )
        """
        )
        # Loading one aggregate reads only its own rows.
        await self.conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_events_aggregate ON events (aggregate_id, position)
            """
        )
        await self.conn.commit()

    async def append(self, event: Event) -> None:
        await self.append_many([event])

    async def append_many(self, events: Iterable[Event]) -> int:
        """
        Persists events in the given order within one savepoint and returns
        the number of events in the log afterwards.
        """
        events = list(events)
        if not all(isinstance(e, Event) for e in events):
            raise TypeError("All items in events list must be Event objects")

        rows = [
            (str(e.aggregate_id), e.type, e.timestamp.isoformat(), self.codec.encode(e))
            for e in events
        ]
        async with self._write_lock:
            await self.conn.execute("SAVEPOINT event_append")
            try:
                if rows:
                    await self.conn.executemany(
                        "INSERT INTO events (aggregate_id, event_type, timestamp, data) VALUES (?, ?, ?, ?)",
                        rows,
                    )
                await self.conn.execute("RELEASE SAVEPOINT event_append")
                await self.conn.commit()
            except Exception as e:
                await self.conn.execute("ROLLBACK TO SAVEPOINT event_append")
                await self.conn.execute("RELEASE SAVEPOINT event_append")
                logging.error(f"Failed to append events to SQLite: {e}")
                raise
            return await self._count()

    async def _count(self) -> int:
        async with self.conn.execute("SELECT COUNT(*) FROM events") as cursor:
            row = await cursor.fetchone()
            return row[0] if row else 0

    async def _fetch(self, query: str, params: tuple) -> Sequence[Event]:
        events: List[Event] = []
        async with self.conn.execute(query, params) as cursor:
            async for event_type, data in cursor:
                # Undecodable rows raise; skipping one would corrupt every fold after it.
                events.append(self.codec.decode(event_type, data))
        return tuple(events)

    async def read_all(self) -> Sequence[Event]:
        return await self.read()

    async def read(self, from_position: int = 0) -> Sequence[Event]:
        """Returns the events after the first `from_position` ones, in append order."""
        if from_position < 0:
            raise ValueError("from_position must not be negative")
        return await self._fetch(
            "SELECT event_type, data FROM events ORDER BY position LIMIT -1 OFFSET ?",
            (from_position,),
        )

    async def read_for(self, aggregate_id: UUID) -> Sequence[Event]:
        return await self._fetch(
            "SELECT event_type, data FROM events WHERE aggregate_id = ? ORDER BY position",
            (str(aggregate_id),),
        )

    async def metrics(self) -> Dict[str, Any]:
        async with self.conn.execute(
            "SELECT COUNT(*), (SELECT timestamp FROM events ORDER BY position DESC LIMIT 1) FROM events"
        ) as cursor:
            count, last_ts = await cursor.fetchone()
        return {
            "event_count": count,
            "last_timestamp": datetime.fromisoformat(last_ts) if last_ts else None,
        }

    async def close(self):
        """Closes the underlying connection. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        await self.conn.close()


@asynccontextmanager
async def sqlite_event_log(
    db_path: str,
    event_types: Iterable[Type[Event]],
    *,
    key: bytes | str | None = None,
    cache_size_kib: int = -16384,
) -> AsyncIterator[SQLiteEventLog]:
    """
    Opens a SQLite-backed event log for the given event types and closes
    the connection on exit. Pass ":memory:" for a throwaway database.
    """
    if not db_path:
        raise ValueError("`db_path` must be provided.")

    codec = EventCodec(event_types, key=key)
    log = SQLiteEventLog(await aiosqlite.connect(db_path), codec)
    conn = log.conn
    try:
        if db_path != ":memory:":
            await conn.execute("PRAGMA journal_mode=WAL;")
        await conn.execute("PRAGMA synchronous = NORMAL;")
        await conn.execute(f"PRAGMA cache_size = {int(cache_size_kib)};")
        await conn.execute("PRAGMA busy_timeout = 5000;")

        await log._create_schema()
        logging.info(f"SQLite event log opened at {db_path}")
        yield log
    finally:
        await log.close()
        logging.info(f"SQLite event log closed at {db_path}")
