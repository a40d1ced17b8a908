"""
Config-driven construction of event logs.

The configuration is a plain dict:

    {"url": "sqlite:///events.db", "key": b"<fernet key>"}

Supported URLs are `memory://` (in-process list), `sqlite://` (in-memory
SQLite) and `sqlite:///path/to.db`. `key` is optional and turns on payload
encryption for SQLite logs.
"""
import urllib.parse
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterable, Type

from .adaptors.sqlite import sqlite_event_log
from .event_log import InMemoryEventLog
from .models import Event
from .protocols import EventLog


@asynccontextmanager
async def open_event_log(config: Dict, event_types: Iterable[Type[Event]]) -> AsyncIterator[EventLog]:
    # If no URL is provided, default to an in-memory SQLite database.
    url = config.get("url") or "sqlite://"
    scheme = url.split("://", 1)[0] if "://" in url else ""

    if scheme == "memory":
        log = InMemoryEventLog()
        try:
            yield log
        finally:
            await log.close()
    elif scheme == "sqlite":
        db_path = urllib.parse.urlparse(url).path
        if not db_path or db_path == "/":
            db_path = ":memory:"
        elif db_path.startswith("/"):
            # sqlite:///events.db -> events.db, sqlite:////var/events.db -> /var/events.db
            db_path = db_path[1:]

        kwargs = {}
        if "cache_size_kib" in config:
            kwargs["cache_size_kib"] = config["cache_size_kib"]
        async with sqlite_event_log(db_path, event_types, key=config.get("key"), **kwargs) as log:
            yield log
    else:
        raise ValueError(f"Unsupported scheme: {scheme}. Supported schemes are 'memory' and 'sqlite'.")
