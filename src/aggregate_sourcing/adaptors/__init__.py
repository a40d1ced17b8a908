from .sqlite import SQLiteEventLog, sqlite_event_log

__all__ = ["SQLiteEventLog", "sqlite_event_log"]
