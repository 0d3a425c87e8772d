"""Timetable persistence.

Public API:
- TimetableStore: Protocol every backend satisfies (create, fetch_all, save)
- create_store: Build the backend selected in configuration

Backends:
- JSONLTimetableStore: Single JSONL document file
- SQLTimetableStore: Async SQLAlchemy table
- MemoryTimetableStore: In-process, used by tests
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from timetable.store.base import DocumentMeta, TimetableStore
from timetable.store.jsonl import JSONLTimetableStore
from timetable.store.memory import MemoryTimetableStore

if TYPE_CHECKING:
    from timetable.config.models import TimetableConfig


def create_store(config: TimetableConfig) -> TimetableStore:
    """Create the timetable store named by ``config.store.backend``."""
    backend = config.store.backend
    if backend == "memory":
        return MemoryTimetableStore()
    if backend == "sqlite":
        from timetable.store.sql import SQLTimetableStore

        if config.store.database_url is not None:
            return SQLTimetableStore(database_url=config.resolve_database_url())
        return SQLTimetableStore(database_path=config.store.database_path)
    return JSONLTimetableStore(config.store.path)


__all__ = [
    "DocumentMeta",
    "JSONLTimetableStore",
    "MemoryTimetableStore",
    "TimetableStore",
    "create_store",
]
