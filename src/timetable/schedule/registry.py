"""Process-wide registry of timetables keyed by resource key."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING

from timetable.schedule.errors import (
    PersistenceError,
    TaskNotFoundError,
    TimetableNotFoundError,
)
from timetable.schedule.types import Task, Timetable

if TYPE_CHECKING:
    from timetable.store.base import TimetableStore

logger = logging.getLogger(__name__)


class TimetableRegistry:
    """Owns every live timetable and serializes access to each one.

    Each key gets its own ``asyncio.Lock``; every read and write of that
    timetable happens under it. Creating a new key additionally takes the
    registry lock so concurrent first inserts agree on a single instance.

    Mutations are persisted while the key lock is held, so durable writes
    for one key land in the same order as the in-memory mutations. A failed
    write is reported to the caller but the in-memory change is kept: the
    durable copy lags until the next successful save of that key.
    """

    def __init__(self, store: TimetableStore) -> None:
        self._store = store
        self._timetables: dict[str, Timetable] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._registry_lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._timetables)

    def __contains__(self, key: object) -> bool:
        return key in self._timetables

    def keys(self) -> list[str]:
        return list(self._timetables)

    async def load(self) -> int:
        """Provision storage and load every persisted timetable.

        Raises:
            PersistenceError: If the store cannot be provisioned or read.
        """
        await self._store.create()
        timetables = await self._store.fetch_all()
        async with self._registry_lock:
            for timetable in timetables:
                self._timetables[timetable.key] = timetable
                self._locks.setdefault(timetable.key, asyncio.Lock())
        logger.info("timetables_loaded", extra={"timetable.count": len(timetables)})
        return len(timetables)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Timetable:
        """Return a snapshot of the timetable for ``key``."""
        timetable, lock = self._lookup(key)
        async with lock:
            return timetable.copy()

    async def get_all(self) -> list[Timetable]:
        snapshots: list[Timetable] = []
        for key in self.keys():
            timetable, lock = self._lookup(key)
            async with lock:
                snapshots.append(timetable.copy())
        return snapshots

    async def list(self, key: str) -> list[Task]:
        timetable, lock = self._lookup(key)
        async with lock:
            return timetable.list()

    async def next(self, key: str) -> Task | None:
        timetable, lock = self._lookup(key)
        async with lock:
            return timetable.next()

    async def delay(self, key: str, now: datetime | None = None) -> int:
        timetable, lock = self._lookup(key)
        async with lock:
            return timetable.delay(now)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def insert(self, key: str, task_id: str, run_at: str) -> None:
        """Schedule a task, creating the timetable on first use.

        Raises:
            ConflictError: If ``run_at`` is already reserved for ``key``.
            PersistenceError: If the save fails. The task stays scheduled.
        """
        timetable, lock = await self._get_or_create(key)
        async with lock:
            timetable.insert(Task(id=task_id, run_at=run_at))
            logger.debug(
                "task_inserted",
                extra={"timetable.key": key, "task.id": task_id, "task.run_at": run_at},
            )
            await self._persist(timetable)

    async def remove(self, key: str, run_at: str) -> bool:
        """Remove the task at ``run_at``; False if no task was there.

        Raises:
            TimetableNotFoundError: If ``key`` is unknown.
            PersistenceError: If the save fails. The task stays removed.
        """
        timetable, lock = self._lookup(key)
        async with lock:
            try:
                timetable.remove(run_at)
            except TaskNotFoundError:
                return False
            logger.debug(
                "task_removed", extra={"timetable.key": key, "task.run_at": run_at}
            )
            await self._persist(timetable)
            return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _lookup(self, key: str) -> tuple[Timetable, asyncio.Lock]:
        timetable = self._timetables.get(key)
        if timetable is None:
            raise TimetableNotFoundError(key)
        return timetable, self._locks[key]

    async def _get_or_create(self, key: str) -> tuple[Timetable, asyncio.Lock]:
        if not key:
            raise ValueError("timetable key is required")
        async with self._registry_lock:
            timetable = self._timetables.get(key)
            if timetable is None:
                timetable = Timetable(key)
                self._timetables[key] = timetable
                self._locks[key] = asyncio.Lock()
                logger.info("timetable_created", extra={"timetable.key": key})
            return timetable, self._locks[key]

    async def _persist(self, timetable: Timetable) -> None:
        try:
            await timetable.save(self._store)
        except PersistenceError as e:
            logger.warning(
                "timetable_save_failed",
                extra={"timetable.key": timetable.key, "error.message": str(e)},
            )
            raise
