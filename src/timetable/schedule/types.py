"""Timetable types.

Public types:
- Task: A unit of work bound to a single run-at time
- Timetable: The schedule of tasks for one resource key

Schedule slots are keyed on the literal ``runAt`` string. Two different
encodings of the same instant (``...T10:00:00Z`` and ``...T12:00:00+02:00``)
occupy different slots and never conflict with each other.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from timetable.schedule.errors import (
    ConflictError,
    EmptyScheduleError,
    TaskNotFoundError,
    TimeParseError,
)
from timetable.schedule.times import parse_rfc3339

if TYPE_CHECKING:
    from timetable.store.base import DocumentMeta, TimetableStore

logger = logging.getLogger(__name__)

_MINUTE = timedelta(minutes=1)
_MICROSECOND = timedelta(microseconds=1)


@dataclass(frozen=True)
class Task:
    """A unit of work scheduled in a timetable."""

    id: str
    run_at: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "runAt": self.run_at}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        """Parse a task from its wire form.

        Raises:
            ValueError: If ``id`` or ``runAt`` is missing or not a string.
        """
        if not isinstance(data, dict):
            raise ValueError(f"task must be an object, got {type(data).__name__}")
        task_id = data.get("id")
        run_at = data.get("runAt")
        if not isinstance(task_id, str):
            raise ValueError("task id must be a string")
        if not isinstance(run_at, str):
            raise ValueError("task runAt must be a string")
        return cls(id=task_id, run_at=run_at)


class Timetable:
    """Keeps track of scheduled tasks for a given resource key."""

    def __init__(self, key: str, tasks: list[Task] | None = None) -> None:
        self._key = key
        self._schedule: dict[str, Task] = {}
        for task in tasks or []:
            self._schedule[task.run_at] = task

    @property
    def key(self) -> str:
        return self._key

    def __len__(self) -> int:
        return len(self._schedule)

    def __contains__(self, run_at: object) -> bool:
        return run_at in self._schedule

    def __repr__(self) -> str:
        return f"Timetable(key={self._key!r}, tasks={len(self._schedule)})"

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def insert(self, task: Task) -> None:
        """Add the task if its run-at slot is not already reserved.

        Raises:
            ValueError: If the task has an empty id or run-at value.
            ConflictError: If a task already occupies ``task.run_at``.
        """
        if not task.run_at:
            raise ValueError("task runAt is required")
        if not task.id:
            raise ValueError("task id is required")
        if task.run_at in self._schedule:
            raise ConflictError(task.run_at)
        self._schedule[task.run_at] = task

    def remove(self, run_at: str) -> Task:
        """Delete the task scheduled at exactly ``run_at``.

        Raises:
            ValueError: If ``run_at`` is empty.
            TaskNotFoundError: If no task occupies that slot.
        """
        if not run_at:
            raise ValueError("task runAt is required")
        task = self._schedule.pop(run_at, None)
        if task is None:
            raise TaskNotFoundError(run_at)
        return task

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list(self) -> list[Task]:
        """Return all scheduled tasks. Order is not meaningful."""
        return list(self._schedule.values())

    def next(self) -> Task | None:
        """Return the chronologically earliest task, or None.

        Entries whose run-at value does not parse are skipped. When several
        entries resolve to the same instant, the lexically smallest run-at
        string wins.
        """
        earliest = self._earliest()
        return earliest[1] if earliest else None

    def delay(self, now: datetime | None = None) -> int:
        """Return whole minutes until the next task runs.

        The minute count is truncated toward zero; a positive count with a
        leftover fraction is then rounded up by one, so 4m10s reports 5 and
        exactly 4m reports 4. A task less than a minute away reports 0, and
        past tasks report zero or a negative count.

        Raises:
            EmptyScheduleError: If nothing is scheduled.
            TimeParseError: If no scheduled run-at value parses.
        """
        if not self._schedule:
            raise EmptyScheduleError()

        earliest = self._earliest()
        if earliest is None:
            raise TimeParseError(
                ", ".join(sorted(self._schedule)), "no parsable runAt in schedule"
            )

        when, _task = earliest
        now = now or datetime.now(UTC)
        micros = (when - now) // _MICROSECOND
        per_minute = _MINUTE // _MICROSECOND

        whole, remainder = divmod(abs(micros), per_minute)
        if micros < 0:
            return -whole
        if whole > 0 and remainder:
            whole += 1
        return whole

    def _earliest(self) -> tuple[datetime, Task] | None:
        best: tuple[datetime, str] | None = None
        for run_at in self._schedule:
            try:
                when = parse_rfc3339(run_at)
            except TimeParseError:
                logger.warning(
                    "unparsable_run_at",
                    extra={"timetable.key": self._key, "task.run_at": run_at},
                )
                continue
            if best is None or (when, run_at) < best:
                best = (when, run_at)
        if best is None:
            return None
        return best[0], self._schedule[best[1]]

    # ------------------------------------------------------------------
    # Persistence and wire format
    # ------------------------------------------------------------------

    async def save(self, store: TimetableStore) -> DocumentMeta:
        """Write the timetable to the durable store."""
        return await store.save(self)

    def copy(self) -> Timetable:
        return Timetable(self._key, self.list())

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire shape ``{"key": ..., "schedule": [...]}``."""
        return {
            "key": self._key,
            "schedule": [task.to_dict() for task in self._schedule.values()],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Timetable:
        """Rebuild a timetable from its wire shape.

        Raises:
            ValueError: If the document does not have the expected shape.
        """
        if not isinstance(data, dict):
            raise ValueError(
                f"timetable must be an object, got {type(data).__name__}"
            )
        key = data.get("key")
        if not isinstance(key, str) or not key:
            raise ValueError("timetable key must be a non-empty string")
        schedule = data.get("schedule")
        if not isinstance(schedule, list):
            raise ValueError("timetable schedule must be an array")
        return cls(key, [Task.from_dict(item) for item in schedule])
