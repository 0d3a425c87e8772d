"""Timetable engine: per-key schedules of time-bound tasks.

Public API:
- Timetable: Schedule of tasks for one resource key
- TimetableRegistry: All live timetables, with per-key locking and persistence

Types:
- Task: A task bound to a single RFC 3339 run-at time
"""

from timetable.schedule.errors import (
    ConflictError,
    EmptyScheduleError,
    PersistenceError,
    TaskNotFoundError,
    TimeParseError,
    TimetableError,
    TimetableNotFoundError,
)
from timetable.schedule.registry import TimetableRegistry
from timetable.schedule.times import format_rfc3339, parse_rfc3339
from timetable.schedule.types import Task, Timetable

__all__ = [
    "ConflictError",
    "EmptyScheduleError",
    "PersistenceError",
    "Task",
    "TaskNotFoundError",
    "TimeParseError",
    "Timetable",
    "TimetableError",
    "TimetableNotFoundError",
    "TimetableRegistry",
    "format_rfc3339",
    "parse_rfc3339",
]
