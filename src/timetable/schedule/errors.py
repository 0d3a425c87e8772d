"""Timetable error types."""


class TimetableError(Exception):
    """Base class for timetable engine errors."""


class ConflictError(TimetableError):
    """A task already occupies the requested run-at slot."""

    def __init__(self, run_at: str):
        super().__init__("schedule conflict")
        self.run_at = run_at


class TaskNotFoundError(TimetableError):
    """No task is scheduled at the requested run-at slot."""

    def __init__(self, run_at: str):
        super().__init__("not found")
        self.run_at = run_at


class EmptyScheduleError(TimetableError):
    """The timetable has no scheduled tasks."""

    def __init__(self) -> None:
        super().__init__("empty schedule")


class TimeParseError(TimetableError, ValueError):
    """A run-at value is not an RFC 3339 timestamp."""

    def __init__(self, value: str, reason: str = "not an RFC 3339 timestamp"):
        super().__init__(f"cannot parse {value!r}: {reason}")
        self.value = value


class PersistenceError(TimetableError):
    """The durable store rejected a read or write."""


class TimetableNotFoundError(TimetableError):
    """No timetable is registered for the requested key."""

    def __init__(self, key: str):
        super().__init__(f"timetable not found: {key}")
        self.key = key
