"""HTTP server for the timetable service."""

from timetable.server.app import TimetableServer, create_app
from timetable.server.runner import ServerRunner

__all__ = ["ServerRunner", "TimetableServer", "create_app"]
