"""CLI command modules."""

from timetable.cli.commands import call, config, serve

__all__ = [
    "call",
    "config",
    "serve",
]
