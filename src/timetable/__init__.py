"""Timetable - per-resource task schedules over JSON-RPC."""

__version__ = "0.1.0"
