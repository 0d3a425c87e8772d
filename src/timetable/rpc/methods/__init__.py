"""RPC method handlers."""

from timetable.rpc.methods.timetable import register_timetable_methods

__all__ = [
    "register_timetable_methods",
]
