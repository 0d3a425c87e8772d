"""JSON-RPC 2.0 surface for the timetable engine.

Public API:
- RPCServer: Method registry/dispatcher with optional Unix socket listener
- register_timetable_methods: Register get/getAll/insert/remove/next/delay
- rpc_call, socket_call: Clients for a running service

Protocol:
- RPCRequest, RPCResponse: JSON-RPC 2.0 message types
- read_message, read_message_sync: Length-prefixed message I/O
"""

from timetable.rpc.methods import register_timetable_methods
from timetable.rpc.protocol import (
    ErrorCode,
    RPCError,
    RPCMethodError,
    RPCRequest,
    RPCResponse,
    read_message,
    read_message_sync,
)
from timetable.rpc.server import RPCServer

__all__ = [
    # Server
    "RPCServer",
    # Methods
    "register_timetable_methods",
    # Protocol
    "RPCRequest",
    "RPCResponse",
    "RPCError",
    "RPCMethodError",
    "ErrorCode",
    "read_message",
    "read_message_sync",
]
