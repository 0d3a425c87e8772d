"""JSON-RPC 2.0 protocol implementation."""

import json
import struct
from dataclasses import dataclass, field
from typing import Any

MAX_MESSAGE_SIZE = 10 * 1024 * 1024  # 10MB

_NO_ID = object()


# JSON-RPC 2.0 error codes
class ErrorCode:
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    # Implementation-defined server errors (-32000 to -32099)
    TIMETABLE_NOT_FOUND = -32002
    SERVER_ERROR = -32099


class ErrorMessage:
    PARSE_ERROR = "Parse error"
    INVALID_REQUEST = "Invalid Request"
    METHOD_NOT_FOUND = "Method not found"
    INVALID_PARAMS = "Invalid params"
    INTERNAL_ERROR = "Internal error"
    TIMETABLE_NOT_FOUND = "Timetable not found"
    SERVER_ERROR = "Server error"


class RPCMethodError(Exception):
    """Raised by method handlers to return a JSON-RPC error object."""

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(message if data is None else f"{message}: {data}")
        self.code = code
        self.message = message
        self.data = data


Params = dict[str, Any] | list[Any]


@dataclass
class RPCRequest:
    """JSON-RPC 2.0 request.

    ``id`` is None for notifications, which never receive a response.
    """

    method: str
    params: Params = field(default_factory=dict)
    id: int | str | None = 1
    jsonrpc: str = "2.0"
    is_notification: bool = False

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "jsonrpc": self.jsonrpc,
            "method": self.method,
            "params": self.params,
        }
        if not self.is_notification:
            d["id"] = self.id
        return d

    def to_bytes(self) -> bytes:
        """Serialize to length-prefixed bytes."""
        return frame(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RPCRequest":
        request_id = data.get("id", _NO_ID)
        return cls(
            method=data.get("method", ""),
            params=data.get("params", {}),
            id=None if request_id is _NO_ID else request_id,
            jsonrpc=data.get("jsonrpc", "2.0"),
            is_notification=request_id is _NO_ID,
        )


@dataclass
class RPCError:
    """JSON-RPC 2.0 error."""

    code: int
    message: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        d = {"code": self.code, "message": self.message}
        if self.data is not None:
            d["data"] = self.data
        return d


@dataclass
class RPCResponse:
    """JSON-RPC 2.0 response."""

    id: int | str | None
    result: Any = None
    error: RPCError | None = None
    jsonrpc: str = "2.0"

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            d["error"] = self.error.to_dict()
        else:
            d["result"] = self.result
        return d

    def to_bytes(self) -> bytes:
        """Serialize to length-prefixed bytes."""
        return frame(self.to_dict())

    @classmethod
    def success(cls, id: int | str | None, result: Any) -> "RPCResponse":
        return cls(id=id, result=result)

    @classmethod
    def error_response(
        cls, id: int | str | None, code: int, message: str, data: Any = None
    ) -> "RPCResponse":
        return cls(id=id, error=RPCError(code=code, message=message, data=data))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RPCResponse":
        error = None
        if "error" in data:
            err = data["error"]
            error = RPCError(
                code=err.get("code", ErrorCode.INTERNAL_ERROR),
                message=err.get("message", "Unknown error"),
                data=err.get("data"),
            )
        return cls(
            id=data.get("id"),
            result=data.get("result"),
            error=error,
            jsonrpc=data.get("jsonrpc", "2.0"),
        )


def frame(payload: Any) -> bytes:
    """Encode a JSON payload as a length-prefixed message."""
    body = json.dumps(payload).encode()
    return struct.pack("!I", len(body)) + body


async def read_message(reader) -> bytes | None:
    """Read a length-prefixed message from an async reader.

    Returns None if connection closed.
    """
    import asyncio

    try:
        length_bytes = await reader.readexactly(4)
    except asyncio.IncompleteReadError:
        return None

    length = struct.unpack("!I", length_bytes)[0]
    if length > MAX_MESSAGE_SIZE:
        raise ValueError(f"Message too large: {length}")

    try:
        return await reader.readexactly(length)
    except asyncio.IncompleteReadError:
        return None


def read_message_sync(sock) -> bytes | None:
    """Read a length-prefixed message from a sync socket.

    Returns None if connection closed.
    """
    length_bytes = b""
    while len(length_bytes) < 4:
        chunk = sock.recv(4 - len(length_bytes))
        if not chunk:
            return None
        length_bytes += chunk

    length = struct.unpack("!I", length_bytes)[0]
    if length > MAX_MESSAGE_SIZE:
        raise ValueError(f"Message too large: {length}")

    data = b""
    while len(data) < length:
        chunk = sock.recv(length - len(data))
        if not chunk:
            return None
        data += chunk

    return data
