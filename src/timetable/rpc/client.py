"""RPC clients for talking to a running timetable service."""

import json
import socket
from itertools import count
from typing import Any

import httpx

from timetable.rpc.protocol import (
    Params,
    RPCRequest,
    RPCResponse,
    read_message_sync,
)

DEFAULT_URL = "http://127.0.0.1:8080/rpc"
DEFAULT_TIMEOUT = 10.0  # seconds

_request_ids = count(1)


class RPCClientError(Exception):
    """RPC call returned an error object."""

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(message if data is None else f"{message}: {data}")
        self.code = code
        self.message = message
        self.data = data


def _unwrap(response: RPCResponse) -> Any:
    if response.error:
        raise RPCClientError(
            code=response.error.code,
            message=response.error.message,
            data=response.error.data,
        )
    return response.result


def rpc_call(
    method: str,
    params: Params | None = None,
    url: str = DEFAULT_URL,
    timeout: float = DEFAULT_TIMEOUT,
    client: httpx.Client | None = None,
) -> Any:
    """Call a method on the HTTP JSON-RPC endpoint.

    Args:
        method: RPC method name (e.g., "insert").
        params: Named (dict) or positional (list) parameters.
        url: Endpoint URL.
        timeout: Request timeout in seconds.
        client: Existing httpx client to reuse.

    Returns:
        The ``result`` member of the response.

    Raises:
        RPCClientError: If the response carries an error object.
        httpx.HTTPError: On transport failures or non-2xx status codes.
    """
    request = RPCRequest(
        method=method,
        params=params if params is not None else {},
        id=next(_request_ids),
    )
    if client is None:
        with httpx.Client(timeout=timeout) as owned:
            http_response = owned.post(url, json=request.to_dict())
    else:
        http_response = client.post(url, json=request.to_dict(), timeout=timeout)
    http_response.raise_for_status()
    return _unwrap(RPCResponse.from_dict(http_response.json()))


def socket_call(
    socket_path: str,
    method: str,
    params: Params | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Any:
    """Call a method over the Unix socket listener.

    Raises:
        RPCClientError: If the response carries an error object.
        ConnectionError: If the server closes the connection early.
    """
    request = RPCRequest(
        method=method,
        params=params if params is not None else {},
        id=next(_request_ids),
    )
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    sock.settimeout(timeout)
    try:
        sock.connect(socket_path)
        sock.sendall(request.to_bytes())
        data = read_message_sync(sock)
    finally:
        sock.close()

    if data is None:
        raise ConnectionError("Connection closed by server")
    return _unwrap(RPCResponse.from_dict(json.loads(data)))
