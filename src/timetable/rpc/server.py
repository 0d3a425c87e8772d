"""JSON-RPC 2.0 request dispatcher with an optional Unix socket listener."""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from timetable.logging import log_context
from timetable.rpc.protocol import (
    ErrorCode,
    ErrorMessage,
    Params,
    RPCMethodError,
    RPCRequest,
    RPCResponse,
    frame,
    read_message,
)

logger = logging.getLogger(__name__)

# Type for RPC method handlers
RPCHandler = Callable[[Params], Awaitable[Any]]

DispatchResult = RPCResponse | list[RPCResponse] | None


class RPCServer:
    """JSON-RPC 2.0 method registry and dispatcher.

    ``dispatch`` is transport independent: the HTTP route and the Unix
    socket listener both hand it raw request bytes. Batches are answered
    with a list of responses; notifications produce no response.
    """

    def __init__(self, socket_path: Path | None = None):
        """Initialize RPC server.

        Args:
            socket_path: Path for the Unix domain socket listener, if any.
        """
        self._socket_path = socket_path
        self._server: asyncio.Server | None = None
        self._methods: dict[str, RPCHandler] = {}
        self._running = False

    def register(self, method: str, handler: RPCHandler) -> None:
        """Register an RPC method handler.

        Args:
            method: Method name (e.g., "insert").
            handler: Async function that takes params and returns the result.
        """
        self._methods[method] = handler

    @property
    def methods(self) -> list[str]:
        return sorted(self._methods)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def dispatch(self, data: bytes) -> DispatchResult:
        """Process a raw JSON-RPC payload (single request or batch)."""
        try:
            payload = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return RPCResponse.error_response(
                None, ErrorCode.PARSE_ERROR, ErrorMessage.PARSE_ERROR, str(e)
            )

        if isinstance(payload, list):
            if not payload:
                return RPCResponse.error_response(
                    None,
                    ErrorCode.INVALID_REQUEST,
                    ErrorMessage.INVALID_REQUEST,
                    "empty batch",
                )
            responses = [await self._process_request(item) for item in payload]
            batch = [r for r in responses if r is not None]
            return batch or None

        return await self._process_request(payload)

    async def _process_request(self, payload: Any) -> RPCResponse | None:
        """Process a single decoded request."""
        if not isinstance(payload, dict):
            return RPCResponse.error_response(
                None,
                ErrorCode.INVALID_REQUEST,
                ErrorMessage.INVALID_REQUEST,
                "request must be an object",
            )

        request = RPCRequest.from_dict(payload)
        request_id = request.id

        if request.jsonrpc != "2.0":
            return RPCResponse.error_response(
                request_id,
                ErrorCode.INVALID_REQUEST,
                ErrorMessage.INVALID_REQUEST,
                "Invalid JSON-RPC version",
            )
        if not isinstance(request.method, str) or not request.method:
            return RPCResponse.error_response(
                request_id,
                ErrorCode.INVALID_REQUEST,
                ErrorMessage.INVALID_REQUEST,
                "Missing method",
            )
        if request.params is None:
            request.params = {}
        if not isinstance(request.params, (dict, list)):
            return RPCResponse.error_response(
                request_id,
                ErrorCode.INVALID_REQUEST,
                ErrorMessage.INVALID_REQUEST,
                "params must be an array or object",
            )

        response = await self._invoke(request)
        if request.is_notification:
            return None
        return response

    async def _invoke(self, request: RPCRequest) -> RPCResponse:
        handler = self._methods.get(request.method)
        if handler is None:
            return RPCResponse.error_response(
                request.id,
                ErrorCode.METHOD_NOT_FOUND,
                ErrorMessage.METHOD_NOT_FOUND,
                request.method,
            )

        try:
            with log_context(method=request.method):
                result = await handler(request.params)
            return RPCResponse.success(request.id, result)
        except RPCMethodError as e:
            logger.debug(
                "rpc_method_failed",
                extra={"rpc.method": request.method, "rpc.code": e.code},
            )
            return RPCResponse.error_response(request.id, e.code, e.message, e.data)
        except Exception as e:
            logger.exception("RPC method error", extra={"rpc.method": request.method})
            return RPCResponse.error_response(
                request.id,
                ErrorCode.INTERNAL_ERROR,
                ErrorMessage.INTERNAL_ERROR,
                str(e),
            )

    # ------------------------------------------------------------------
    # Unix socket transport
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the Unix socket listener."""
        if self._socket_path is None:
            raise RuntimeError("No socket path configured")

        self._socket_path.parent.mkdir(parents=True, exist_ok=True)
        self._socket_path.unlink(missing_ok=True)

        self._server = await asyncio.start_unix_server(
            self._handle_connection,
            path=str(self._socket_path),
        )
        self._socket_path.chmod(0o600)

        self._running = True
        logger.info("RPC server started", extra={"socket": str(self._socket_path)})

    async def stop(self) -> None:
        """Stop the Unix socket listener."""
        self._running = False

        if self._server:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

        if self._socket_path is not None:
            self._socket_path.unlink(missing_ok=True)

        logger.info("RPC server stopped")

    async def _handle_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        """Handle a client connection."""
        try:
            while self._running:
                data = await read_message(reader)
                if data is None:
                    break

                result = await self.dispatch(data)
                if result is None:
                    continue

                writer.write(encode_result(result, framed=True))
                await writer.drain()

        except Exception:
            logger.exception("Error handling RPC connection")
        finally:
            writer.close()
            await writer.wait_closed()

    @property
    def socket_path(self) -> Path | None:
        return self._socket_path

    @property
    def is_running(self) -> bool:
        return self._running


def result_to_json(result: DispatchResult) -> Any:
    """Convert a dispatch result into JSON-serializable data."""
    if result is None:
        return None
    if isinstance(result, list):
        return [response.to_dict() for response in result]
    return result.to_dict()


def encode_result(
    result: RPCResponse | list[RPCResponse], framed: bool = False
) -> bytes:
    """Encode a dispatch result as JSON bytes, optionally length-prefixed."""
    payload = result_to_json(result)
    if framed:
        return frame(payload)
    return json.dumps(payload).encode()
