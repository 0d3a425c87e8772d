"""Tests for the JSON-RPC dispatcher and Unix socket transport."""

from __future__ import annotations

import asyncio
import json

import pytest

from timetable.rpc import (
    ErrorCode,
    RPCMethodError,
    RPCRequest,
    RPCResponse,
    RPCServer,
    read_message,
    register_timetable_methods,
)
from timetable.rpc.client import RPCClientError, socket_call
from timetable.rpc.server import encode_result, result_to_json


def _encode(payload) -> bytes:
    return json.dumps(payload).encode()


@pytest.fixture
def echo_server() -> RPCServer:
    server = RPCServer()

    async def echo(params):
        return params

    async def fail(params):
        raise RPCMethodError(-32050, "Custom failure", {"reason": "nope"})

    async def boom(params):
        raise RuntimeError("kaboom")

    server.register("echo", echo)
    server.register("fail", fail)
    server.register("boom", boom)
    return server


class TestDispatch:
    async def test_success(self, echo_server):
        response = await echo_server.dispatch(
            _encode({"jsonrpc": "2.0", "method": "echo", "params": [1, 2], "id": 7})
        )

        assert response.to_dict() == {"jsonrpc": "2.0", "id": 7, "result": [1, 2]}

    async def test_string_id_is_echoed(self, echo_server):
        response = await echo_server.dispatch(
            _encode({"jsonrpc": "2.0", "method": "echo", "params": {}, "id": "abc"})
        )

        assert response.id == "abc"

    async def test_missing_params_default_to_object(self, echo_server):
        response = await echo_server.dispatch(
            _encode({"jsonrpc": "2.0", "method": "echo", "id": 1})
        )

        assert response.result == {}

    async def test_parse_error(self, echo_server):
        response = await echo_server.dispatch(b"{not json")

        assert response.id is None
        assert response.error.code == ErrorCode.PARSE_ERROR
        assert response.error.message == "Parse error"

    async def test_request_must_be_object(self, echo_server):
        response = await echo_server.dispatch(_encode("echo"))

        assert response.error.code == ErrorCode.INVALID_REQUEST

    async def test_wrong_version(self, echo_server):
        response = await echo_server.dispatch(
            _encode({"jsonrpc": "1.0", "method": "echo", "id": 1})
        )

        assert response.error.code == ErrorCode.INVALID_REQUEST
        assert response.id == 1

    async def test_missing_method(self, echo_server):
        response = await echo_server.dispatch(_encode({"jsonrpc": "2.0", "id": 1}))

        assert response.error.code == ErrorCode.INVALID_REQUEST

    async def test_scalar_params_rejected(self, echo_server):
        response = await echo_server.dispatch(
            _encode({"jsonrpc": "2.0", "method": "echo", "params": "x", "id": 1})
        )

        assert response.error.code == ErrorCode.INVALID_REQUEST

    async def test_method_not_found(self, echo_server):
        response = await echo_server.dispatch(
            _encode({"jsonrpc": "2.0", "method": "nope", "id": 1})
        )

        assert response.error.code == ErrorCode.METHOD_NOT_FOUND
        assert response.error.message == "Method not found"
        assert response.error.data == "nope"

    async def test_method_error_is_returned(self, echo_server):
        response = await echo_server.dispatch(
            _encode({"jsonrpc": "2.0", "method": "fail", "id": 1})
        )

        assert response.to_dict()["error"] == {
            "code": -32050,
            "message": "Custom failure",
            "data": {"reason": "nope"},
        }

    async def test_unexpected_exception_is_internal_error(self, echo_server):
        response = await echo_server.dispatch(
            _encode({"jsonrpc": "2.0", "method": "boom", "id": 1})
        )

        assert response.error.code == ErrorCode.INTERNAL_ERROR
        assert response.error.data == "kaboom"

    async def test_invalid_request_carries_detail(self, echo_server):
        response = await echo_server.dispatch(
            _encode({"jsonrpc": "2.0", "method": "echo", "params": 3, "id": 1})
        )

        error = response.to_dict()["error"]
        assert "result" not in response.to_dict()
        assert error["data"] == "params must be an array or object"


class TestNotificationsAndBatches:
    async def test_notification_has_no_response(self, echo_server):
        result = await echo_server.dispatch(
            _encode({"jsonrpc": "2.0", "method": "echo", "params": [1]})
        )

        assert result is None

    async def test_failing_notification_has_no_response(self, echo_server):
        result = await echo_server.dispatch(
            _encode({"jsonrpc": "2.0", "method": "nope"})
        )

        assert result is None

    async def test_null_id_is_not_a_notification(self, echo_server):
        response = await echo_server.dispatch(
            _encode({"jsonrpc": "2.0", "method": "echo", "params": [], "id": None})
        )

        assert response is not None
        assert response.to_dict() == {"jsonrpc": "2.0", "id": None, "result": []}

    async def test_batch(self, echo_server):
        result = await echo_server.dispatch(
            _encode(
                [
                    {"jsonrpc": "2.0", "method": "echo", "params": [1], "id": 1},
                    {"jsonrpc": "2.0", "method": "echo", "params": [2]},
                    {"jsonrpc": "2.0", "method": "nope", "id": 3},
                    42,
                ]
            )
        )

        payload = result_to_json(result)
        assert [r["id"] for r in payload] == [1, 3, None]
        assert payload[0]["result"] == [1]
        assert payload[1]["error"]["code"] == ErrorCode.METHOD_NOT_FOUND
        assert payload[2]["error"]["code"] == ErrorCode.INVALID_REQUEST

    async def test_batch_of_notifications(self, echo_server):
        result = await echo_server.dispatch(
            _encode([{"jsonrpc": "2.0", "method": "echo", "params": [1]}])
        )

        assert result is None

    async def test_empty_batch(self, echo_server):
        response = await echo_server.dispatch(b"[]")

        assert response.error.code == ErrorCode.INVALID_REQUEST

    def test_encode_result_framed(self):
        framed = encode_result(RPCResponse.success(1, 0), framed=True)

        assert int.from_bytes(framed[:4], "big") == len(framed) - 4
        assert json.loads(framed[4:]) == {"jsonrpc": "2.0", "id": 1, "result": 0}


class TestRequestModel:
    def test_notification_round_trip(self):
        request = RPCRequest.from_dict({"jsonrpc": "2.0", "method": "next"})

        assert request.is_notification
        assert "id" not in request.to_dict()

    def test_request_keeps_id(self):
        request = RPCRequest.from_dict(
            {"jsonrpc": "2.0", "method": "next", "params": ["t"], "id": 4}
        )

        assert not request.is_notification
        assert request.to_dict()["id"] == 4


class TestUnixSocket:
    async def test_round_trip(self, registry, tmp_path):
        socket_path = tmp_path / "rpc.sock"
        server = RPCServer(socket_path=socket_path)
        register_timetable_methods(server, registry)

        await server.start()
        try:
            assert server.is_running
            assert socket_path.exists()

            reader, writer = await asyncio.open_unix_connection(str(socket_path))
            request = RPCRequest(
                method="insert", params=["t", "a", "2030-01-01T09:00:00Z"], id=1
            )
            writer.write(request.to_bytes())
            await writer.drain()

            data = await read_message(reader)
            assert json.loads(data) == {"jsonrpc": "2.0", "id": 1, "result": 0}

            writer.close()
            await writer.wait_closed()

            result = await asyncio.to_thread(
                socket_call, str(socket_path), "get", ["t"]
            )
            assert result == {
                "key": "t",
                "schedule": [{"id": "a", "runAt": "2030-01-01T09:00:00Z"}],
            }

            with pytest.raises(RPCClientError) as exc_info:
                await asyncio.to_thread(socket_call, str(socket_path), "get", ["x"])
            assert exc_info.value.code == ErrorCode.TIMETABLE_NOT_FOUND
        finally:
            await server.stop()

        assert not server.is_running
        assert not socket_path.exists()

    async def test_start_without_socket_path(self):
        with pytest.raises(RuntimeError, match="No socket path"):
            await RPCServer().start()
