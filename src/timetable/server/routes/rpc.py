"""JSON-RPC over HTTP."""

from fastapi import APIRouter, Request, Response

from timetable.rpc.server import RPCServer, encode_result

router = APIRouter()

JSON_MEDIA_TYPE = "application/json"


@router.post("")
async def rpc_endpoint(request: Request) -> Response:
    """Dispatch a JSON-RPC request or batch.

    JSON-RPC errors travel in the response body with HTTP 200; a payload
    made only of notifications gets an empty 204.
    """
    rpc_server: RPCServer = request.app.state.rpc_server
    result = await rpc_server.dispatch(await request.body())
    if result is None:
        return Response(status_code=204)
    return Response(content=encode_result(result), media_type=JSON_MEDIA_TYPE)
