"""Timetable RPC method handlers."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from timetable.logging import log_context
from timetable.rpc.protocol import ErrorCode, ErrorMessage, Params, RPCMethodError
from timetable.schedule import (
    TimetableError,
    TimetableNotFoundError,
    TimetableRegistry,
)

if TYPE_CHECKING:
    from timetable.rpc.server import RPCServer

logger = logging.getLogger(__name__)

REMOVED = 0
NOT_SCHEDULED = -1

_FIELD_LABELS = {
    "key": "timetable key",
    "id": "task id",
    "runAt": "task runAt",
}


def register_timetable_methods(
    server: "RPCServer", registry: TimetableRegistry
) -> None:
    """Register timetable RPC methods.

    Every method accepts named params (``{"key": ...}``) or positional
    params in the documented order.

    Args:
        server: RPC server to register methods on.
        registry: Registry holding the live timetables.
    """

    async def get(params: Params) -> dict[str, Any]:
        """Return a timetable by key.

        Params:
            key: Timetable key (required)
        """
        p = _parse_params(params, "key")
        with _domain_errors(p["key"]):
            timetable = await registry.get(p["key"])
        return timetable.to_dict()

    async def get_all(params: Params) -> list[dict[str, Any]]:
        """Return every timetable."""
        return [timetable.to_dict() for timetable in await registry.get_all()]

    async def insert(params: Params) -> int:
        """Add a task to a timetable, creating the timetable if needed.

        Params:
            key: Timetable key (required)
            id: Task id (required)
            runAt: RFC 3339 run time, also the slot key (required)
        """
        p = _parse_params(params, "key", "id", "runAt")
        with _domain_errors(p["key"]):
            await registry.insert(p["key"], p["id"], p["runAt"])
        return 0

    async def remove(params: Params) -> int:
        """Remove the task at ``runAt``; -1 if nothing was scheduled there.

        Params:
            key: Timetable key (required)
            runAt: Run time of the task to remove (required)
        """
        p = _parse_params(params, "key", "runAt")
        with _domain_errors(p["key"]):
            removed = await registry.remove(p["key"], p["runAt"])
        return REMOVED if removed else NOT_SCHEDULED

    async def next_task(params: Params) -> dict[str, str] | None:
        """Return the next scheduled task, or null for an empty timetable.

        Params:
            key: Timetable key (required)
        """
        p = _parse_params(params, "key")
        with _domain_errors(p["key"]):
            task = await registry.next(p["key"])
        return task.to_dict() if task else None

    async def delay(params: Params) -> int:
        """Return minutes until the next scheduled task.

        Params:
            key: Timetable key (required)
        """
        p = _parse_params(params, "key")
        with _domain_errors(p["key"]):
            return await registry.delay(p["key"])

    server.register("delay", delay)
    server.register("get", get)
    server.register("getAll", get_all)
    server.register("insert", insert)
    server.register("next", next_task)
    server.register("remove", remove)

    logger.debug("Registered timetable RPC methods")


def _parse_params(params: Params, *names: str) -> dict[str, str]:
    """Extract required string params from named or positional params.

    Raises:
        RPCMethodError: With INVALID_PARAMS if a param is missing or not a
            non-empty string, or if the positional arity does not match.
    """
    if isinstance(params, list):
        if len(params) != len(names):
            raise _invalid_params(_arity_message(names))
        values = dict(zip(names, params, strict=True))
    else:
        values = {name: params.get(name) for name in names}

    for name in names:
        label = _FIELD_LABELS[name]
        value = values[name]
        if value is None or value == "":
            raise _invalid_params(f"{label} is required")
        if not isinstance(value, str):
            raise _invalid_params(f"{label} must be a string")
    return values


def _arity_message(names: tuple[str, ...]) -> str:
    if len(names) == 1:
        return f"{names[0]} parameter is required"
    if len(names) == 2:
        return f"{names[0]} and {names[1]} parameters are required"
    return f"{', '.join(names[:-1])}, and {names[-1]} parameters are required"


def _invalid_params(detail: str) -> RPCMethodError:
    return RPCMethodError(ErrorCode.INVALID_PARAMS, ErrorMessage.INVALID_PARAMS, detail)


@contextmanager
def _domain_errors(key: str) -> Iterator[None]:
    """Translate engine errors into JSON-RPC error objects."""
    try:
        with log_context(key=key):
            yield
    except TimetableNotFoundError as e:
        raise RPCMethodError(
            ErrorCode.TIMETABLE_NOT_FOUND, ErrorMessage.TIMETABLE_NOT_FOUND, e.key
        ) from e
    except TimetableError as e:
        raise RPCMethodError(
            ErrorCode.SERVER_ERROR, ErrorMessage.SERVER_ERROR, str(e)
        ) from e
