"""FastAPI application for the timetable service."""

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from timetable import __version__
from timetable.rpc import RPCServer, register_timetable_methods
from timetable.schedule import TimetableRegistry
from timetable.server.routes import health, rpc

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from timetable.config import TimetableConfig
    from timetable.store import TimetableStore

logger = logging.getLogger(__name__)


class TimetableServer:
    """Main server application.

    Owns the registry, the RPC dispatcher and the FastAPI app. Startup
    provisions the store and loads every persisted timetable; a failure
    there propagates and the app never starts serving.
    """

    def __init__(self, config: "TimetableConfig", store: "TimetableStore"):
        self._config = config
        self._store = store
        self._registry = TimetableRegistry(store)
        self._rpc_server = RPCServer(socket_path=config.rpc.socket_path)
        register_timetable_methods(self._rpc_server, self._registry)

        self._app = self._create_app()

    @property
    def app(self) -> FastAPI:
        """Get the FastAPI application."""
        return self._app

    @property
    def registry(self) -> TimetableRegistry:
        return self._registry

    @property
    def rpc_server(self) -> RPCServer:
        return self._rpc_server

    def _create_app(self) -> FastAPI:
        """Create and configure the FastAPI app."""

        @asynccontextmanager
        async def lifespan(app: FastAPI) -> "AsyncIterator[None]":
            await self._registry.load()
            if self._rpc_server.socket_path is not None:
                await self._rpc_server.start()

            yield

            logger.info("server_stopping")
            if self._rpc_server.is_running:
                await self._rpc_server.stop()
            close = getattr(self._store, "close", None)
            if close is not None:
                await close()

        app = FastAPI(
            title="Timetable",
            description="Per-resource task schedules over JSON-RPC",
            version=__version__,
            lifespan=lifespan,
        )

        app.state.server = self
        app.state.registry = self._registry
        app.state.rpc_server = self._rpc_server

        app.include_router(health.router, tags=["health"])
        app.include_router(
            rpc.router, prefix=self._config.server.rpc_path, tags=["rpc"]
        )

        return app


def create_app(config: "TimetableConfig", store: "TimetableStore") -> FastAPI:
    """Create the FastAPI application."""
    server = TimetableServer(config=config, store=store)
    return server.app
