"""Uvicorn lifecycle for the timetable service."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from typing import TYPE_CHECKING

import uvicorn

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class ServerRunner:
    """Serves the app until SIGTERM/SIGINT.

    The first signal lets uvicorn drain and run the lifespan shutdown (which
    closes the store); a second one exits immediately.
    """

    def __init__(self, app: FastAPI, *, host: str, port: int) -> None:
        self._app = app
        self._host = host
        self._port = port
        self._signals_received = 0

    def _on_signal(self, server: uvicorn.Server) -> None:
        self._signals_received += 1
        if self._signals_received > 1:
            logger.warning("server_force_shutdown")
            os._exit(1)
        logger.info("server_shutting_down")
        server.should_exit = True

    async def run(self) -> None:
        server = uvicorn.Server(
            uvicorn.Config(
                self._app,
                host=self._host,
                port=self._port,
                log_level="info",
                log_config=None,  # handlers come from configure_logging
            )
        )

        loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            loop.add_signal_handler(sig, self._on_signal, server)

        await server.serve()
        # uvicorn logs lifespan startup errors and returns instead of raising
        if not server.started:
            raise RuntimeError("Server failed to start")
