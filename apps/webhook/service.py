"""Serving the ingress app with cooperative shutdown.

:class:`WebhookListener` runs uvicorn and watches a :class:`StopFlag`.  Once
the flag is set uvicorn stops accepting connections, lets requests already in
progress finish and releases the port; only then is the update stream closed,
so an update acknowledged with ``200`` is always delivered to the consumer.
"""

from __future__ import annotations

import asyncio
import contextlib
import math
import socket
from typing import List, Optional

import uvicorn
from fastapi import FastAPI

from lib.telemetry.logger import get_logger

from .stream import StopFlag, UpdateStream


logger = get_logger(__name__)


class _Server(uvicorn.Server):
    """uvicorn server that leaves process signals to its owner."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class WebhookListener:
    def __init__(
        self,
        app: FastAPI,
        stream: UpdateStream,
        stop_flag: StopFlag,
        host: str = "0.0.0.0",
        port: int = 8000,
        graceful_timeout: Optional[float] = None,
    ):
        self.app = app
        self.stream = stream
        self.stop_flag = stop_flag
        self.host = host
        self.port = port
        self.graceful_timeout = graceful_timeout
        self._server: Optional[_Server] = None

    @property
    def started(self) -> bool:
        return bool(self._server and self._server.started)

    def _build_server(self) -> _Server:
        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            lifespan="off",
            log_config=None,
            access_log=False,
            timeout_graceful_shutdown=(
                math.ceil(self.graceful_timeout) if self.graceful_timeout is not None else None
            ),
        )
        return _Server(config)

    async def _watch_stop(self, server: _Server) -> None:
        await self.stop_flag.wait()
        logger.info("shutdown requested, draining connections")
        server.should_exit = True

    async def serve(self, sockets: Optional[List[socket.socket]] = None) -> None:
        """Serve until the stop flag is set, then close the update stream."""

        server = self._build_server()
        self._server = server
        watcher = asyncio.create_task(self._watch_stop(server))
        try:
            await server.serve(sockets=sockets)
        finally:
            watcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await watcher
            self.stream.close()
            logger.info("webhook listener stopped")
