"""
The relay process: one ledger, one peer registry, one dispatcher and the
Starlette app that feeds them, run under uvicorn.

Example:
    relay = Relay(RelayConfig(port=0, command_timeout=5))
    port = await relay.start()
    result = await relay.send_command("execute_script", {"script": "return 1+1"})
    await relay.stop()
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import uvicorn
from starlette.websockets import WebSocket

from drawio_relay.config import RelayConfig
from drawio_relay.dispatcher import CommandDispatcher
from drawio_relay.ledger import CommandLedger
from drawio_relay.logging import get_logger
from drawio_relay.models import RelayError, Result
from drawio_relay.peers import PeerRegistry
from drawio_relay.web.server import ConnectionHooks, create_app, health_status

logger = get_logger("relay")


class Relay:
    """Owns the relay state and the HTTP/websocket server."""

    def __init__(
        self,
        config: RelayConfig | None = None,
        on_connect: Callable[[WebSocket], Any] | None = None,
        on_disconnect: Callable[[WebSocket], Any] | None = None,
        on_error: Callable[[Exception, WebSocket], Any] | None = None,
    ) -> None:
        self.config = config or RelayConfig()
        self.ledger = CommandLedger()
        self.peers = PeerRegistry()
        self.dispatcher = CommandDispatcher(
            self.peers, self.ledger, timeout=self.config.command_timeout
        )
        self.app = create_app(
            self.peers,
            self.ledger,
            cors_origins=self.config.cors_origins,
            hooks=ConnectionHooks(on_connect, on_disconnect, on_error),
        )
        self.port: int | None = None
        self._server: uvicorn.Server | None = None
        self._serve_task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._serve_task is not None and not self._serve_task.done()

    def health(self) -> dict[str, Any]:
        return health_status(self.peers, self.ledger)

    async def send_command(self, action: str, params: dict[str, Any] | None = None) -> Result:
        return await self.dispatcher.send_command(action, params)

    async def start(self) -> int:
        """Start serving in the background; returns the bound port."""
        if self.is_running:
            raise RelayError("Relay is already running")

        server_config = uvicorn.Config(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower(),
            # Keep uvicorn off stdout, which carries the MCP stdio protocol
            log_config=None,
            access_log=False,
            lifespan="off",
        )
        self._server = uvicorn.Server(server_config)
        self._serve_task = asyncio.create_task(self._server.serve())

        while not self._server.started:
            if self._serve_task.done():
                # Surface the startup exception, if any
                self._serve_task.result()
                raise RelayError(
                    f"Relay failed to start on {self.config.host}:{self.config.port}"
                )
            await asyncio.sleep(0.01)

        self.port = self._server.servers[0].sockets[0].getsockname()[1]
        logger.info("Relay listening on %s:%s", self.config.host, self.port)
        return self.port

    async def stop(self) -> None:
        """Abandon pending commands and shut the server down."""
        self.ledger.clear()
        if self._server is None or self._serve_task is None:
            return
        self._server.should_exit = True
        await self._serve_task
        self._server = None
        self._serve_task = None
        logger.info("Relay stopped")

    async def serve_forever(self) -> None:
        """Start and block until the server exits."""
        await self.start()
        try:
            if self._serve_task is not None:
                await self._serve_task
        finally:
            await self.stop()
