"""Relay HTTP and websocket endpoints, served by Starlette."""
from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute
from starlette.websockets import WebSocket

from drawio_relay.ledger import CommandLedger
from drawio_relay.logging import get_logger
from drawio_relay.models import ResultEnvelope
from drawio_relay.peers import PeerRegistry

logger = get_logger("web.server")


@dataclass
class ConnectionHooks:
    """Optional callbacks fired on editor connection events."""

    on_connect: Callable[[WebSocket], Any] | None = None
    on_disconnect: Callable[[WebSocket], Any] | None = None
    on_error: Callable[[Exception, WebSocket], Any] | None = None


def route_message(ledger: CommandLedger, raw: str | bytes | None) -> bool:
    """Resolve the pending command a raw editor message answers.

    Returns True when a pending command was resolved. Malformed messages
    are logged and dropped; messages that are not results are ignored.
    """
    try:
        message = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning("Dropping malformed message from editor: %s", e)
        return False

    envelope = ResultEnvelope.from_message(message)
    if envelope is None:
        logger.debug("Ignoring non-result message from editor")
        return False
    return ledger.resolve(envelope.command_id, envelope.result)


def health_status(peers: PeerRegistry, ledger: CommandLedger) -> dict[str, Any]:
    return {
        "status": "ok",
        "wsConnected": peers.is_connected,
        "pendingCommands": ledger.size,
    }


def create_app(
    peers: PeerRegistry,
    ledger: CommandLedger,
    cors_origins: list[str] | None = None,
    hooks: ConnectionHooks | None = None,
) -> Starlette:
    """Create the relay Starlette application.

    Args:
        peers: Registry receiving the editor connection
        ledger: Ledger resolved by inbound results
        cors_origins: Allowed CORS origins (defaults to all)
        hooks: Connection event callbacks
    """
    _hooks = hooks or ConnectionHooks()

    async def health(request: Request) -> JSONResponse:
        """Relay liveness and editor status."""
        return JSONResponse(health_status(peers, ledger))

    # Endpoints of the polling transport; kept so old plugins get an answer.
    async def poll(request: Request) -> JSONResponse:
        logger.debug("Legacy poll request")
        return JSONResponse(None)

    async def result(request: Request) -> JSONResponse:
        logger.debug("Legacy result post")
        return JSONResponse({"received": True})

    async def focus(request: Request) -> JSONResponse:
        logger.debug("Legacy focus post")
        return JSONResponse({"ok": True})

    async def websocket_endpoint(websocket: WebSocket) -> None:
        """Editor agent connection; the newest one becomes the peer."""
        await websocket.accept()
        peers.set_client(websocket)
        logger.info("Editor connected from %s", websocket.client)

        try:
            if _hooks.on_connect:
                _hooks.on_connect(websocket)
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                data = message.get("text")
                if data is None and message.get("bytes") is not None:
                    data = message["bytes"].decode("utf-8", errors="replace")
                route_message(ledger, data)
        except Exception as e:
            logger.warning("Editor connection error: %s", e)
            if _hooks.on_error:
                _hooks.on_error(e, websocket)
        finally:
            if peers.clear_client(websocket):
                logger.info("Editor disconnected")
            else:
                logger.info("Superseded editor connection closed")
            if _hooks.on_disconnect:
                _hooks.on_disconnect(websocket)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/poll", poll, methods=["GET"]),
        Route("/result", result, methods=["POST"]),
        Route("/focus", focus, methods=["POST"]),
        WebSocketRoute("/", websocket_endpoint),
        WebSocketRoute("/ws", websocket_endpoint),
    ]

    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=cors_origins if cors_origins is not None else ["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )
    ]

    return Starlette(routes=routes, middleware=middleware)
