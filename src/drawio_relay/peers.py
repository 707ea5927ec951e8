"""
Peer registry: the single editor-side connection the relay talks to.

The registry is a single slot. A new connection always takes the slot
(last connect wins) and a disconnect only clears the slot when it belongs
to the connection still occupying it.
"""

from __future__ import annotations

import json
from typing import Any

from starlette.websockets import WebSocket, WebSocketState

from drawio_relay.logging import get_logger

logger = get_logger("peers")


def _is_open(handle: WebSocket) -> bool:
    return (
        handle.client_state == WebSocketState.CONNECTED
        and handle.application_state == WebSocketState.CONNECTED
    )


def encode_payload(payload: Any) -> str:
    """Text is sent as-is, everything else as JSON."""
    if isinstance(payload, str):
        return payload
    return json.dumps(payload)


class PeerRegistry:
    """Holds at most one connected editor agent."""

    def __init__(self) -> None:
        self._client: WebSocket | None = None

    @property
    def client(self) -> WebSocket | None:
        return self._client

    @property
    def is_connected(self) -> bool:
        """True when a peer is registered and its socket is open."""
        return self._client is not None and _is_open(self._client)

    def set_client(self, handle: WebSocket) -> None:
        """Make ``handle`` the current peer, superseding any previous one."""
        if self._client is not None and self._client is not handle:
            logger.info("New editor connection supersedes the previous one")
        self._client = handle

    def clear_client(self, handle: WebSocket) -> bool:
        """Clear the current peer only if it is ``handle``.

        Returns True when the slot was cleared. A stale disconnect from a
        superseded connection leaves the newer peer in place.
        """
        if self._client is handle:
            self._client = None
            return True
        return False

    async def send(self, payload: Any) -> bool:
        """Write ``payload`` to the current peer.

        Returns False, without raising, when no peer is connected or the
        write fails.
        """
        client = self._client
        if client is None or not _is_open(client):
            return False
        try:
            await client.send_text(encode_payload(payload))
        except Exception as e:
            logger.warning("Failed to send to editor: %s", e)
            return False
        return True
