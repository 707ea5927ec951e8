"""Command dispatcher: send a correlated command and await its result."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from drawio_relay.config import DEFAULT_COMMAND_TIMEOUT
from drawio_relay.ledger import CommandLedger
from drawio_relay.logging import get_logger
from drawio_relay.models import (
    NO_PEER_ERROR,
    SEND_FAILED_ERROR,
    TIMEOUT_ERROR,
    Command,
    Result,
    failure,
    new_command_id,
)
from drawio_relay.peers import PeerRegistry

logger = get_logger("dispatcher")

EXECUTE_SCRIPT = "execute_script"


class CommandDispatcher:
    """Turns ``(action, params)`` into a Result from the editor agent.

    ``send_command`` never raises for operational failures. A missing peer,
    a failed write and a timeout all come back as ``{"success": False,
    "error": ...}``; agent results are returned exactly as received.
    """

    def __init__(
        self,
        peers: PeerRegistry,
        ledger: CommandLedger,
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
        id_factory: Callable[[], str] = new_command_id,
    ) -> None:
        self.peers = peers
        self.ledger = ledger
        self.timeout = timeout
        self._id_factory = id_factory

    async def send_command(self, action: str, params: dict[str, Any] | None = None) -> Result:
        """Send ``action`` to the connected editor and wait for its Result."""
        if not self.peers.is_connected:
            logger.warning("Rejected %s: no editor connected", action)
            return failure(NO_PEER_ERROR)

        loop = asyncio.get_running_loop()
        future: asyncio.Future[Result] = loop.create_future()
        command = Command(action=action, params=dict(params or {}), id=self._id_factory())

        def resolver(result: Result) -> None:
            if not future.done():
                future.set_result(result)

        def on_timeout() -> None:
            if self.ledger.remove(command.id):
                logger.warning("Command %s (%s) timed out after %ss", action, command.id, self.timeout)
                resolver(failure(TIMEOUT_ERROR))

        timeout_handle = loop.call_later(self.timeout, on_timeout)
        # Registered before sending so a fast reply always finds its entry
        self.ledger.add(command.id, resolver, timeout_handle)

        logger.debug("Dispatching %s (%s)", action, command.id)
        if not await self.peers.send(command.to_message()):
            self.ledger.remove(command.id)
            logger.warning("Failed to send %s (%s)", action, command.id)
            return failure(SEND_FAILED_ERROR)

        try:
            result = await future
        except asyncio.CancelledError:
            self.ledger.remove(command.id)
            raise
        logger.debug("Command %s (%s) finished", action, command.id)
        return result

    async def execute_script(self, script: str) -> Result:
        """Run an opaque script against the editor's diagram."""
        return await self.send_command(EXECUTE_SCRIPT, {"script": script})
