"""
Draw.io Relay - lets an AI agent drive a running Draw.io editor.

The relay sits between an MCP controller and a Draw.io plugin connected
over a websocket. Commands are correlated by id, forwarded to the single
connected editor, and their results routed back to the waiting caller,
with a timeout so no caller waits forever.

Example:
    from drawio_relay import Relay, RelayConfig

    relay = Relay(RelayConfig(port=3000))
    await relay.start()

    result = await relay.dispatcher.execute_script("return graph.getModel().cells")
    if not result["success"]:
        print(result["error"])

    await relay.stop()
"""

from drawio_relay.config import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_HTTP_PORT,
    LEGACY_COMMAND_TIMEOUT,
    RelayConfig,
    load_config,
)
from drawio_relay.controller import create_mcp_server
from drawio_relay.dispatcher import CommandDispatcher
from drawio_relay.ledger import CommandLedger, PendingEntry
from drawio_relay.models import (
    NO_PEER_ERROR,
    SEND_FAILED_ERROR,
    TIMEOUT_ERROR,
    Command,
    ConfigError,
    DuplicateCommandError,
    RelayError,
    Result,
    ResultEnvelope,
    failure,
)
from drawio_relay.peers import PeerRegistry
from drawio_relay.relay import Relay
from drawio_relay.web.server import ConnectionHooks, create_app

__version__ = "0.1.0"

__all__ = [
    # Relay
    "Relay",
    "RelayConfig",
    "load_config",
    "DEFAULT_COMMAND_TIMEOUT",
    "DEFAULT_HTTP_PORT",
    "LEGACY_COMMAND_TIMEOUT",
    # Components
    "CommandLedger",
    "PendingEntry",
    "PeerRegistry",
    "CommandDispatcher",
    "ConnectionHooks",
    "create_app",
    "create_mcp_server",
    # Models
    "Command",
    "Result",
    "ResultEnvelope",
    "failure",
    "NO_PEER_ERROR",
    "SEND_FAILED_ERROR",
    "TIMEOUT_ERROR",
    # Errors
    "RelayError",
    "ConfigError",
    "DuplicateCommandError",
]
