"""Data types exchanged between the controller, the relay and the editor agent."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

# A Result is the tagged mapping delivered back to the controller:
#   {"success": True, ...payload}  or  {"success": False, "error": "..."}
# Agent-produced results are passed through untouched.
Result = dict[str, Any]

NO_PEER_ERROR = "No WebSocket client connected - is Draw.io open?"
SEND_FAILED_ERROR = "Failed to send command"
TIMEOUT_ERROR = "Command timeout"

RESULT_MESSAGE_TYPE = "result"


class RelayError(Exception):
    """Base class for relay errors."""


class DuplicateCommandError(RelayError):
    """Raised when a command id is registered while still pending."""

    def __init__(self, command_id: str) -> None:
        super().__init__(f"Command id already pending: {command_id}")
        self.command_id = command_id


class ConfigError(RelayError):
    """Raised for invalid configuration values."""


def failure(error: str) -> Result:
    """Build a failure Result."""
    return {"success": False, "error": error}


def new_command_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Command:
    """A correlated instruction sent to the editor agent."""

    action: str
    params: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=new_command_id)

    def to_message(self) -> dict[str, Any]:
        """Wire form: ``{"id": ..., "action": ..., **params}``.

        Parameters never override the correlation id or the action.
        """
        message = dict(self.params)
        message["id"] = self.id
        message["action"] = self.action
        return message


@dataclass(frozen=True)
class ResultEnvelope:
    """An inbound ``{"type": "result", "commandId": ..., "result": ...}`` message."""

    command_id: str
    result: Any

    @classmethod
    def from_message(cls, message: Any) -> ResultEnvelope | None:
        """Extract a result envelope from a decoded message.

        Returns None for anything that is not a result bearing a command id.
        """
        if not isinstance(message, dict):
            return None
        if message.get("type") != RESULT_MESSAGE_TYPE:
            return None
        command_id = message.get("commandId")
        if not command_id:
            return None
        return cls(command_id=str(command_id), result=message.get("result"))
