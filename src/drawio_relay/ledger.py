"""
Command ledger: in-flight command ids, their resolvers and timeout timers.

Each pending entry leaves the ledger exactly once, through ``resolve`` (a
reply arrived), ``remove`` (timeout fired or the send failed) or
``clear`` (shutdown). Whichever path runs first wins; the others see an
unknown id and return False.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from drawio_relay.logging import get_logger
from drawio_relay.models import DuplicateCommandError, Result

logger = get_logger("ledger")

Resolver = Callable[[Result], Any]


class TimeoutHandle(Protocol):
    """Anything cancellable, typically an ``asyncio.TimerHandle``."""

    def cancel(self) -> Any: ...


@dataclass
class PendingEntry:
    """A command waiting for its result."""

    command_id: str
    resolver: Resolver
    timeout_handle: TimeoutHandle | None = None

    def cancel_timer(self) -> None:
        if self.timeout_handle is not None:
            self.timeout_handle.cancel()


class CommandLedger:
    """Tracks pending commands by correlation id."""

    def __init__(self) -> None:
        self._pending: dict[str, PendingEntry] = {}

    @property
    def size(self) -> int:
        """Number of commands awaiting a result."""
        return len(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    def add(
        self,
        command_id: str,
        resolver: Resolver,
        timeout_handle: TimeoutHandle | None = None,
    ) -> None:
        """Register a pending command.

        Raises:
            DuplicateCommandError: if ``command_id`` is already pending.
        """
        if command_id in self._pending:
            raise DuplicateCommandError(command_id)
        self._pending[command_id] = PendingEntry(command_id, resolver, timeout_handle)

    def resolve(self, command_id: str, result: Result) -> bool:
        """Deliver ``result`` to the command's resolver.

        Returns False for unknown or already finished ids; a late reply for
        a command that timed out lands here and is dropped.
        """
        entry = self._pending.pop(command_id, None)
        if entry is None:
            logger.debug("Ignoring result for unknown command %s", command_id)
            return False
        entry.cancel_timer()
        entry.resolver(result)
        return True

    def remove(self, command_id: str) -> bool:
        """Drop a pending command without invoking its resolver."""
        entry = self._pending.pop(command_id, None)
        if entry is None:
            return False
        entry.cancel_timer()
        return True

    def has(self, command_id: str) -> bool:
        return command_id in self._pending

    def clear(self) -> None:
        """Cancel every timer and drop every entry; resolvers are not called."""
        if self._pending:
            logger.info("Abandoning %d pending command(s)", len(self._pending))
        for entry in self._pending.values():
            entry.cancel_timer()
        self._pending.clear()
