"""Shared pytest fixtures for drawio-relay tests."""

from __future__ import annotations

import pytest

from drawio_relay import CommandDispatcher, CommandLedger, PeerRegistry
from test_helpers import FakeSocket


@pytest.fixture
def ledger() -> CommandLedger:
    return CommandLedger()


@pytest.fixture
def peers() -> PeerRegistry:
    return PeerRegistry()


@pytest.fixture
def socket() -> FakeSocket:
    return FakeSocket()


@pytest.fixture
def dispatcher(peers: PeerRegistry, ledger: CommandLedger) -> CommandDispatcher:
    """Dispatcher with a short timeout."""
    return CommandDispatcher(peers, ledger, timeout=0.1)
