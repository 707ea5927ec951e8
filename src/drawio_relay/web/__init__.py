"""HTTP and websocket surface of the relay."""
from __future__ import annotations

from drawio_relay.web.server import ConnectionHooks, create_app, health_status, route_message

__all__ = ["ConnectionHooks", "create_app", "health_status", "route_message"]
