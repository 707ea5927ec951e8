"""
MCP controller surface.

Exposes the dispatcher to an MCP client (the AI agent) as a single tool,
``execute_script``. The script is opaque here: the editor-side agent
evaluates it against the live diagram and reports a Result.
"""

from __future__ import annotations

import json
from typing import Annotated

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from drawio_relay.dispatcher import EXECUTE_SCRIPT, CommandDispatcher
from drawio_relay.logging import get_logger

logger = get_logger("controller")

EXECUTE_SCRIPT_DESCRIPTION = (
    "Execute JavaScript in the open Draw.io editor. The variables graph, ui, "
    "editor and model are available; the script's return value is reported "
    "as result. Returns JSON with success, and result or error."
)


def create_mcp_server(dispatcher: CommandDispatcher, name: str = "drawio-relay") -> FastMCP:
    """Create an MCP server whose tools forward to ``dispatcher``."""
    mcp = FastMCP(name)

    @mcp.tool(name=EXECUTE_SCRIPT, description=EXECUTE_SCRIPT_DESCRIPTION)
    async def execute_script(
        script: Annotated[str, Field(description="JavaScript code to run against the diagram")],
    ) -> str:
        result = await dispatcher.execute_script(script)
        if isinstance(result, dict) and not result.get("success", False):
            logger.info("execute_script failed: %s", result.get("error"))
        return json.dumps(result)

    return mcp
