# =============================================================================
# server/mcp_server.py  —  FastMCP Bridge Server
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Serves the compiled tool registry (mcp.tools.json) over MCP.  Unlike a
#   hand-written FastMCP server, the tools here are not decorated functions:
#   they are created at startup, one per registry entry, each with the
#   JSON Schema its annotation declared.
#
# HOW IT WORKS (the flow):
#   1. load_registry()         →  mcp.tools.json (or the echo tool)
#   2. load_endpoint_config()  →  .mcp-gas.json (or None, with a warning)
#   3. build_handlers()        →  echo = local, everything else = remote
#   4. BridgeTool per entry    →  registered on the FastMCP instance
#   5. mcp.run()               →  stdio transport until the process exits
#
# ERRORS:
#   A failing tool raises FastMCP's ToolError carrying the original message.
#   The agent sees the error for that call; the server keeps serving.
#
# RUNNING THIS SERVER:
#     a) python main.py start
#     b) python -m server.mcp_server
# =============================================================================

import json
import logging
from typing import Any, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.tools.tool import Tool, ToolResult
from mcp.types import TextContent
from pydantic import PrivateAttr

from bridge.config import Settings, configure_logging, load_endpoint_config
from bridge.dispatch import ToolHandler, build_handlers
from bridge.exceptions import ToolInvocationError
from bridge.models import Registry, RemoteEndpointConfig
from bridge.registry_store import load_registry
from bridge.remote_client import RemoteExecutionClient

SERVER_NAME = "gas-mcp-bridge"

logger = logging.getLogger(__name__)

# =============================================================================
# Logging Setup
# =============================================================================
# configure_logging() (bridge/config.py) sends everything to STDERR.
# Tool calls are color-coded:
#
#   CYAN   →  incoming tool calls (name + arguments)
#   GREEN  →  responses
#   YELLOW →  status lines (remote failures, missing config...)
# =============================================================================
_CYAN = "\033[36m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_RESET = "\033[0m"


def _log_request(tool_name: str, arguments: Any) -> None:
    logger.info(f"{_CYAN}{tool_name} called with: {json.dumps(arguments, default=str)}{_RESET}")


def _log_status(message: str) -> None:
    logger.info(f"{_YELLOW}  → {message}{_RESET}")


def _log_response(tool_name: str, output: dict) -> dict:
    logger.info(
        f"{_GREEN}  ← {tool_name} response: "
        f"{json.dumps(output, separators=(',', ':'), ensure_ascii=False)}{_RESET}"
    )
    return output


# =============================================================================
# BridgeTool — one registry entry as a FastMCP tool
# =============================================================================
# FastMCP normally derives a tool's input schema from a Python signature.
# Registry tools only have a JSON Schema, so we subclass Tool directly:
# `parameters` is the annotation's schema and run() hands the raw arguments
# to the bridge handler.
# =============================================================================
class BridgeTool(Tool):
    _handler: Any = PrivateAttr(default=None)

    @classmethod
    def from_handler(cls, handler: ToolHandler) -> "BridgeTool":
        tool = handler.tool
        bridge_tool = cls(
            name=tool.name,
            title=tool.name,
            description=tool.description,
            parameters=tool.schema,
        )
        bridge_tool._handler = handler
        return bridge_tool

    @property
    def handler(self) -> ToolHandler:
        return self._handler

    async def run(self, arguments: dict[str, Any]) -> ToolResult:
        _log_request(self.name, arguments)
        try:
            output = await self._handler(arguments)
        except ToolInvocationError as e:
            _log_status(f"{self.name} failed: {e}")
            raise ToolError(str(e)) from e

        _log_response(self.name, output)
        return ToolResult(
            content=[TextContent(type="text", text=block["text"]) for block in output["content"]]
        )


def build_tools(
    registry: Registry,
    endpoint_config: Optional[RemoteEndpointConfig],
) -> list[BridgeTool]:
    """Create one BridgeTool per registry entry, sharing a single remote client."""
    client = RemoteExecutionClient(endpoint_config) if endpoint_config else None
    handlers = build_handlers(registry, client)
    return [BridgeTool.from_handler(handler) for handler in handlers.values()]


def create_server(
    registry: Registry,
    endpoint_config: Optional[RemoteEndpointConfig],
) -> FastMCP:
    """Build the FastMCP server exposing every tool in registry."""
    mcp = FastMCP(SERVER_NAME)
    for tool in build_tools(registry, endpoint_config):
        mcp.add_tool(tool)
        _log_status(f"Registered {tool.handler.kind.value} tool: {tool.name}")
    return mcp


def start_server(
    settings: Optional[Settings] = None,
    tools_path: Optional[str] = None,
    config_path: Optional[str] = None,
) -> None:
    """Load registry + endpoint config and serve over stdio.  Blocks."""
    settings = settings or Settings.from_env()
    registry = load_registry(tools_path or settings.tools_path)
    endpoint_config = load_endpoint_config(config_path, settings)

    mcp = create_server(registry, endpoint_config)
    logger.info(f"{SERVER_NAME} serving {len(registry)} tools over stdio")
    mcp.run()


# =============================================================================
# Server entry point
# =============================================================================
if __name__ == "__main__":
    from dotenv import load_dotenv

    load_dotenv()
    _settings = Settings.from_env()
    configure_logging(_settings.log_level)
    start_server(_settings)
