# =============================================================================
# bridge/dispatch.py  —  What happens when a tool is invoked
# =============================================================================
#
# Every ToolDefinition gets exactly one handler, chosen by its kind:
#
#   HandlerKind.LOCAL   →  LocalEchoHandler   (answers in-process, no network)
#   HandlerKind.REMOTE  →  RemoteToolHandler  (forwards to the remote endpoint)
#
# A handler is an async callable taking the invocation's raw arguments and
# returning MCP-style output:
#
#   {"content": [{"type": "text", "text": "<json>"}]}
#
# Failures are raised as ToolInvocationError; server/mcp_server.py turns them
# into protocol errors for the calling agent.  Nothing here imports FastMCP.
# =============================================================================

import json
import logging
from typing import Any, Optional, Union

from bridge.exceptions import EndpointNotConfiguredError, RemoteClientError, ToolInvocationError
from bridge.models import HandlerKind, Registry, ToolDefinition
from bridge.remote_client import RemoteExecutionClient

logger = logging.getLogger(__name__)


ANNOTATION_TEMPLATE = "\n".join([
    "/* @mcp",
    "name: <tool.name>",
    "description: <description (optional)>",
    "path: <routing key (optional)>",
    "schema:",
    "  type: object",
    "  properties:",
    "    <paramA>: { type: string }",
    "  required: [<paramA>]",
    "*/",
])

ANNOTATION_EXAMPLE = "\n".join([
    "/* @mcp",
    "name: sheet.appendRow",
    "description: Append one row to a sheet",
    "path: sheet.appendRow",
    "schema:",
    "  type: object",
    "  properties:",
    "    values: { type: array, items: { type: string } }",
    "  required: [values]",
    "*/",
])


def text_content(payload: Any) -> dict[str, Any]:
    """Wrap payload as a single MCP text block (pretty JSON)."""
    return {
        "content": [
            {"type": "text", "text": json.dumps(payload, indent=2, ensure_ascii=False)},
        ]
    }


class LocalEchoHandler:
    """The built-in echo tool: returns the input plus annotation guidance."""

    kind = HandlerKind.LOCAL

    def __init__(self, tool: ToolDefinition) -> None:
        self.tool = tool

    async def __call__(self, args: Any) -> dict[str, Any]:
        message = args.get("message") if isinstance(args, dict) else None
        if not isinstance(message, str):
            raise ToolInvocationError("echo expects a string field 'message'.")

        return text_content({
            "testTool": True,
            "note": (
                "This is a placeholder test tool. Add /* @mcp ... */ annotations "
                "to your source files, then run the build command again."
            ),
            "inputReceived": {"message": message},
            "howToAnnotate": {
                "template": ANNOTATION_TEMPLATE,
                "example": ANNOTATION_EXAMPLE,
            },
        })


class RemoteToolHandler:
    """Forwards an invocation to the remote endpoint under the tool's routing key."""

    kind = HandlerKind.REMOTE

    def __init__(self, tool: ToolDefinition, client: Optional[RemoteExecutionClient]) -> None:
        self.tool = tool
        self.client = client

    async def __call__(self, args: Any) -> dict[str, Any]:
        if self.client is None:
            raise EndpointNotConfiguredError()

        try:
            result = await self.client.call_tool(self.tool.routing_key, args)
        except RemoteClientError as e:
            logger.error(f"Tool {self.tool.name} failed: {e.message}")
            raise ToolInvocationError(f"Tool execution failed: {e.message}") from e
        return text_content(result)


ToolHandler = Union[LocalEchoHandler, RemoteToolHandler]


def build_handler(tool: ToolDefinition, client: Optional[RemoteExecutionClient]) -> ToolHandler:
    if tool.kind is HandlerKind.LOCAL:
        return LocalEchoHandler(tool)
    return RemoteToolHandler(tool, client)


def build_handlers(
    registry: Registry,
    client: Optional[RemoteExecutionClient],
) -> dict[str, ToolHandler]:
    """One handler per registry entry, keyed by tool name, in registry order."""
    return {name: build_handler(tool, client) for name, tool in registry.items()}
