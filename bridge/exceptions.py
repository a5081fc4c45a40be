"""Exceptions raised by the bridge pipeline."""

from typing import Optional

from bridge.models import InvocationResponse


class BridgeError(Exception):
    """Base class for every error the bridge raises on purpose."""


class AnnotationParseError(BridgeError):
    """An `@mcp` block whose payload is not valid YAML."""

    def __init__(self, source_location: str, reason: str) -> None:
        self.source_location = source_location
        super().__init__(f"Could not parse annotation in {source_location}: {reason}")


class NoToolDefinitionsError(BridgeError):
    """Strict mode is on and the project declares no usable tools."""

    def __init__(self) -> None:
        super().__init__("MCP_STRICT mode is enabled and no tool definitions found.")


class RemoteClientError(BridgeError):
    """A remote call failed after every allowed attempt.

    status_code is set when the endpoint answered over HTTP; response is set
    when it answered with a decodable body reporting ok=false.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[InvocationResponse] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


class ToolInvocationError(BridgeError):
    """A tool call failed; the message is reported back to the calling agent."""


class EndpointNotConfiguredError(ToolInvocationError):
    def __init__(self) -> None:
        super().__init__(
            "Remote endpoint configuration not found. "
            "Create .mcp-gas.json (or set MCP_GAS_CONFIG_PATH) and restart the server."
        )
