# =============================================================================
# bridge/models.py  —  Data Models (the "nouns" of the bridge)
# =============================================================================
#
# These dataclasses define the shape of every piece of information that flows
# through the pipeline:
#
#   RawToolDeclaration  →  what one `@mcp` annotation block said (untrusted)
#   ToolDefinition      →  a validated tool, ready to be served
#   Registry            →  name → ToolDefinition, in scan order
#   RemoteEndpointConfig→  where (and how) remote tools are executed
#   InvocationRequest / InvocationResponse  →  the remote wire format
#
# The models carry no I/O.  Loading and saving happen in registry_store.py
# and config.py.
# =============================================================================

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


ECHO_TOOL_NAME = "echo"
ECHO_ROUTING_KEY = "echo"


# -----------------------------------------------------------------------------
# RawToolDeclaration — one parsed annotation block, before validation
# -----------------------------------------------------------------------------
# Every field except source_location is whatever the YAML payload contained:
# a string, a number, a list, None...  The compiler decides what is usable.
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class RawToolDeclaration:
    """A tool declaration exactly as it appeared in a source annotation."""

    name: Any = None
    description: Any = None
    path: Any = None
    schema: Any = None
    source_location: str = ""          # The file the block was found in

    @classmethod
    def from_mapping(cls, data: Any, source_location: str) -> "RawToolDeclaration":
        """Build a declaration from a parsed YAML payload.

        A payload that is not a mapping (a bare string, a list, an empty
        block) produces a declaration with every field set to None, which
        the compiler will then reject with a warning.
        """
        if not isinstance(data, dict):
            return cls(source_location=source_location)
        return cls(
            name=data.get("name"),
            description=data.get("description"),
            path=data.get("path"),
            schema=data.get("schema"),
            source_location=source_location,
        )


# -----------------------------------------------------------------------------
# HandlerKind — how an invocation of a tool is answered
# -----------------------------------------------------------------------------
class HandlerKind(str, Enum):
    LOCAL = "local"                    # Answered in-process (the echo tool)
    REMOTE = "remote"                  # Forwarded to the remote endpoint


# -----------------------------------------------------------------------------
# ToolDefinition — the canonical, validated tool
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class ToolDefinition:
    """A validated tool as stored in the registry.

    routing_key is the identifier sent to the remote endpoint.  It is
    persisted under the JSON key "path" so that mcp.tools.json keeps the
    layout existing projects already have.
    """

    name: str
    routing_key: str
    schema: dict[str, Any]
    description: str = ""

    @property
    def kind(self) -> HandlerKind:
        if self.name == ECHO_TOOL_NAME and self.routing_key == ECHO_ROUTING_KEY:
            return HandlerKind.LOCAL
        return HandlerKind.REMOTE

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "path": self.routing_key,
            "schema": self.schema,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolDefinition":
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise ValueError("tool entry is missing a non-empty 'name'")
        schema = data.get("schema")
        if not isinstance(schema, dict):
            raise ValueError(f"tool '{name}' has no object 'schema'")
        routing_key = data.get("path")
        description = data.get("description")
        return cls(
            name=name,
            routing_key=routing_key if isinstance(routing_key, str) and routing_key else name,
            schema=schema,
            description=description if isinstance(description, str) else "",
        )


# name → ToolDefinition.  dicts keep insertion order, which is scan order.
Registry = dict[str, ToolDefinition]


def echo_tool() -> ToolDefinition:
    """The built-in tool served when a project declares nothing."""
    return ToolDefinition(
        name=ECHO_TOOL_NAME,
        routing_key=ECHO_ROUTING_KEY,
        description=(
            "A simple tool that echoes back the input. "
            "Used as a default when no other tools are defined."
        ),
        schema={
            "type": "object",
            "properties": {
                "message": {
                    "type": "string",
                    "description": "The message to echo back.",
                },
            },
            "required": ["message"],
        },
    )


def echo_registry() -> Registry:
    tool = echo_tool()
    return {tool.name: tool}


# -----------------------------------------------------------------------------
# RemoteEndpointConfig — the single HTTP execution target
# -----------------------------------------------------------------------------
# Loaded once at server startup (see config.load_endpoint_config) and never
# mutated afterwards.  script_id / deployment_id are informational only; they
# come from the discovery step that wrote .mcp-gas.json.
# -----------------------------------------------------------------------------
DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_MAX_RETRIES = 0


@dataclass(frozen=True)
class RemoteEndpointConfig:
    """Where remote tools are executed and how hard to try."""

    endpoint_url: str
    access_token: Optional[str] = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    script_id: Optional[str] = None
    deployment_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.endpoint_url:
            raise ValueError("endpoint_url must be a non-empty string")
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {self.max_retries}")


# -----------------------------------------------------------------------------
# Remote wire format
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class InvocationRequest:
    tool: str
    args: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"tool": self.tool, "args": self.args}


@dataclass(frozen=True)
class InvocationResponse:
    """Decoded body of a remote reply.

    ok=False is a logical failure reported by the remote script itself;
    message carries the human-readable cause.
    """

    ok: bool
    result: Any = None
    message: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Any) -> "InvocationResponse":
        if not isinstance(data, dict):
            return cls(ok=False, message="Malformed response from remote endpoint")
        message = data.get("message")
        return cls(
            ok=data.get("ok") is True,
            result=data.get("result"),
            message=message if isinstance(message, str) else None,
            raw=data,
        )
