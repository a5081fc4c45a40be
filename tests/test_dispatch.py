"""Tests for tool handlers."""

import json

import pytest

from conftest import make_response, patched_http

from bridge.dispatch import (
    LocalEchoHandler,
    RemoteToolHandler,
    build_handler,
    build_handlers,
    text_content,
)
from bridge.exceptions import EndpointNotConfiguredError, ToolInvocationError
from bridge.models import HandlerKind, RemoteEndpointConfig, ToolDefinition, echo_tool
from bridge.remote_client import RemoteExecutionClient

REMOTE_TOOL = ToolDefinition(
    name="sheet.appendRow",
    routing_key="sheet_appendRow",
    schema={"type": "object"},
)


def _payload(output):
    [block] = output["content"]
    assert block["type"] == "text"
    return json.loads(block["text"])


def _client():
    return RemoteExecutionClient(RemoteEndpointConfig(endpoint_url="https://example.test/exec"))


class TestTextContent:

    def test_pretty_prints_json(self):
        output = text_content({"a": [1, 2]})
        assert output["content"][0]["text"] == '{\n  "a": [\n    1,\n    2\n  ]\n}'


class TestLocalEchoHandler:

    @pytest.mark.asyncio
    async def test_echoes_message_without_network(self):
        with patched_http(make_response()) as mock_client:
            output = await LocalEchoHandler(echo_tool())({"message": "hi"})

        payload = _payload(output)
        assert payload["testTool"] is True
        assert payload["inputReceived"]["message"] == "hi"
        assert "@mcp" in payload["howToAnnotate"]["template"]
        assert "@mcp" in payload["howToAnnotate"]["example"]
        assert payload["note"]
        mock_client.post.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("args", [{}, {"message": 5}, None])
    async def test_rejects_missing_message(self, args):
        with pytest.raises(ToolInvocationError, match="message"):
            await LocalEchoHandler(echo_tool())(args)


class TestRemoteToolHandler:

    @pytest.mark.asyncio
    async def test_forwards_routing_key_and_args(self):
        body = {"ok": True, "result": {"row": 7}}
        with patched_http(make_response(body=body)) as mock_client:
            output = await RemoteToolHandler(REMOTE_TOOL, _client())({"values": ["a"]})

        assert _payload(output) == {"row": 7}
        assert mock_client.post.call_args.kwargs["json"] == {
            "tool": "sheet_appendRow",
            "args": {"values": ["a"]},
        }

    @pytest.mark.asyncio
    async def test_missing_endpoint_config(self):
        with patched_http(make_response()) as mock_client:
            with pytest.raises(EndpointNotConfiguredError, match=".mcp-gas.json"):
                await RemoteToolHandler(REMOTE_TOOL, None)({"values": []})
        mock_client.post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remote_failure_is_wrapped(self):
        body = {"ok": False, "message": "Sheet not found"}
        with patched_http(make_response(body=body)):
            with pytest.raises(ToolInvocationError) as exc_info:
                await RemoteToolHandler(REMOTE_TOOL, _client())({})
        assert str(exc_info.value) == "Tool execution failed: Sheet not found"


class TestBuildHandlers:

    def test_echo_is_local_everything_else_remote(self):
        client = _client()
        registry = {"echo": echo_tool(), REMOTE_TOOL.name: REMOTE_TOOL}
        handlers = build_handlers(registry, client)

        assert list(handlers) == ["echo", "sheet.appendRow"]
        assert handlers["echo"].kind is HandlerKind.LOCAL
        assert handlers["sheet.appendRow"].kind is HandlerKind.REMOTE
        assert handlers["sheet.appendRow"].client is client

    def test_echo_name_with_other_routing_key_is_remote(self):
        tool = ToolDefinition(name="echo", routing_key="Echo.gs", schema={"type": "object"})
        assert isinstance(build_handler(tool, None), RemoteToolHandler)
