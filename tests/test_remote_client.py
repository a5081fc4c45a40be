"""Tests for the remote execution client (HTTP is mocked)."""

import asyncio

import httpx
import pytest

from conftest import make_response, no_sleep, patched_http

from bridge.exceptions import RemoteClientError
from bridge.models import RemoteEndpointConfig
from bridge.remote_client import RemoteExecutionClient, backoff_delay, call_remote

ENDPOINT = "https://script.google.com/macros/s/deployment/exec"


def _client(max_retries=0, token=None, timeout_ms=30_000, sleep=no_sleep):
    config = RemoteEndpointConfig(
        endpoint_url=ENDPOINT,
        access_token=token,
        timeout_ms=timeout_ms,
        max_retries=max_retries,
    )
    return RemoteExecutionClient(config, sleep=sleep)


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


class TestBackoffDelay:

    def test_doubles_then_caps(self):
        assert [backoff_delay(i) for i in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]


class TestCallTool:

    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self):
        ok = make_response(body={"ok": True, "result": {"rows": 3}})
        with patched_http(ok) as mock_client:
            result = await _client(max_retries=2).call_tool("sheet.read", {"range": "A1:B3"})

        assert result == {"rows": 3}
        assert mock_client.post.await_count == 1
        args, kwargs = mock_client.post.call_args
        assert args[0] == ENDPOINT
        assert kwargs["json"] == {"tool": "sheet.read", "args": {"range": "A1:B3"}}
        assert kwargs["headers"] == {"Content-Type": "application/json"}

    @pytest.mark.asyncio
    async def test_result_may_be_missing(self):
        with patched_http(make_response(body={"ok": True})):
            assert await _client().call_tool("noop", {}) is None

    @pytest.mark.asyncio
    async def test_sends_bearer_token(self):
        with patched_http(make_response(body={"ok": True, "result": 1})) as mock_client:
            await _client(token="abc123").call_tool("t", {})
        headers = mock_client.post.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer abc123"

    @pytest.mark.asyncio
    async def test_follows_redirects(self):
        with patched_http(make_response(body={"ok": True})):
            await _client(timeout_ms=2_500).call_tool("t", {})
            httpx.AsyncClient.assert_called_once_with(timeout=2.5, follow_redirects=True)

    @pytest.mark.asyncio
    async def test_logical_failure_is_retried_then_raised(self):
        failure = make_response(body={"ok": False, "message": "X"})
        sleep = RecordingSleep()
        with patched_http(failure) as mock_client:
            with pytest.raises(RemoteClientError) as exc_info:
                await _client(max_retries=2, sleep=sleep).call_tool("t", {})

        assert mock_client.post.await_count == 3
        assert exc_info.value.message == "X"
        assert exc_info.value.status_code == 200
        assert exc_info.value.response.ok is False
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_failure_without_message(self):
        with patched_http(make_response(body={"ok": False})):
            with pytest.raises(RemoteClientError, match="Remote execution failed"):
                await _client().call_tool("t", {})

    @pytest.mark.asyncio
    async def test_unauthorized(self):
        body = {"ok": False, "message": "unauthorized"}
        with patched_http(make_response(body=body)):
            with pytest.raises(RemoteClientError) as exc_info:
                await _client(token="wrong").call_tool("t", {})
        assert exc_info.value.message == "unauthorized"

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        with patched_http(make_response(500, reason="Internal Server Error")):
            with pytest.raises(RemoteClientError) as exc_info:
                await _client().call_tool("t", {})
        assert exc_info.value.message == "HTTP 500: Internal Server Error"
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_transport_timeout(self):
        with patched_http(httpx.ReadTimeout("slow")):
            with pytest.raises(RemoteClientError) as exc_info:
                await _client(timeout_ms=1_000).call_tool("t", {})
        assert exc_info.value.message == "Request timeout after 1000ms"
        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_hard_timeout(self):
        async def _hang(*args, **kwargs):
            await asyncio.sleep(10)

        with patched_http(make_response()) as mock_client:
            mock_client.post.side_effect = _hang
            with pytest.raises(RemoteClientError, match="Request timeout after 50ms"):
                await _client(timeout_ms=50).call_tool("t", {})

    @pytest.mark.asyncio
    async def test_network_error(self):
        with patched_http(httpx.ConnectError("connection refused")):
            with pytest.raises(RemoteClientError) as exc_info:
                await _client().call_tool("t", {})
        assert exc_info.value.message == "Network error: connection refused"

    @pytest.mark.asyncio
    async def test_invalid_json_body(self):
        with patched_http(make_response(body=ValueError("Expecting value"))):
            with pytest.raises(RemoteClientError, match="not valid JSON"):
                await _client().call_tool("t", {})

    @pytest.mark.asyncio
    async def test_non_object_body(self):
        with patched_http(make_response(body=["ok"])):
            with pytest.raises(RemoteClientError, match="Malformed response"):
                await _client().call_tool("t", {})

    @pytest.mark.asyncio
    async def test_succeeds_on_retry(self):
        outcomes = (
            httpx.ConnectError("down"),
            make_response(503, reason="Service Unavailable"),
            make_response(body={"ok": True, "result": "done"}),
        )
        with patched_http(*outcomes) as mock_client:
            result = await _client(max_retries=3).call_tool("t", {})

        assert result == "done"
        assert mock_client.post.await_count == 3

    @pytest.mark.asyncio
    async def test_no_retries_by_default(self):
        with patched_http(make_response(502, reason="Bad Gateway")) as mock_client:
            with pytest.raises(RemoteClientError):
                await _client().call_tool("t", {})
        assert mock_client.post.await_count == 1


class TestCallRemote:

    @pytest.mark.asyncio
    async def test_one_off_call(self):
        with patched_http(make_response(body={"ok": True, "result": [1, 2]})) as mock_client:
            result = await call_remote(ENDPOINT, "list", {"n": 2}, token="tok")

        assert result == [1, 2]
        kwargs = mock_client.post.call_args.kwargs
        assert kwargs["json"] == {"tool": "list", "args": {"n": 2}}
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
