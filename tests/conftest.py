"""Shared fixtures for the gas-mcp-bridge test suite."""

from contextlib import contextmanager
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest


ENV_KEYS = (
    "MCP_STRICT",
    "MCP_MODE",
    "MCP_TIMEOUT_MS",
    "MCP_RETRY",
    "GAS_API_TOKEN",
    "MCP_GAS_CONFIG_PATH",
    "MCP_TOOLS_PATH",
    "MCP_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_bridge_env(monkeypatch):
    """Keep a developer's exported MCP_* variables out of the tests."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def write_source(tmp_path):
    """Write a file below tmp_path, creating parent directories."""

    def _write(relative: str, content: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


def make_response(status_code: int = 200, body=None, reason: str = "OK") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.reason_phrase = reason
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


@contextmanager
def patched_http(*outcomes):
    """Patch httpx.AsyncClient; each POST returns (or raises) the next outcome.

    The last outcome repeats once the list is exhausted.  Yields the mock
    client so tests can inspect `post.await_count` and `post.call_args`.
    """
    outcomes = list(outcomes)

    async def _post(*args, **kwargs):
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    with patch("httpx.AsyncClient") as mock_client_cls:
        mock_client = AsyncMock()
        mock_client.post.side_effect = _post
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=False)
        mock_client_cls.return_value = mock_client
        yield mock_client


async def no_sleep(_seconds: float) -> None:
    return None
