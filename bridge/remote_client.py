"""HTTP client for the remote execution endpoint.

One logical call = up to ``max_retries + 1`` POSTs of ``{"tool", "args"}``
to the configured endpoint.  Every kind of failure (timeout, non-2xx
status, ``ok: false`` body, transport error) is retryable and ends up as a
RemoteClientError once the attempts run out.

The client keeps nothing between calls besides its configuration, so one
instance is shared by every remote tool for the lifetime of the server.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from bridge.exceptions import RemoteClientError
from bridge.models import InvocationRequest, InvocationResponse, RemoteEndpointConfig

logger = logging.getLogger(__name__)

MAX_BACKOFF_MS = 5_000

SleepFn = Callable[[float], Awaitable[Any]]


def backoff_delay(attempt: int) -> float:
    """Seconds to wait after failed attempt number `attempt` (0-based)."""
    return min(1000 * 2 ** attempt, MAX_BACKOFF_MS) / 1000


class RemoteExecutionClient:
    """Calls tools on the remote endpoint with timeout and retry.

    Args:
        config: Endpoint URL, token, timeout and retry count.
        sleep: Awaitable used for the backoff delay.  Tests pass a no-op.
    """

    def __init__(
        self,
        config: RemoteEndpointConfig,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._config = config
        self._sleep = sleep

    @property
    def config(self) -> RemoteEndpointConfig:
        return self._config

    async def call_tool(self, tool_name: str, args: Any) -> Any:
        """Run tool_name remotely and return its result.

        Raises:
            RemoteClientError: the last failure, after all attempts failed.
        """
        request = InvocationRequest(tool=tool_name, args=args)
        total_attempts = self._config.max_retries + 1
        last_error: Optional[RemoteClientError] = None

        for attempt in range(total_attempts):
            if attempt > 0:
                logger.info(
                    f'Retrying remote call for tool "{tool_name}" '
                    f"(attempt {attempt + 1}/{total_attempts})"
                )
            try:
                result = await self._perform_request(request)
            except RemoteClientError as e:
                last_error = e
                if attempt < total_attempts - 1:
                    logger.warning(f'Remote call failed for tool "{tool_name}": {e}. Retrying...')
                    await self._sleep(backoff_delay(attempt))
                else:
                    logger.error(
                        f'Remote call failed for tool "{tool_name}" '
                        f"after {total_attempts} attempts: {e}"
                    )
                continue

            if attempt > 0:
                logger.info(f'Remote call succeeded on retry for tool "{tool_name}"')
            return result

        raise last_error

    async def _perform_request(self, request: InvocationRequest) -> Any:
        timeout_ms = self._config.timeout_ms
        try:
            response = await asyncio.wait_for(self._post(request), timeout=timeout_ms / 1000)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise RemoteClientError(f"Request timeout after {timeout_ms}ms") from None
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
            raise RemoteClientError(f"Network error: {e}") from e

        status = response.status_code
        if not 200 <= status < 300:
            raise RemoteClientError(f"HTTP {status}: {response.reason_phrase}", status_code=status)

        try:
            body = response.json()
        except ValueError as e:
            raise RemoteClientError(
                f"Network error: response is not valid JSON ({e})", status_code=status
            ) from e

        decoded = InvocationResponse.from_dict(body)
        if not decoded.ok:
            raise RemoteClientError(
                decoded.message or "Remote execution failed",
                status_code=status,
                response=decoded,
            )
        return decoded.result

    async def _post(self, request: InvocationRequest) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self._config.access_token:
            headers["Authorization"] = f"Bearer {self._config.access_token}"

        # Apps Script web apps answer POSTs with a redirect to the result.
        async with httpx.AsyncClient(
            timeout=self._config.timeout_ms / 1000,
            follow_redirects=True,
        ) as client:
            return await client.post(
                self._config.endpoint_url,
                json=request.to_dict(),
                headers=headers,
            )


async def call_remote(
    endpoint_url: str,
    tool_name: str,
    args: Any,
    token: Optional[str] = None,
) -> Any:
    """One-off call with default timeout and no retries."""
    client = RemoteExecutionClient(RemoteEndpointConfig(endpoint_url=endpoint_url, access_token=token))
    return await client.call_tool(tool_name, args)
