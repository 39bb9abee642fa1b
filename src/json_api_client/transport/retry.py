"""Opt-in retry transport for read-only requests.

:class:`~json_api_client.transport.http.HttpClient` performs exactly one
round trip per call. Callers who want retries wrap the underlying transport
with :class:`RetryTransport`:

| Condition                        | Retried? | Delay                              |
|----------------------------------|----------|------------------------------------|
| 429 Too Many Requests            | ✅       | `Retry-After`, else backoff        |
| 502, 503, 504                    | ✅       | exponential backoff                |
| Timeout / connection error       | ✅       | exponential backoff                |
| Other 4xx, other 5xx             | ❌       |                                    |
| Non GET/HEAD methods             | ❌       | (token exchanges are never retried)|

```python
import httpx

from json_api_client.transport import HttpClient, RetryTransport

transport = RetryTransport(
    wrapped_transport=httpx.AsyncHTTPTransport(),
    max_retries=3,
    max_backoff=30,
)
async with HttpClient(transport=transport) as http:
    response = await http.execute(spec)
```
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx

from json_api_client.errors.handler import parse_retry_after

logger = logging.getLogger(__name__)


class RetryTransport(httpx.AsyncBaseTransport):
    """Retry GET/HEAD requests on rate limiting, gateway errors and network failures.

    Args:
        wrapped_transport: The underlying transport to wrap
        max_retries: Maximum number of retry attempts (default: 3)
        backoff_factor: Multiplier for exponential backoff (default: 1.0)
        max_backoff: Maximum backoff time in seconds (default: 60)
        retry_status_codes: Status codes that trigger retries (default: 429, 502, 503, 504)
        sleep: Coroutine used to wait between attempts
    """

    RETRYABLE_METHODS: frozenset[str] = frozenset(["GET", "HEAD"])

    DEFAULT_RETRY_STATUS_CODES: frozenset[int] = frozenset([429, 502, 503, 504])

    def __init__(
        self,
        *,
        wrapped_transport: httpx.AsyncBaseTransport,
        max_retries: int = 3,
        backoff_factor: float = 1.0,
        max_backoff: float = 60.0,
        retry_status_codes: frozenset[int] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._wrapped_transport = wrapped_transport
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.max_backoff = max_backoff
        self.retry_status_codes = retry_status_codes or self.DEFAULT_RETRY_STATUS_CODES
        self._sleep = sleep

    async def __aenter__(self):
        """Enter async context, delegating to wrapped transport."""
        await self._wrapped_transport.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context, delegating to wrapped transport."""
        await self._wrapped_transport.__aexit__(exc_type, exc_val, exc_tb)

    async def aclose(self) -> None:
        await self._wrapped_transport.aclose()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """Handle request with retry logic.

        Args:
            request: The HTTP request to send

        Returns:
            HTTP response (the last one received once retries are exhausted)
        """
        retries = 0

        while True:
            try:
                response = await self._wrapped_transport.handle_async_request(request)
            except httpx.TransportError as e:
                if retries >= self.max_retries or request.method not in self.RETRYABLE_METHODS:
                    raise

                retries += 1
                delay = self._calculate_backoff_delay(retries)
                logger.warning(
                    f"Request {request.method} {_safe_url(request)} failed with {type(e).__name__}, "
                    f"retrying in {delay}s (attempt {retries}/{self.max_retries})"
                )
                await self._sleep(delay)
                continue

            should_retry, delay = self._should_retry_with_delay(request, response, retries)
            if not should_retry:
                return response

            await response.aclose()
            retries += 1
            logger.warning(
                f"Request {request.method} {_safe_url(request)} failed with {response.status_code}, "
                f"retrying in {delay}s (attempt {retries}/{self.max_retries})"
            )
            await self._sleep(delay)

    def _should_retry_with_delay(
        self, request: httpx.Request, response: httpx.Response, current_retries: int
    ) -> tuple[bool, float]:
        """Determine if request should be retried and calculate delay.

        Args:
            request: The HTTP request
            response: The HTTP response received
            current_retries: Number of retries attempted so far

        Returns:
            Tuple of (should_retry, delay_in_seconds)
        """
        if current_retries >= self.max_retries:
            return False, 0.0

        if request.method not in self.RETRYABLE_METHODS:
            return False, 0.0

        if response.status_code not in self.retry_status_codes:
            return False, 0.0

        if response.status_code == 429:
            delay = self._parse_retry_after(response)
            if delay is not None:
                return True, delay

        return True, self._calculate_backoff_delay(current_retries + 1)

    def _parse_retry_after(self, response: httpx.Response) -> float | None:
        """Retry-After delay (seconds or HTTP-date) capped at max_backoff, or None."""
        delay = parse_retry_after(response.headers.get("Retry-After"))
        if delay is None:
            return None
        return float(min(delay, self.max_backoff))

    def _calculate_backoff_delay(self, retry_number: int) -> float:
        """Calculate exponential backoff delay with max_backoff cap.

        Uses formula: min(backoff_factor * (2 ** (retry_number - 1)), max_backoff)
        Default backoff sequence: 1, 2, 4, 8, 16 seconds (capped at max_backoff)

        Args:
            retry_number: Current retry attempt (1-indexed)

        Returns:
            Delay in seconds (capped at max_backoff)
        """
        delay = self.backoff_factor * (2 ** (retry_number - 1))
        return min(delay, self.max_backoff)


def _safe_url(request: httpx.Request) -> str:
    # Query strings may carry API keys
    url = request.url
    return f"{url.scheme}://{url.netloc.decode('ascii')}{url.path}"
