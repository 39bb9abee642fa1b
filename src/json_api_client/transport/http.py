"""Single round-trip HTTP execution with uniform failure classification.

:class:`HttpClient` sends a :class:`~json_api_client.request.RequestSpec`
exactly once. Failures before a response arrives become
:class:`~json_api_client.errors.TransportError`; responses with a status of
400 or above become :class:`~json_api_client.errors.HttpStatusError`
subclasses. The client never retries and never follows redirects; wrap the
transport with :class:`~json_api_client.transport.retry.RetryTransport` to
opt into retries.

Example:
    ```python
    async with HttpClient(timeout=10.0) as http:
        response = await http.execute(RequestSpec("https://api.example.com/stations"))
        stations = response.json()
    ```
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import httpx

from json_api_client.decoding import JsonValue, decode
from json_api_client.errors.exceptions import TransportError, TransportFailure
from json_api_client.errors.handler import raise_for_status
from json_api_client.request import RequestSpec

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_USER_AGENT = "json-api-client/0.1.0"

_DNS_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated with hostname",
)


@dataclass(frozen=True)
class Response:
    """An HTTP response as received. Immutable."""

    status_code: int
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    body: bytes = b""
    url: str = ""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> JsonValue:
        """Decode the body as JSON (raises ``DecodeError``)."""
        return decode(self.body)

    @classmethod
    def from_httpx(cls, response: httpx.Response, url: str = "") -> "Response":
        return cls(
            status_code=response.status_code,
            headers=MappingProxyType({k.lower(): v for k, v in response.headers.items()}),
            body=response.content,
            url=url,
        )


def classify_transport_error(error: httpx.TransportError) -> TransportFailure:
    """Map an httpx transport exception to a :class:`TransportFailure`."""
    if isinstance(error, httpx.TimeoutException):
        return TransportFailure.TIMEOUT

    text = f"{error} {error.__cause__ or ''}".lower()
    if isinstance(error, httpx.ConnectError) and any(marker in text for marker in _DNS_MARKERS):
        return TransportFailure.DNS_FAILURE
    return TransportFailure.CONNECTION_FAILED


class HttpClient:
    """Async HTTP client executing one request per call.

    Args:
        timeout: Default timeout in seconds for every network phase.
        connect_timeout: Optional separate connect timeout.
        transport: Optional httpx transport (mock transports, retry wrappers).
        headers: Default headers sent with every request.
        user_agent: ``User-Agent`` header value.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        connect_timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        headers: Mapping[str, str] | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.timeout = timeout
        default_headers = {"Accept": "application/json", "User-Agent": user_agent}
        default_headers.update(headers or {})
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=connect_timeout if connect_timeout is not None else timeout),
            transport=transport,
            headers=default_headers,
            follow_redirects=False,
        )

    async def __aenter__(self) -> "HttpClient":
        await self._client.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self._client.__aexit__(exc_type, exc_val, exc_tb)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def execute(self, spec: RequestSpec) -> Response:
        """Send ``spec`` once and return the response.

        Raises:
            TransportError: No response was received.
            HttpStatusError: The response status is 400 or above.
        """
        redacted = spec.redacted_url()
        timeout = httpx.Timeout(spec.timeout) if spec.timeout is not None else httpx.USE_CLIENT_DEFAULT

        logger.debug(f"{spec.method} {redacted}")
        response = await self._send(
            spec.method,
            spec.base_url,
            redacted,
            params=spec.query_items(),
            headers=dict(spec.headers),
            timeout=timeout,
        )
        return response

    async def post_form(self, url: str, data: Mapping[str, str], headers: Mapping[str, str] | None = None) -> Response:
        """POST a form-encoded body (token endpoint exchanges only).

        Failure classification is identical to :meth:`execute`.
        """
        logger.debug(f"POST {url} (form)")
        return await self._send("POST", url, url, data=dict(data), headers=dict(headers or {}))

    async def _send(self, method: str, url: str, redacted: str, **kwargs: Any) -> Response:
        try:
            raw = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            reason = classify_transport_error(e)
            raise TransportError(
                f"{method} {redacted} failed: {reason.value} ({type(e).__name__})",
                reason=reason,
                url=redacted,
            ) from e

        logger.debug(f"{method} {redacted} -> {raw.status_code}")
        raise_for_status(raw, url=redacted)
        return Response.from_httpx(raw, url=redacted)
