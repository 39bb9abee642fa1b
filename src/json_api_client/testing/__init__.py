"""Testing utilities for code built on json_api_client.

Example:
    ```python
    from json_api_client.testing import RecordingHandler, json_response, mock_transport

    handler = RecordingHandler([json_response({"stations": []})])
    async with HttpClient(transport=mock_transport(handler)) as http:
        await http.execute(RequestSpec("https://api.example.com/stations"))
    assert handler.requests[0].url.path == "/stations"
    ```
"""

import json
from collections.abc import Callable, Iterable
from typing import Any

import httpx

Handler = Callable[[httpx.Request], httpx.Response]


def json_response(data: Any, status_code: int = 200, headers: dict[str, str] | None = None) -> httpx.Response:
    """Build an ``application/json`` response from a Python value."""
    return httpx.Response(
        status_code,
        content=json.dumps(data).encode("utf-8"),
        headers={"content-type": "application/json", **(headers or {})},
    )


class RecordingHandler:
    """Mock transport handler that replays queued responses and records requests.

    Queued items may be ``httpx.Response`` objects or exceptions to raise.
    The last item is repeated once the queue runs out.
    """

    def __init__(self, responses: Iterable[httpx.Response | Exception]):
        self._responses = list(responses)
        if not self._responses:
            raise ValueError("RecordingHandler needs at least one response")
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self._responses)) - 1
        item = self._responses[index]
        if isinstance(item, Exception):
            raise item
        # Fresh copy; a response object is bound to the request that received it
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)

    @property
    def call_count(self) -> int:
        return len(self.requests)


def mock_transport(handler: Handler) -> httpx.MockTransport:
    return httpx.MockTransport(handler)


__all__ = ["RecordingHandler", "json_response", "mock_transport"]
