"""Transport layer: single round-trip HTTP execution and an opt-in retry wrapper.

Example:
    ```python
    from json_api_client.transport import HttpClient, RetryTransport

    async with HttpClient(timeout=10.0) as http:
        response = await http.execute(spec)
    ```
"""

from json_api_client.transport.http import (
    DEFAULT_TIMEOUT,
    HttpClient,
    Response,
    classify_transport_error,
)
from json_api_client.transport.retry import RetryTransport

__all__ = [
    "DEFAULT_TIMEOUT",
    "HttpClient",
    "Response",
    "RetryTransport",
    "classify_transport_error",
]
