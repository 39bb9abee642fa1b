"""Structured exceptions for every stage of an API call.

Each exception carries a ``stage`` naming the part of the chain that failed
(secret resolution, auth, token exchange, transport, HTTP status, decoding
or pagination) and a ``retryable`` hint for callers that wrap their own
retry policy around the client.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from json_api_client.errors.models import ProblemDetail


class JsonApiClientError(Exception):
    """Base exception for all client errors."""

    stage: str = "client"
    retryable: bool = False


class TransportFailure(str, Enum):
    """Why no response was received."""

    TIMEOUT = "timeout"
    CONNECTION_FAILED = "connection_failed"
    DNS_FAILURE = "dns_failure"


class TransportError(JsonApiClientError):
    """No HTTP response was received (DNS, refused connection, timeout)."""

    stage = "transport"
    retryable = True

    def __init__(self, message: str, reason: TransportFailure, url: str | None = None):
        super().__init__(message)
        self.reason = reason
        self.url = url


class HttpStatusError(JsonApiClientError):
    """A response was received with a status code of 400 or above."""

    stage = "http"

    def __init__(
        self,
        message: str,
        status_code: int,
        body: Any = None,
        content: bytes = b"",
        headers: dict[str, str] | None = None,
        problem_detail: "ProblemDetail | None" = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.content = content
        self.headers = headers if headers is not None else {}
        self.problem_detail = problem_detail

    @property
    def code(self) -> int:
        return self.status_code


class ClientError(HttpStatusError):
    """4xx client errors."""

    pass


class BadRequestError(ClientError):
    """400 Bad Request."""

    pass


class UnauthorizedError(ClientError):
    """401 Unauthorized."""

    pass


class ForbiddenError(ClientError):
    """403 Forbidden."""

    pass


class NotFoundError(ClientError):
    """404 Not Found."""

    pass


class ConflictError(ClientError):
    """409 Conflict."""

    pass


class ValidationError(ClientError):
    """422 Unprocessable Entity (validation errors)."""

    def __init__(self, message: str, validation_errors: list[dict] | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.validation_errors = validation_errors if validation_errors is not None else []


class RateLimitError(ClientError):
    """429 Too Many Requests."""

    retryable = True

    def __init__(self, message: str, retry_after: float | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class ServerError(HttpStatusError):
    """5xx server errors."""

    retryable = True


class DecodeError(JsonApiClientError):
    """The response body is not a valid JSON document."""

    stage = "decode"

    def __init__(self, message: str, position: int | None = None, reason: str = ""):
        super().__init__(message)
        self.position = position
        self.reason = reason


class PaginationError(JsonApiClientError):
    """A page could not be fetched, or the cursor stopped advancing."""

    stage = "pagination"

    def __init__(
        self,
        message: str,
        underlying: BaseException | None = None,
        cursor: Any = None,
        page_number: int | None = None,
    ):
        super().__init__(message)
        self.underlying = underlying
        self.cursor = cursor
        self.page_number = page_number

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return bool(getattr(self.underlying, "retryable", False))


class ConfigurationError(JsonApiClientError):
    """Client settings are missing or invalid."""

    stage = "config"
