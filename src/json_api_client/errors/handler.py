"""Error handling utilities for HTTP responses."""

from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

import httpx

from json_api_client import decoding
from json_api_client.errors.exceptions import (
    BadRequestError,
    ClientError,
    ConflictError,
    DecodeError,
    ForbiddenError,
    HttpStatusError,
    NotFoundError,
    RateLimitError,
    ServerError,
    UnauthorizedError,
    ValidationError,
)
from json_api_client.errors.models import ProblemDetail

EXCEPTION_MAP: dict[int, type[HttpStatusError]] = {
    400: BadRequestError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
    429: RateLimitError,
}


def error_body(content: bytes) -> Any:
    """Decoded JSON error body, or the raw text when it is not JSON."""
    if not content:
        return None
    try:
        return decoding.decode(content)
    except DecodeError:
        return content.decode("utf-8", errors="replace")


def parse_retry_after(value: str | None, now: datetime | None = None) -> float | None:
    """Seconds to wait according to a ``Retry-After`` header value.

    Supports both formats:
    - Delay-seconds: "120" (integer seconds)
    - HTTP-date: "Wed, 21 Oct 2015 07:28:00 GMT"

    Returns:
        Delay in seconds, or None if the value is missing, invalid, negative
        or a date in the past
    """
    if not value:
        return None

    try:
        delay = float(int(value))
    except ValueError:
        try:
            retry_date = parsedate_to_datetime(value)
        except (ValueError, TypeError):
            return None
        if retry_date.tzinfo is None:
            retry_date = retry_date.replace(tzinfo=UTC)
        delay = (retry_date - (now or datetime.now(UTC))).total_seconds()

    # Clock skew
    if delay < 0:
        return None
    return delay


def raise_for_status(response: httpx.Response, url: str | None = None) -> None:
    """Raise the matching :class:`HttpStatusError` for status codes >= 400.

    Informational, success and redirect responses pass through. Parses RFC
    7807 problem details if present, otherwise uses the status code mapping.

    Args:
        response: HTTP response object
        url: Redacted URL to mention in the message (never the raw URL,
            which may carry credentials)

    Raises:
        HttpStatusError subclass based on status code
    """
    status_code = response.status_code
    if status_code < 400:
        return

    content = response.content
    body = error_body(content)
    problem_detail = ProblemDetail.from_body(body, response.headers.get("content-type", ""))

    if status_code in EXCEPTION_MAP:
        exc_class = EXCEPTION_MAP[status_code]
    elif 400 <= status_code < 500:
        exc_class = ClientError
    elif 500 <= status_code < 600:
        exc_class = ServerError
    else:
        exc_class = HttpStatusError

    prefix = f"HTTP {status_code}" + (f" for {url}" if url else "")
    if problem_detail:
        message = f"{prefix}: {problem_detail.to_exception_message()}"
    else:
        response_text = content.decode("utf-8", errors="replace")[:200]
        message = f"{prefix}: {response_text}" if response_text else prefix

    kwargs: dict[str, Any] = {
        "status_code": status_code,
        "body": body,
        "content": content,
        "headers": {k.lower(): v for k, v in response.headers.items()},
        "problem_detail": problem_detail,
    }

    if exc_class is RateLimitError:
        retry_after = parse_retry_after(response.headers.get("retry-after"))
        raise RateLimitError(message, retry_after=retry_after, **kwargs)

    if exc_class is ValidationError:
        validation_errors = None
        if problem_detail and problem_detail.extensions:
            # Explicit key check so an empty "errors" list is kept
            if "errors" in problem_detail.extensions:
                validation_errors = problem_detail.extensions.get("errors")
            else:
                validation_errors = problem_detail.extensions.get("validation_errors")
        raise ValidationError(message, validation_errors=validation_errors, **kwargs)

    raise exc_class(message, **kwargs)

