"""Tests for error handling utilities."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from email.utils import format_datetime

import pytest
from httpx import Response

from json_api_client.errors.exceptions import (
    BadRequestError,
    ClientError,
    ConflictError,
    ForbiddenError,
    HttpStatusError,
    NotFoundError,
    RateLimitError,
    ServerError,
    UnauthorizedError,
    ValidationError,
)
from json_api_client.errors.handler import error_body, parse_retry_after, raise_for_status


@pytest.mark.unit
@pytest.mark.parametrize("status_code", [200, 204, 301, 304])
def test_raise_for_status_success_and_redirects(status_code):
    """Success and redirect responses never raise."""
    raise_for_status(Response(status_code=status_code))


@pytest.mark.unit
def test_raise_for_status_400_bad_request():
    response = Response(status_code=400, headers={"content-type": "text/plain"}, text="Bad request")

    with pytest.raises(BadRequestError) as exc_info:
        raise_for_status(response)

    assert exc_info.value.status_code == 400
    assert exc_info.value.body == "Bad request"
    assert "400" in str(exc_info.value)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("status_code", "exc_class"),
    [
        (401, UnauthorizedError),
        (403, ForbiddenError),
        (404, NotFoundError),
        (409, ConflictError),
        (422, ValidationError),
        (429, RateLimitError),
        (418, ClientError),
        (500, ServerError),
        (503, ServerError),
    ],
)
def test_raise_for_status_maps_status_codes(status_code, exc_class):
    with pytest.raises(exc_class) as exc_info:
        raise_for_status(Response(status_code=status_code, text="error"))

    assert exc_info.value.status_code == status_code
    assert isinstance(exc_info.value, HttpStatusError)


@pytest.mark.unit
def test_raise_for_status_404_json_body():
    """A 404 with a JSON body is an HttpStatusError carrying the decoded body."""
    response = Response(status_code=404, content=b'{"error":"not found"}')

    with pytest.raises(HttpStatusError) as exc_info:
        raise_for_status(response)

    assert exc_info.value.code == 404
    assert exc_info.value.body == {"error": "not found"}
    assert exc_info.value.content == b'{"error":"not found"}'


@pytest.mark.unit
def test_raise_for_status_uses_redacted_url():
    with pytest.raises(NotFoundError) as exc_info:
        raise_for_status(Response(status_code=404), url="https://example.com/x?key=%2A%2A%2A")

    assert "https://example.com/x?key=%2A%2A%2A" in str(exc_info.value)


@pytest.mark.unit
def test_raise_for_status_429_rate_limit():
    response = Response(status_code=429, headers={"retry-after": "60"}, text="Too many requests")

    with pytest.raises(RateLimitError) as exc_info:
        raise_for_status(response)

    assert exc_info.value.retry_after == 60
    assert exc_info.value.retryable


@pytest.mark.unit
def test_raise_for_status_429_without_retry_after():
    with pytest.raises(RateLimitError) as exc_info:
        raise_for_status(Response(status_code=429, text="Too many requests"))

    assert exc_info.value.retry_after is None


@pytest.mark.unit
def test_raise_for_status_with_rfc7807():
    response = Response(
        status_code=400,
        headers={"content-type": "application/problem+json"},
        json={
            "type": "https://api.example.com/problems/validation",
            "title": "Validation Failed",
            "status": 400,
            "detail": "The email field is invalid",
        },
    )

    with pytest.raises(BadRequestError) as exc_info:
        raise_for_status(response)

    assert exc_info.value.problem_detail is not None
    assert exc_info.value.problem_detail.title == "Validation Failed"
    assert "Validation Failed" in str(exc_info.value)


@pytest.mark.unit
def test_raise_for_status_validation_with_errors():
    response = Response(
        status_code=422,
        headers={"content-type": "application/problem+json"},
        json={
            "type": "https://api.example.com/problems/validation",
            "title": "Validation Failed",
            "status": 422,
            "errors": [{"field": "email", "message": "Invalid"}],
        },
    )

    with pytest.raises(ValidationError) as exc_info:
        raise_for_status(response)

    assert len(exc_info.value.validation_errors) == 1
    assert exc_info.value.validation_errors[0]["field"] == "email"


@pytest.mark.unit
def test_raise_for_status_json_without_rfc7807():
    response = Response(status_code=400, json={"error": "Something went wrong", "code": "ERR001"})

    with pytest.raises(BadRequestError) as exc_info:
        raise_for_status(response)

    assert exc_info.value.problem_detail is None
    assert exc_info.value.body == {"error": "Something went wrong", "code": "ERR001"}


@pytest.mark.unit
def test_error_body_variants():
    assert error_body(b"") is None
    assert error_body(b"[1, 2.5]") == [1, Decimal("2.5")]
    assert error_body(b"<html>oops</html>") == "<html>oops</html>"


@pytest.mark.unit
def test_error_body_with_oversized_integer_falls_back_to_text():
    content = b"[" + b"9" * 5000 + b"]"

    assert error_body(content) == content.decode()


@pytest.mark.unit
def test_raise_for_status_oversized_integer_body():
    with pytest.raises(BadRequestError) as exc_info:
        raise_for_status(Response(status_code=400, content=b'{"id": ' + b"1" * 5000 + b"}"))

    assert isinstance(exc_info.value.body, str)


@pytest.mark.unit
def test_raise_for_status_429_http_date_retry_after():
    retry_at = format_datetime(datetime.now(UTC) + timedelta(seconds=30), usegmt=True)
    response = Response(status_code=429, headers={"retry-after": retry_at})

    with pytest.raises(RateLimitError) as exc_info:
        raise_for_status(response)

    assert 0 < exc_info.value.retry_after <= 30


@pytest.mark.unit
@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("120", 120.0),
        ("0", 0.0),
        ("Wed, 21 Oct 2015 07:28:30 GMT", 30.0),
        ("Wed, 21 Oct 2015 07:27:00 GMT", None),
        ("-5", None),
        ("soon", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_retry_after(value, expected):
    now = datetime(2015, 10, 21, 7, 28, tzinfo=UTC)

    assert parse_retry_after(value, now=now) == expected
