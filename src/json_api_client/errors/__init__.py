"""Error taxonomy and RFC 7807 support."""

from json_api_client.errors.exceptions import (
    BadRequestError,
    ClientError,
    ConfigurationError,
    ConflictError,
    DecodeError,
    ForbiddenError,
    HttpStatusError,
    JsonApiClientError,
    NotFoundError,
    PaginationError,
    RateLimitError,
    ServerError,
    TransportError,
    TransportFailure,
    UnauthorizedError,
    ValidationError,
)
from json_api_client.errors.handler import error_body, parse_retry_after, raise_for_status
from json_api_client.errors.models import ProblemDetail

__all__ = [
    "BadRequestError",
    "ClientError",
    "ConfigurationError",
    "ConflictError",
    "DecodeError",
    "ForbiddenError",
    "HttpStatusError",
    "JsonApiClientError",
    "NotFoundError",
    "PaginationError",
    "ProblemDetail",
    "RateLimitError",
    "ServerError",
    "TransportError",
    "TransportFailure",
    "UnauthorizedError",
    "ValidationError",
    "error_body",
    "parse_retry_after",
    "raise_for_status",
]
