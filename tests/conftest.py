"""Pytest configuration and shared fixtures for json-api-client tests."""

import pytest

from json_api_client.auth import AuthContext, SecretResolver, TokenCache
from json_api_client.testing import RecordingHandler, json_response, mock_transport
from json_api_client.transport import HttpClient


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    """Auto-cleanup: Clear test-related environment variables before each test.

    This prevents test pollution when testing secret resolution.
    """
    import os

    test_prefixes = ("TEST_", "API_", "CLIENT_", "JSON_API_CLIENT_")

    for key in list(os.environ.keys()):
        if any(key.startswith(prefix) for prefix in test_prefixes):
            monkeypatch.delenv(key, raising=False)

    yield


@pytest.fixture
def token_handler():
    """Token endpoint handler that issues one-hour tokens."""
    return RecordingHandler([json_response({"access_token": "tok-1", "expires_in": 3600, "token_type": "bearer"})])


@pytest.fixture
async def token_http(token_handler):
    async with HttpClient(transport=mock_transport(token_handler)) as http:
        yield http


@pytest.fixture
def auth_context(token_http):
    resolver = SecretResolver(overrides={"CLIENT_SECRET": "s3cret"})
    return AuthContext(resolver=resolver, tokens=TokenCache(), http=token_http)
