"""Tests for the OAuth2 token cache and token endpoint helpers."""

import asyncio
from datetime import UTC, datetime, timedelta

import httpx
import pytest

from json_api_client.auth import Token, TokenCache, TokenError, TokenFailure, token_from_payload
from json_api_client.auth.tokens import refresh_access_token, request_client_credentials_token
from json_api_client.testing import RecordingHandler, json_response, mock_transport
from json_api_client.transport import HttpClient

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


class FakeClock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now


def make_token(value="tok", expires_at=None, client="app", scopes=frozenset(), refresh_token=None):
    return Token(
        access_token=value,
        client_identity=client,
        scopes=frozenset(scopes),
        expires_at=expires_at,
        refresh_token=refresh_token,
    )


class TestToken:
    """Test Token expiry and masking."""

    def test_absent_expiry_never_expires(self):
        assert not make_token().is_expired(NOW + timedelta(days=3650))

    def test_expired_at_expiry_instant(self):
        token = make_token(expires_at=NOW)

        assert token.is_expired(NOW)
        assert not token.is_expired(NOW - timedelta(seconds=1))

    def test_leeway_expires_early(self):
        token = make_token(expires_at=NOW + timedelta(seconds=30))

        assert token.is_expired(NOW, leeway=timedelta(seconds=60))

    def test_repr_hides_secrets(self):
        token = make_token(value="access-xyz", refresh_token="refresh-xyz")

        assert "access-xyz" not in repr(token)
        assert "refresh-xyz" not in repr(token)


class TestTokenCacheGet:
    """Test TokenCache.get refresh behaviour."""

    @pytest.mark.unit
    async def test_returns_cached_valid_token_without_refresh(self):
        cache = TokenCache(clock=FakeClock())
        cache.store(make_token(expires_at=NOW + timedelta(hours=1)))

        async def refresh(previous):
            raise AssertionError("refresh must not be called")

        token = await cache.get("app", (), refresh)

        assert token.access_token == "tok"

    @pytest.mark.unit
    async def test_missing_token_is_fetched_and_cached(self):
        cache = TokenCache(clock=FakeClock())
        calls = []

        async def refresh(previous):
            calls.append(previous)
            return make_token("fresh", expires_at=NOW + timedelta(hours=1))

        first = await cache.get("app", (), refresh)
        second = await cache.get("app", (), refresh)

        assert first is second
        assert calls == [None]

    @pytest.mark.unit
    async def test_expired_token_is_refreshed_before_returning(self):
        cache = TokenCache(clock=FakeClock())
        stale = make_token("stale", expires_at=NOW - timedelta(seconds=1))
        cache.store(stale)
        seen = []

        async def refresh(previous):
            seen.append(previous)
            return make_token("fresh", expires_at=NOW + timedelta(hours=1))

        token = await cache.get("app", (), refresh)

        assert token.access_token == "fresh"
        assert seen == [stale]
        assert cache.peek("app").access_token == "fresh"

    @pytest.mark.unit
    async def test_clock_advance_triggers_refresh(self):
        clock = FakeClock()
        cache = TokenCache(clock=clock)
        count = 0

        async def refresh(previous):
            nonlocal count
            count += 1
            return make_token(f"t{count}", expires_at=clock.now + timedelta(minutes=5))

        assert (await cache.get("app", (), refresh)).access_token == "t1"
        clock.now += timedelta(minutes=10)
        assert (await cache.get("app", (), refresh)).access_token == "t2"

    @pytest.mark.unit
    async def test_keys_include_scopes(self):
        cache = TokenCache(clock=FakeClock())

        def refresh_for(scopes):
            async def refresh(previous):
                return make_token("-".join(sorted(scopes)) or "none", scopes=scopes)

            return refresh

        read = await cache.get("app", {"read"}, refresh_for({"read"}))
        write = await cache.get("app", {"write"}, refresh_for({"write"}))

        assert read.access_token == "read"
        assert write.access_token == "write"


class TestTokenCacheFailures:
    """Test refresh failure handling."""

    @pytest.mark.unit
    async def test_failed_refresh_evicts_stale_token(self):
        cache = TokenCache(clock=FakeClock())
        cache.store(make_token("stale", expires_at=NOW - timedelta(minutes=1)))

        async def refresh(previous):
            raise TokenError("rejected", reason=TokenFailure.EXCHANGE_REJECTED)

        with pytest.raises(TokenError) as exc_info:
            await cache.get("app", (), refresh)

        assert exc_info.value.reason is TokenFailure.EXCHANGE_REJECTED
        assert cache.peek("app") is None

    @pytest.mark.unit
    async def test_unexpected_errors_are_wrapped(self):
        cache = TokenCache(clock=FakeClock())

        async def refresh(previous):
            raise RuntimeError("socket exploded")

        with pytest.raises(TokenError) as exc_info:
            await cache.get("app", (), refresh)

        assert exc_info.value.reason is TokenFailure.REFRESH_FAILED
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.unit
    async def test_next_call_after_failure_retries_refresh(self):
        cache = TokenCache(clock=FakeClock())
        attempts = 0

        async def refresh(previous):
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise TokenError("first fails")
            return make_token("second")

        with pytest.raises(TokenError):
            await cache.get("app", (), refresh)
        token = await cache.get("app", (), refresh)

        assert token.access_token == "second"
        assert attempts == 2


class TestTokenCacheConcurrency:
    """At most one refresh per key may be in flight."""

    @pytest.mark.unit
    async def test_concurrent_gets_share_one_refresh(self):
        cache = TokenCache(clock=FakeClock())
        calls = 0
        release = asyncio.Event()

        async def refresh(previous):
            nonlocal calls
            calls += 1
            await release.wait()
            return make_token("shared", expires_at=NOW + timedelta(hours=1))

        tasks = [asyncio.create_task(cache.get("app", (), refresh)) for _ in range(10)]
        await asyncio.sleep(0)
        release.set()
        tokens = await asyncio.gather(*tasks)

        assert calls == 1
        assert all(token is tokens[0] for token in tokens)

    @pytest.mark.unit
    async def test_concurrent_gets_share_one_failure(self):
        cache = TokenCache(clock=FakeClock())
        calls = 0
        release = asyncio.Event()

        async def refresh(previous):
            nonlocal calls
            calls += 1
            await release.wait()
            raise TokenError("rejected")

        tasks = [asyncio.create_task(cache.get("app", (), refresh)) for _ in range(5)]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert calls == 1
        assert all(isinstance(result, TokenError) for result in results)

    @pytest.mark.unit
    async def test_different_keys_refresh_independently(self):
        cache = TokenCache(clock=FakeClock())
        calls = []

        def refresh_for(client):
            async def refresh(previous):
                calls.append(client)
                await asyncio.sleep(0)
                return make_token(client, client=client)

            return refresh

        await asyncio.gather(
            cache.get("a", (), refresh_for("a")),
            cache.get("b", (), refresh_for("b")),
        )

        assert sorted(calls) == ["a", "b"]


class TestTokenFromPayload:
    """Test parsing of token endpoint replies."""

    def test_expires_in_sets_expiry(self):
        token = token_from_payload({"access_token": "abc", "expires_in": 60}, "app", now=NOW)

        assert token.expires_at == NOW + timedelta(seconds=60)
        assert token.client_identity == "app"

    def test_absent_expires_in_never_expires(self):
        token = token_from_payload({"access_token": "abc"}, "app", now=NOW)

        assert token.expires_at is None

    def test_scope_in_reply_overrides_requested(self):
        token = token_from_payload({"access_token": "abc", "scope": "read write"}, "app", ["read"])

        assert token.scopes == frozenset({"read", "write"})

    def test_keeps_previous_refresh_token(self):
        token = token_from_payload({"access_token": "abc"}, "app", previous_refresh_token="r1")

        assert token.refresh_token == "r1"

    @pytest.mark.parametrize("payload", [[], {"token": "x"}, {"access_token": 5}])
    def test_invalid_payload(self, payload):
        with pytest.raises(TokenError) as exc_info:
            token_from_payload(payload, "app")

        assert exc_info.value.reason is TokenFailure.INVALID_RESPONSE

    def test_invalid_expires_in(self):
        with pytest.raises(TokenError):
            token_from_payload({"access_token": "abc", "expires_in": "soon"}, "app")


class TestTokenEndpoint:
    """Test token endpoint exchanges over a mock transport."""

    @pytest.mark.unit
    async def test_client_credentials_grant(self):
        handler = RecordingHandler([json_response({"access_token": "tok-1", "expires_in": 3600})])

        async with HttpClient(transport=mock_transport(handler)) as http:
            token = await request_client_credentials_token(http, "https://auth.example.com/token", "app", "s3cret")

        request = handler.requests[0]
        body = dict(httpx.QueryParams(request.content.decode()))
        assert request.method == "POST"
        assert body == {"grant_type": "client_credentials", "client_id": "app", "client_secret": "s3cret"}
        assert token.access_token == "tok-1"
        assert token.expires_at is not None

    @pytest.mark.unit
    async def test_rejected_credentials(self):
        handler = RecordingHandler([json_response({"error": "invalid_client"}, status_code=401)])

        async with HttpClient(transport=mock_transport(handler)) as http:
            with pytest.raises(TokenError) as exc_info:
                await request_client_credentials_token(http, "https://auth.example.com/token", "app", "s3cret")

        assert exc_info.value.reason is TokenFailure.EXCHANGE_REJECTED
        assert "s3cret" not in str(exc_info.value)

    @pytest.mark.unit
    async def test_unreachable_endpoint(self):
        handler = RecordingHandler([httpx.ConnectError("connection refused")])

        async with HttpClient(transport=mock_transport(handler)) as http:
            with pytest.raises(TokenError) as exc_info:
                await request_client_credentials_token(http, "https://auth.example.com/token", "app", "s3cret")

        assert exc_info.value.reason is TokenFailure.REFRESH_FAILED

    @pytest.mark.unit
    async def test_refresh_grant_sends_refresh_token(self):
        handler = RecordingHandler([json_response({"access_token": "tok-2", "refresh_token": "r2"})])
        old = make_token("tok-1", refresh_token="r1", scopes={"mail.read"})

        async with HttpClient(transport=mock_transport(handler)) as http:
            token = await refresh_access_token(http, "https://auth.example.com/token", "app", "s3cret", old)

        body = dict(httpx.QueryParams(handler.requests[0].content.decode()))
        assert body["grant_type"] == "refresh_token"
        assert body["refresh_token"] == "r1"
        assert body["scope"] == "mail.read"
        assert token.refresh_token == "r2"

    @pytest.mark.unit
    async def test_refresh_without_refresh_token_fails(self):
        async with HttpClient(transport=mock_transport(RecordingHandler([json_response({})]))) as http:
            with pytest.raises(TokenError):
                await refresh_access_token(http, "https://auth.example.com/token", "app", "s3cret", make_token())
