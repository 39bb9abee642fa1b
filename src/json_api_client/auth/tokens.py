"""OAuth2 bearer token storage, refresh and token endpoint exchange.

:class:`TokenCache` keeps one :class:`Token` per ``(client identity, scope
set)`` key. Reads of a still-valid token never wait on a lock. When a token
is missing or expired, a single refresh task per key is started and every
concurrent caller awaits that same task, so the token endpoint is hit at
most once per refresh.

Example:
    ```python
    cache = TokenCache()


    async def refresh(previous):
        return await request_client_credentials_token(
            http, "https://auth.example.com/token", client_id="app", client_secret=secret
        )


    token = await cache.get("app", frozenset(), refresh)
    ```
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, NamedTuple

from json_api_client.auth.exceptions import TokenError, TokenFailure
from json_api_client.errors.exceptions import DecodeError, HttpStatusError, TransportError

if TYPE_CHECKING:
    from json_api_client.transport.http import HttpClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Token:
    """An OAuth2 access token.

    Attributes:
        access_token: The bearer value (kept out of ``repr``).
        client_identity: Client id the token was issued to.
        scopes: Scopes granted.
        expires_at: Expiry instant; ``None`` means the token never expires.
        refresh_token: Optional refresh token (kept out of ``repr``).
        token_type: Token type reported by the endpoint.
    """

    access_token: str = field(repr=False)
    client_identity: str
    scopes: frozenset[str] = frozenset()
    expires_at: datetime | None = None
    refresh_token: str | None = field(default=None, repr=False)
    token_type: str = "Bearer"

    def is_expired(self, now: datetime, leeway: timedelta = timedelta(0)) -> bool:
        if self.expires_at is None:
            return False
        return now + leeway >= self.expires_at


class TokenKey(NamedTuple):
    client_identity: str
    scopes: frozenset[str]


RefreshFn = Callable[[Token | None], Awaitable[Token]]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TokenCache:
    """Process-lifetime token cache with at-most-one refresh per key.

    Args:
        clock: Returns the current time (timezone-aware). Injectable for tests.
        leeway: Treat tokens as expired this long before their actual expiry.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow, leeway: timedelta = timedelta(0)):
        self._clock = clock
        self._leeway = leeway
        self._tokens: dict[TokenKey, Token] = {}
        self._inflight: dict[TokenKey, asyncio.Future[Token]] = {}

    @staticmethod
    def key(client_identity: str, scopes: Iterable[str] = ()) -> TokenKey:
        return TokenKey(client_identity, frozenset(scopes))

    def store(self, token: Token) -> None:
        """Store a token obtained out-of-band (e.g. interactive consent)."""
        self._tokens[self.key(token.client_identity, token.scopes)] = token
        logger.debug(f"Stored token for client {token.client_identity!r} scopes={sorted(token.scopes)}")

    def peek(self, client_identity: str, scopes: Iterable[str] = ()) -> Token | None:
        """Return the cached token for a key, expired or not, without refreshing."""
        return self._tokens.get(self.key(client_identity, scopes))

    def evict(self, client_identity: str, scopes: Iterable[str] = ()) -> None:
        self._tokens.pop(self.key(client_identity, scopes), None)

    def clear(self) -> None:
        self._tokens.clear()

    def is_valid(self, token: Token) -> bool:
        return not token.is_expired(self._clock(), self._leeway)

    async def get(self, client_identity: str, scopes: Iterable[str], refresh_fn: RefreshFn) -> Token:
        """Return a valid token for the key, refreshing if needed.

        Args:
            client_identity: Client id the token belongs to.
            scopes: Scope set; part of the cache key.
            refresh_fn: Called with the previous token (or ``None``) to obtain
                a new one. Only one call per key runs at a time.

        Returns:
            A token that is not expired.

        Raises:
            TokenError: If the refresh fails. The previous token is evicted.
        """
        key = self.key(client_identity, scopes)

        token = self._tokens.get(key)
        if token is not None and self.is_valid(token):
            return token

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._refresh(key, token, refresh_fn))
            self._inflight[key] = task
            task.add_done_callback(lambda _: self._inflight.pop(key, None))
        else:
            logger.debug(f"Waiting for in-flight token refresh for client {client_identity!r}")

        return await asyncio.shield(task)

    async def _refresh(self, key: TokenKey, previous: Token | None, refresh_fn: RefreshFn) -> Token:
        logger.debug(f"Refreshing token for client {key.client_identity!r} scopes={sorted(key.scopes)}")
        try:
            token = await refresh_fn(previous)
        except TokenError:
            self._tokens.pop(key, None)
            raise
        except Exception as e:
            self._tokens.pop(key, None)
            raise TokenError(
                f"Token refresh failed for client {key.client_identity!r}: {type(e).__name__}",
                reason=TokenFailure.REFRESH_FAILED,
                client_identity=key.client_identity,
            ) from e

        self._tokens[key] = token
        return token


def token_from_payload(
    payload: Any,
    client_identity: str,
    requested_scopes: Iterable[str] = (),
    now: datetime | None = None,
    previous_refresh_token: str | None = None,
) -> Token:
    """Build a :class:`Token` from a token endpoint JSON reply.

    ``access_token`` is required. ``expires_in`` (seconds) is optional; when
    absent the token never expires. A space-separated ``scope`` in the reply
    overrides the requested scopes.

    Raises:
        TokenError: If the reply is not an object or lacks ``access_token``.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("access_token"), str):
        raise TokenError(
            "Token endpoint reply has no access_token",
            reason=TokenFailure.INVALID_RESPONSE,
            client_identity=client_identity,
        )

    expires_at = None
    expires_in = payload.get("expires_in")
    if expires_in is not None:
        try:
            seconds = float(expires_in)
        except (TypeError, ValueError):
            raise TokenError(
                f"Token endpoint returned invalid expires_in: {expires_in!r}",
                reason=TokenFailure.INVALID_RESPONSE,
                client_identity=client_identity,
            ) from None
        expires_at = (now or _utcnow()) + timedelta(seconds=seconds)

    scope = payload.get("scope")
    scopes = frozenset(scope.split()) if isinstance(scope, str) and scope else frozenset(requested_scopes)

    return Token(
        access_token=payload["access_token"],
        client_identity=client_identity,
        scopes=scopes,
        expires_at=expires_at,
        refresh_token=payload.get("refresh_token") or previous_refresh_token,
        token_type=payload.get("token_type") or "Bearer",
    )


async def _exchange(
    http: "HttpClient", token_endpoint: str, form: dict[str, str], client_identity: str, scopes: Iterable[str]
) -> Token:
    try:
        response = await http.post_form(token_endpoint, form)
        payload = response.json()
    except HttpStatusError as e:
        raise TokenError(
            f"Token endpoint rejected client {client_identity!r} with HTTP {e.status_code}",
            reason=TokenFailure.EXCHANGE_REJECTED,
            client_identity=client_identity,
        ) from e
    except TransportError as e:
        raise TokenError(
            f"Token endpoint unreachable for client {client_identity!r}: {e.reason.value}",
            reason=TokenFailure.REFRESH_FAILED,
            client_identity=client_identity,
        ) from e
    except DecodeError as e:
        raise TokenError(
            "Token endpoint returned invalid JSON",
            reason=TokenFailure.INVALID_RESPONSE,
            client_identity=client_identity,
        ) from e

    return token_from_payload(
        payload, client_identity, scopes, previous_refresh_token=form.get("refresh_token")
    )


async def request_client_credentials_token(
    http: "HttpClient",
    token_endpoint: str,
    client_id: str,
    client_secret: str,
    scopes: Iterable[str] = (),
) -> Token:
    """Perform an OAuth2 ``client_credentials`` grant."""
    scopes = frozenset(scopes)
    form = {"grant_type": "client_credentials", "client_id": client_id, "client_secret": client_secret}
    if scopes:
        form["scope"] = " ".join(sorted(scopes))
    logger.debug(f"Requesting client_credentials token for client {client_id!r}")
    return await _exchange(http, token_endpoint, form, client_id, scopes)


async def refresh_access_token(
    http: "HttpClient",
    token_endpoint: str,
    client_id: str,
    client_secret: str,
    token: Token,
) -> Token:
    """Perform an OAuth2 ``refresh_token`` grant for an existing token."""
    if not token.refresh_token:
        raise TokenError(
            f"Token for client {client_id!r} has no refresh token",
            reason=TokenFailure.REFRESH_FAILED,
            client_identity=client_id,
        )
    form = {
        "grant_type": "refresh_token",
        "refresh_token": token.refresh_token,
        "client_id": client_id,
        "client_secret": client_secret,
    }
    if token.scopes:
        form["scope"] = " ".join(sorted(token.scopes))
    logger.debug(f"Refreshing access token for client {client_id!r}")
    return await _exchange(http, token_endpoint, form, client_id, token.scopes)
