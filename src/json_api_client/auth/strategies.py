"""Authentication strategies applied to request descriptions.

Strategies are plain configuration: frozen dataclasses naming which secret
to use and where. :func:`apply_auth` takes a strategy and a
:class:`~json_api_client.request.RequestSpec` and returns a *new* spec with
the credentials attached. The set of strategies is closed; adding a scheme
means adding a dataclass and a ``case`` in :func:`apply_auth`.

| Strategy                   | Attaches                                  |
|----------------------------|-------------------------------------------|
| `NoAuth`                   | nothing                                   |
| `QueryKeyParam`            | `?<param_name>=<secret>`                  |
| `BearerHeader`             | `Authorization: Bearer <secret>`          |
| `OAuth1OneLegged`          | `Authorization: OAuth ...` (HMAC-SHA1)    |
| `OAuth2ClientCredentials`  | `Authorization: Bearer <token>`           |
| `OAuth2AuthorizationCode`  | `Authorization: Bearer <stored token>`    |

Example:
    ```python
    context = AuthContext(resolver=SecretResolver(), tokens=TokenCache(), http=http)
    strategy = QueryKeyParam(param_name="apiKey", credential_name="NEWS_API_KEY")

    spec = await apply_auth(strategy, RequestSpec("https://newsapi.org/v2/everything", params={"q": "bikes"}), context)
    ```
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeAlias

from json_api_client.auth import oauth1
from json_api_client.auth.credentials import Credential, SecretResolver
from json_api_client.auth.exceptions import AuthError, AuthFailure, SecretNotFoundError, TokenError
from json_api_client.auth.tokens import Token, TokenCache, refresh_access_token, request_client_credentials_token
from json_api_client.request import RequestSpec

if TYPE_CHECKING:
    from json_api_client.transport.http import HttpClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NoAuth:
    """Send the request unchanged."""


@dataclass(frozen=True)
class QueryKeyParam:
    """API key sent as a query parameter."""

    param_name: str
    credential_name: str


@dataclass(frozen=True)
class BearerHeader:
    """Static token sent as ``Authorization: Bearer``."""

    credential_name: str


@dataclass(frozen=True)
class OAuth1OneLegged:
    """Application-only OAuth1 request signing.

    ``nonce_factory`` and ``timestamp_factory`` default to a random nonce and
    the current time; override them only in tests.
    """

    client_key: str
    client_secret_name: str
    nonce_factory: Callable[[], str] | None = field(default=None, compare=False)
    timestamp_factory: Callable[[], str] | None = field(default=None, compare=False)


@dataclass(frozen=True)
class OAuth2ClientCredentials:
    """OAuth2 client-credentials grant with cached tokens."""

    client_key: str
    client_secret_name: str
    token_endpoint: str


@dataclass(frozen=True)
class OAuth2AuthorizationCode:
    """OAuth2 token obtained out-of-band (interactive consent), refreshed here.

    The token must be placed in the :class:`TokenCache` with
    :meth:`TokenCache.store` under ``(client_key, scopes)`` before use.
    """

    client_key: str
    client_secret_name: str
    token_endpoint: str
    scopes: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "scopes", frozenset(self.scopes))


AuthStrategy: TypeAlias = (
    NoAuth | QueryKeyParam | BearerHeader | OAuth1OneLegged | OAuth2ClientCredentials | OAuth2AuthorizationCode
)


@dataclass
class AuthContext:
    """Collaborators a strategy may need while being applied."""

    resolver: SecretResolver
    tokens: TokenCache = field(default_factory=TokenCache)
    http: "HttpClient | None" = None


def _credential(context: AuthContext, name: str, strategy: AuthStrategy) -> Credential:
    try:
        return context.resolver.resolve(name)
    except SecretNotFoundError as e:
        raise AuthError(
            f"{type(strategy).__name__}: credential {name!r} could not be resolved",
            reason=AuthFailure.MISSING_CREDENTIAL,
        ) from e


def _require_http(context: AuthContext, strategy: AuthStrategy) -> "HttpClient":
    if context.http is None:
        raise AuthError(
            f"{type(strategy).__name__} needs an HTTP client for the token endpoint",
            reason=AuthFailure.TOKEN_EXCHANGE_FAILED,
        )
    return context.http


def _with_bearer(spec: RequestSpec, token: Token) -> RequestSpec:
    return spec.with_header("Authorization", f"Bearer {token.access_token}", sensitive=True)


async def apply_auth(strategy: AuthStrategy, spec: RequestSpec, context: AuthContext) -> RequestSpec:
    """Return a copy of ``spec`` with ``strategy``'s credentials attached.

    Args:
        strategy: One of the strategy dataclasses in this module.
        spec: The request to decorate (left untouched).
        context: Secret resolver, token cache and HTTP client.

    Returns:
        A new :class:`RequestSpec`.

    Raises:
        AuthError: With ``reason`` set to the failing step.
    """
    logger.debug(f"Applying {type(strategy).__name__} to {spec.method} {spec.redacted_url()}")
    match strategy:
        case NoAuth():
            return spec

        case QueryKeyParam(param_name=param_name, credential_name=credential_name):
            credential = _credential(context, credential_name, strategy)
            return spec.with_param(param_name, credential.value, sensitive=True)

        case BearerHeader(credential_name=credential_name):
            credential = _credential(context, credential_name, strategy)
            return spec.with_header("Authorization", f"Bearer {credential.value}", sensitive=True)

        case OAuth1OneLegged():
            return _apply_oauth1(strategy, spec, context)

        case OAuth2ClientCredentials():
            return await _apply_client_credentials(strategy, spec, context)

        case OAuth2AuthorizationCode():
            return await _apply_authorization_code(strategy, spec, context)

    raise TypeError(f"Unknown auth strategy: {type(strategy).__name__}")


def _apply_oauth1(strategy: OAuth1OneLegged, spec: RequestSpec, context: AuthContext) -> RequestSpec:
    secret = _credential(context, strategy.client_secret_name, strategy)
    factories = {}
    if strategy.nonce_factory is not None:
        factories["nonce_factory"] = strategy.nonce_factory
    if strategy.timestamp_factory is not None:
        factories["timestamp_factory"] = strategy.timestamp_factory

    try:
        header = oauth1.sign_request(
            spec.method,
            spec.base_url,
            spec.query_items(),
            strategy.client_key,
            secret.value,
            **factories,
        )
    except (ValueError, TypeError) as e:
        raise AuthError(f"OAuth1 signing failed for {spec.redacted_url()}: {e}", reason=AuthFailure.SIGNING_FAILED) from e

    return spec.with_header("Authorization", header, sensitive=True)


async def _apply_client_credentials(
    strategy: OAuth2ClientCredentials, spec: RequestSpec, context: AuthContext
) -> RequestSpec:
    http = _require_http(context, strategy)
    secret = _credential(context, strategy.client_secret_name, strategy)

    async def refresh(previous: Token | None) -> Token:
        return await request_client_credentials_token(
            http, strategy.token_endpoint, strategy.client_key, secret.value
        )

    try:
        token = await context.tokens.get(strategy.client_key, frozenset(), refresh)
    except TokenError as e:
        raise AuthError(
            f"Client credentials exchange failed for client {strategy.client_key!r}: {e}",
            reason=AuthFailure.TOKEN_EXCHANGE_FAILED,
        ) from e
    return _with_bearer(spec, token)


async def _apply_authorization_code(
    strategy: OAuth2AuthorizationCode, spec: RequestSpec, context: AuthContext
) -> RequestSpec:
    tokens = context.tokens
    stored = tokens.peek(strategy.client_key, strategy.scopes)
    if stored is None:
        raise AuthError(
            f"No stored token for client {strategy.client_key!r} scopes={sorted(strategy.scopes)}",
            reason=AuthFailure.NO_STORED_TOKEN,
        )
    if tokens.is_valid(stored):
        return _with_bearer(spec, stored)

    if not stored.refresh_token:
        tokens.evict(strategy.client_key, strategy.scopes)
        raise AuthError(
            f"Stored token for client {strategy.client_key!r} expired and has no refresh token",
            reason=AuthFailure.NO_STORED_TOKEN,
        )

    http = _require_http(context, strategy)
    secret = _credential(context, strategy.client_secret_name, strategy)

    async def refresh(previous: Token | None) -> Token:
        return await refresh_access_token(
            http, strategy.token_endpoint, strategy.client_key, secret.value, previous or stored
        )

    try:
        token = await tokens.get(strategy.client_key, strategy.scopes, refresh)
    except TokenError as e:
        raise AuthError(
            f"Token refresh failed for client {strategy.client_key!r}: {e}",
            reason=AuthFailure.TOKEN_EXCHANGE_FAILED,
        ) from e
    return _with_bearer(spec, token)
