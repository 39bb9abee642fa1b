"""Authentication components for JSON API clients.

This module provides:
- Multi-source secret resolution (override → env → secret store)
- Auth strategies (query key, bearer, OAuth1 one-legged, OAuth2)
- An OAuth2 token cache with at-most-one refresh per key

Example:
    ```python
    from json_api_client.auth import AuthContext, BearerHeader, SecretResolver, apply_auth

    context = AuthContext(resolver=SecretResolver())
    spec = await apply_auth(BearerHeader("GITHUB_TOKEN"), spec, context)
    ```
"""

from json_api_client.auth.credentials import (
    Credential,
    CredentialSource,
    DotenvSecretStore,
    FileSecretStore,
    InMemorySecretStore,
    SecretResolver,
    SecretStore,
)
from json_api_client.auth.exceptions import (
    AuthError,
    AuthFailure,
    CredentialError,
    CredentialFileError,
    SecretNotFoundError,
    TokenError,
    TokenFailure,
)
from json_api_client.auth.strategies import (
    AuthContext,
    AuthStrategy,
    BearerHeader,
    NoAuth,
    OAuth1OneLegged,
    OAuth2AuthorizationCode,
    OAuth2ClientCredentials,
    QueryKeyParam,
    apply_auth,
)
from json_api_client.auth.tokens import (
    Token,
    TokenCache,
    refresh_access_token,
    request_client_credentials_token,
    token_from_payload,
)

__all__ = [
    "AuthContext",
    "AuthError",
    "AuthFailure",
    "AuthStrategy",
    "BearerHeader",
    "Credential",
    "CredentialError",
    "CredentialFileError",
    "CredentialSource",
    "DotenvSecretStore",
    "FileSecretStore",
    "InMemorySecretStore",
    "NoAuth",
    "OAuth1OneLegged",
    "OAuth2AuthorizationCode",
    "OAuth2ClientCredentials",
    "QueryKeyParam",
    "SecretNotFoundError",
    "SecretResolver",
    "SecretStore",
    "Token",
    "TokenCache",
    "TokenError",
    "TokenFailure",
    "apply_auth",
    "refresh_access_token",
    "request_client_credentials_token",
    "token_from_payload",
]
