"""JSON API Client - authenticated client core for public and private JSON APIs.

This library provides the reusable pieces behind calling JSON HTTP APIs:
- Multi-source secret resolution (override, environment, .env, secret files)
- Auth strategies: API key query parameter, bearer header, one-legged OAuth1,
  OAuth2 client credentials and stored authorization-code tokens
- Single round-trip HTTP execution with uniform error classification
- Precision-preserving JSON decoding
- Lazy page-number and cursor pagination

Example:
    ```python
    from json_api_client import ApiClient, QueryKeyParam, RequestSpec

    async with ApiClient() as api:
        data = await api.get_json(
            RequestSpec("https://api.example.com/geocode", params={"q": "Berlin"}),
            QueryKeyParam(param_name="key", credential_name="GEOCODE_API_KEY"),
        )
    ```
"""

from json_api_client.auth import (
    AuthContext,
    BearerHeader,
    NoAuth,
    OAuth1OneLegged,
    OAuth2AuthorizationCode,
    OAuth2ClientCredentials,
    QueryKeyParam,
    SecretResolver,
    Token,
    TokenCache,
    apply_auth,
)
from json_api_client.client import ApiClient
from json_api_client.config import ClientSettings
from json_api_client.decoding import decode, encode
from json_api_client.pagination import Page, Paginator, next_cursor, next_page_number
from json_api_client.request import RequestSpec
from json_api_client.transport import HttpClient, Response

__version__ = "0.1.0"

__all__ = [
    "ApiClient",
    "AuthContext",
    "BearerHeader",
    "ClientSettings",
    "HttpClient",
    "NoAuth",
    "OAuth1OneLegged",
    "OAuth2AuthorizationCode",
    "OAuth2ClientCredentials",
    "Page",
    "Paginator",
    "QueryKeyParam",
    "RequestSpec",
    "Response",
    "SecretResolver",
    "Token",
    "TokenCache",
    "__version__",
    "apply_auth",
    "decode",
    "encode",
    "next_cursor",
    "next_page_number",
]
