"""One-legged OAuth1 request signing (RFC 5849, HMAC-SHA1).

The application signs each request with its consumer key and secret; there
is no user token, so the signing key is ``enc(consumer_secret) + "&"``.

Example:
    ```python
    header = sign_request("GET", "https://api.example.com/search?q=x", [("page", "2")], "key", "secret")
    spec = spec.with_header("Authorization", header, sensitive=True)
    ```
"""

import base64
import hashlib
import hmac
import secrets
import time
from collections.abc import Callable, Iterable
from urllib.parse import parse_qsl, quote, urlsplit

SIGNATURE_METHOD = "HMAC-SHA1"
OAUTH_VERSION = "1.0"

DEFAULT_PORTS = {"http": 80, "https": 443}


def _default_nonce() -> str:
    return secrets.token_hex(16)


def _default_timestamp() -> str:
    return str(int(time.time()))


def percent_encode(value: str) -> str:
    """RFC 3986 percent-encoding as required by RFC 5849 section 3.6."""
    return quote(str(value), safe="~")


def normalize_url(url: str) -> str:
    """Base string URI: lowercase scheme and host, default port dropped, no query."""
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    if scheme not in DEFAULT_PORTS or not parts.hostname:
        raise ValueError(f"Cannot sign URL without an http(s) scheme and host: {parts.scheme}://{parts.netloc}")

    host = parts.hostname.lower()
    port = parts.port
    if port is not None and port != DEFAULT_PORTS[scheme]:
        host = f"{host}:{port}"
    return f"{scheme}://{host}{parts.path or '/'}"


def normalize_parameters(params: Iterable[tuple[str, str]]) -> str:
    """Encode every pair, sort by name then value, and join with ``&``."""
    encoded = sorted((percent_encode(k), percent_encode(v)) for k, v in params)
    return "&".join(f"{k}={v}" for k, v in encoded)


def signature_base_string(method: str, url: str, params: Iterable[tuple[str, str]]) -> str:
    """Build the signature base string from the URL, its query and ``params``."""
    query = parse_qsl(urlsplit(url).query, keep_blank_values=True, strict_parsing=False)
    all_params = list(query) + list(params)
    return "&".join(
        [
            method.upper(),
            percent_encode(normalize_url(url)),
            percent_encode(normalize_parameters(all_params)),
        ]
    )


def hmac_sha1_signature(base_string: str, consumer_secret: str, token_secret: str = "") -> str:
    key = f"{percent_encode(consumer_secret)}&{percent_encode(token_secret)}"
    digest = hmac.new(key.encode("utf-8"), base_string.encode("utf-8"), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


def sign_request(
    method: str,
    url: str,
    params: Iterable[tuple[str, str]],
    consumer_key: str,
    consumer_secret: str,
    *,
    nonce_factory: Callable[[], str] = _default_nonce,
    timestamp_factory: Callable[[], str] = _default_timestamp,
) -> str:
    """Sign a request and return the ``Authorization`` header value.

    Args:
        method: HTTP method.
        url: Request URL; its own query string is included in the signature.
        params: Additional query parameters sent with the request.
        consumer_key: Application (client) key.
        consumer_secret: Application (client) secret.
        nonce_factory: Produces a fresh nonce per call.
        timestamp_factory: Produces the current Unix timestamp as a string.

    Raises:
        ValueError: If the URL cannot be normalized.
    """
    oauth_params = {
        "oauth_consumer_key": consumer_key,
        "oauth_nonce": nonce_factory(),
        "oauth_signature_method": SIGNATURE_METHOD,
        "oauth_timestamp": timestamp_factory(),
        "oauth_version": OAUTH_VERSION,
    }
    base_string = signature_base_string(method, url, list(params) + list(oauth_params.items()))
    oauth_params["oauth_signature"] = hmac_sha1_signature(base_string, consumer_secret)

    fields = ", ".join(f'{percent_encode(k)}="{percent_encode(v)}"' for k, v in sorted(oauth_params.items()))
    return f"OAuth {fields}"
