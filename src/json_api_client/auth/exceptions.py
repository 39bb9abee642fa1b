"""Custom exceptions for secret resolution and authentication.

This module defines exceptions used throughout the authentication system:
secret resolution errors, auth strategy failures and token cache failures.

Example:
    ```python
    from json_api_client.auth.exceptions import SecretNotFoundError

    if not api_key:
        raise SecretNotFoundError("API key not found", name="MY_API_KEY")
    ```
"""

from enum import Enum

from json_api_client.errors.exceptions import JsonApiClientError


class CredentialError(JsonApiClientError):
    """Base exception for credential-related errors.

    All credential-specific exceptions inherit from this class,
    making it easy to catch any credential-related error.
    """

    stage = "secret"


class SecretNotFoundError(CredentialError):
    """Raised when a named secret cannot be resolved from any source.

    Attributes:
        name: The secret name that was looked up.

    Example:
        ```python
        try:
            credential = resolver.resolve("MY_API_KEY")
        except SecretNotFoundError as e:
            print(f"Missing secret: {e.name}")
        ```
    """

    def __init__(self, message: str, name: str | None = None):
        """Initialize SecretNotFoundError.

        Args:
            message: Error message describing what secret is missing.
            name: Optional secret name for reference.
        """
        super().__init__(message)
        self.name = name


class CredentialFileError(CredentialError):
    """Raised when a secret file exists but cannot be read.

    Example:
        ```python
        try:
            store = FileSecretStore("~/.config/myapp/secrets")
            store.get("api_key")
        except CredentialFileError as e:
            print(f"Cannot read secret file: {e}")
        ```
    """

    pass


class AuthFailure(str, Enum):
    """Why an auth strategy could not decorate a request."""

    MISSING_CREDENTIAL = "missing_credential"
    SIGNING_FAILED = "signing_failed"
    TOKEN_EXCHANGE_FAILED = "token_exchange_failed"
    NO_STORED_TOKEN = "no_stored_token"


class AuthError(JsonApiClientError):
    """Raised when an auth strategy cannot be applied to a request.

    Attributes:
        reason: The :class:`AuthFailure` category.
    """

    stage = "auth"

    def __init__(self, message: str, reason: AuthFailure):
        super().__init__(message)
        self.reason = reason


class TokenFailure(str, Enum):
    """Why a token could not be obtained."""

    REFRESH_FAILED = "refresh_failed"
    EXCHANGE_REJECTED = "exchange_rejected"
    INVALID_RESPONSE = "invalid_response"


class TokenError(JsonApiClientError):
    """Raised when a token exchange or refresh fails.

    Attributes:
        reason: The :class:`TokenFailure` category.
        client_identity: The client whose token was requested.
    """

    stage = "token"

    def __init__(self, message: str, reason: TokenFailure = TokenFailure.REFRESH_FAILED, client_identity: str | None = None):
        super().__init__(message)
        self.reason = reason
        self.client_identity = client_identity
