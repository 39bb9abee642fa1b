"""Client settings loaded from the environment or a .env file.

Example:
    ```python
    from json_api_client.config import ClientSettings

    settings = ClientSettings.from_env(env_file=".env")
    ```

Recognised variables (with the default ``JSON_API_CLIENT_`` prefix):

| Variable                          | Setting           |
|-----------------------------------|-------------------|
| `JSON_API_CLIENT_TIMEOUT`         | `timeout`         |
| `JSON_API_CLIENT_CONNECT_TIMEOUT` | `connect_timeout` |
| `JSON_API_CLIENT_USER_AGENT`      | `user_agent`      |
| `JSON_API_CLIENT_MAX_PAGES`       | `max_pages`       |
| `JSON_API_CLIENT_TOKEN_LEEWAY`    | `token_leeway`    |
"""

import logging
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from json_api_client.errors.exceptions import ConfigurationError
from json_api_client.transport.http import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "JSON_API_CLIENT_"


class ClientSettings(BaseSettings):
    """Tunable client behaviour.

    Keyword arguments win over environment variables, which win over the
    optional ``.env`` file. Invalid values raise :class:`ConfigurationError`.

    Attributes:
        timeout: Default per-request timeout in seconds.
        connect_timeout: Connect timeout in seconds (defaults to ``timeout``).
        user_agent: ``User-Agent`` header.
        max_pages: Default upper bound for :meth:`ApiClient.paginate`.
        token_leeway: Seconds before expiry at which cached tokens are refreshed.
    """

    model_config = SettingsConfigDict(
        env_prefix=DEFAULT_PREFIX,
        extra="ignore",
        case_sensitive=False,
        env_file_encoding="utf-8",
        frozen=True,
    )

    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    connect_timeout: float | None = Field(default=None, gt=0)
    user_agent: str = Field(default=DEFAULT_USER_AGENT, min_length=1)
    max_pages: int | None = Field(default=None, ge=1)
    token_leeway: float = Field(default=0.0, ge=0)

    def __init__(self, **values: Any) -> None:
        prefix = values.get("_env_prefix") or DEFAULT_PREFIX
        try:
            super().__init__(**values)
        except ValidationError as e:
            problems = "; ".join(
                f"{prefix}{'.'.join(str(part) for part in error['loc']).upper()}: {error['msg']}"
                for error in e.errors()
            )
            raise ConfigurationError(f"Invalid client settings: {problems}") from e

    @classmethod
    def from_env(cls, env_file: str | Path | None = None, prefix: str = DEFAULT_PREFIX) -> "ClientSettings":
        """Build settings from environment variables and an optional .env file.

        Unset variables keep their defaults.

        Raises:
            ConfigurationError: If a variable is set to an invalid value.
        """
        settings = cls(_env_file=env_file, _env_prefix=prefix)
        logger.debug(f"Loaded client settings (prefix={prefix}, env_file={env_file})")
        return settings
