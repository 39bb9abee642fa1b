"""Multi-source secret resolution.

This module resolves named secrets (API keys, client secrets) from a
prioritized list of sources.

Resolution order (highest to lowest priority):
1. In-process override map (inline values, tests)
2. Environment variable with the same name
3. Injected secret store (.env file, secret directory, in-memory store)

Example:
    ```python
    from json_api_client.auth import DotenvSecretStore, SecretResolver

    resolver = SecretResolver(secret_store=DotenvSecretStore(".env"))

    credential = resolver.resolve("NEWS_API_KEY")
    headers = {"X-Api-Key": credential.value}

    # Inline value (highest priority)
    resolver.set_override("NEWS_API_KEY", "explicit-key-123")
    ```

Security Considerations:
    - Secret values are never logged (masked with ***)
    - Only source information is logged (env var name, store type)
    - File-based secrets have whitespace stripped
    - Thread-safe .env loading with lock
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from threading import Lock
from typing import Protocol, runtime_checkable

from dotenv import dotenv_values

from json_api_client.auth.exceptions import CredentialFileError, SecretNotFoundError

logger = logging.getLogger(__name__)


class CredentialSource(str, Enum):
    """Where a credential value came from."""

    ENVIRONMENT = "environment"
    SECRET_STORE = "secret_store"
    INLINE = "inline"


@dataclass(frozen=True)
class Credential:
    """A resolved secret. The value is kept out of ``repr``."""

    name: str
    value: str = field(repr=False)
    source: CredentialSource


@runtime_checkable
class SecretStore(Protocol):
    """Minimal get-by-name contract for external secret stores."""

    def get(self, name: str) -> str | None: ...


class InMemorySecretStore:
    """Dictionary-backed secret store with get and set."""

    def __init__(self, secrets: Mapping[str, str] | None = None):
        self._secrets = dict(secrets or {})

    def get(self, name: str) -> str | None:
        return self._secrets.get(name)

    def set(self, name: str, value: str) -> None:
        self._secrets[name] = value


class DotenvSecretStore:
    """Read secrets from a .env file without touching ``os.environ``.

    The file is parsed once, on first lookup (thread-safe).

    Args:
        dotenv_path: Path to the .env file. ``None`` lets python-dotenv search
            parent directories for a ``.env`` file.
    """

    def __init__(self, dotenv_path: str | Path | None = None):
        self._dotenv_path = dotenv_path
        self._values: dict[str, str | None] | None = None
        self._lock = Lock()

    def _ensure_loaded(self) -> dict[str, str | None]:
        if self._values is not None:
            return self._values

        with self._lock:
            # Double-check pattern for thread safety
            if self._values is not None:
                return self._values

            try:
                self._values = dict(dotenv_values(dotenv_path=self._dotenv_path))
                logger.debug(f"Loaded {len(self._values)} entries from .env file")
            except OSError as e:
                logger.warning(f"Failed to load .env file: {e}")
                self._values = {}
            return self._values

    def get(self, name: str) -> str | None:
        return self._ensure_loaded().get(name)


class FileSecretStore:
    """One file per secret inside a directory (Docker/Kubernetes style).

    The directory supports ``~`` and ``$VAR`` expansion. File contents are
    stripped of surrounding whitespace.

    Raises:
        CredentialFileError: If a secret file exists but cannot be read.
    """

    def __init__(self, directory: str | Path):
        self._directory = Path(os.path.expanduser(os.path.expandvars(str(directory))))

    def get(self, name: str) -> str | None:
        path = self._directory / name
        try:
            content = path.read_text().strip()
            logger.debug(f"Read secret from file: {path} (***)")
            return content
        except FileNotFoundError:
            return None
        except PermissionError:
            raise CredentialFileError(f"Permission denied reading secret file: {path}") from None
        except OSError as e:
            raise CredentialFileError(f"Error reading secret file {path}: {e.strerror}") from e


class SecretResolver:
    """Resolve named secrets from overrides, the environment and a secret store.

    The first source that *has* the name wins. A source that holds the name
    with an empty value stops the lookup and resolution fails; later sources
    are only consulted when the name is absent.

    "Not found" is never cached, so a secret set after start-up is picked up
    on the next call. Values found in the secret store are cached for the
    resolver's lifetime.

    Example:
        ```python
        resolver = SecretResolver(overrides={"API_KEY": "abc123"})
        resolver.resolve("API_KEY").value  # "abc123"
        ```
    """

    def __init__(self, overrides: Mapping[str, str] | None = None, secret_store: SecretStore | None = None):
        """Initialize secret resolver.

        Args:
            overrides: Inline values that take priority over every other source.
            secret_store: Optional store consulted after the environment.
        """
        self._overrides = dict(overrides or {})
        self._secret_store = secret_store
        self._store_cache: dict[str, str] = {}
        self._cache_lock = Lock()

    def set_override(self, name: str, value: str) -> None:
        self._overrides[name] = value

    def clear_cache(self) -> None:
        with self._cache_lock:
            self._store_cache.clear()

    def resolve(self, name: str) -> Credential:
        """Resolve a secret by name.

        Args:
            name: Secret name (also used as the environment variable name).

        Returns:
            The resolved :class:`Credential`.

        Raises:
            SecretNotFoundError: If no source has the name, or the first source
                that has it holds an empty value.
        """
        value, source, where = self._lookup(name)

        if value is None:
            raise SecretNotFoundError(f"Secret not found: {name}", name=name)
        if value == "":
            raise SecretNotFoundError(f"Secret is set but empty in {where}: {name}", name=name)

        logger.debug(f"Resolved secret {name!r} from {where}: ***")
        return Credential(name=name, value=value, source=source)

    def _lookup(self, name: str) -> tuple[str | None, CredentialSource, str]:
        if name in self._overrides:
            return self._overrides[name], CredentialSource.INLINE, "inline override"

        if name in os.environ:
            return os.environ[name], CredentialSource.ENVIRONMENT, f"environment variable '{name}'"

        if self._secret_store is not None:
            where = f"secret store {type(self._secret_store).__name__}"
            with self._cache_lock:
                cached = self._store_cache.get(name)
            if cached is not None:
                return cached, CredentialSource.SECRET_STORE, where

            value = self._secret_store.get(name)
            if value:
                with self._cache_lock:
                    self._store_cache[name] = value
            return value, CredentialSource.SECRET_STORE, where

        return None, CredentialSource.ENVIRONMENT, "environment"
