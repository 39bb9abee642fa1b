"""Immutable request descriptions.

A :class:`RequestSpec` describes one read-only call: the base URL, ordered
query parameters and headers. Auth strategies never mutate a spec; they
return a decorated copy. Parameters and headers that carry credentials are
tracked as sensitive so logs and error messages can show a redacted URL.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

import httpx

REDACTED = "***"

ParamValue = str | int | float | bool | None


def _freeze_headers(headers: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(headers or {}))


@dataclass(frozen=True)
class RequestSpec:
    """Description of an outbound GET request.

    Attributes:
        base_url: Absolute URL, optionally carrying its own query string.
        params: Ordered ``(name, value)`` pairs. Names are unique; a ``None``
            value means the parameter is left off the wire.
        headers: Extra request headers.
        timeout: Per-request timeout override in seconds.
        sensitive_params: Parameter names whose values must never be logged.
        sensitive_headers: Header names whose values must never be logged.

    Example:
        ```python
        spec = RequestSpec("https://api.example.com/search", params={"q": "bikes", "page": None})
        spec = spec.with_param("page", 2)
        ```
    """

    base_url: str
    params: tuple[tuple[str, ParamValue], ...] = ()
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}), hash=False)
    method: str = "GET"
    timeout: float | None = None
    sensitive_params: frozenset[str] = frozenset()
    sensitive_headers: frozenset[str] = frozenset()

    def __init__(
        self,
        base_url: str,
        params: Mapping[str, ParamValue] | Iterable[tuple[str, ParamValue]] | None = None,
        headers: Mapping[str, str] | None = None,
        method: str = "GET",
        timeout: float | None = None,
        sensitive_params: Iterable[str] = (),
        sensitive_headers: Iterable[str] = (),
    ):
        if method.upper() not in ("GET", "HEAD"):
            raise ValueError(f"RequestSpec only describes read-only requests, got {method!r}")

        pairs: list[tuple[str, ParamValue]] = []
        items = params.items() if isinstance(params, Mapping) else (params or ())
        for name, value in items:
            pairs = _set_pair(pairs, name, value)

        object.__setattr__(self, "base_url", base_url)
        object.__setattr__(self, "params", tuple(pairs))
        object.__setattr__(self, "headers", _freeze_headers(headers))
        object.__setattr__(self, "method", method.upper())
        object.__setattr__(self, "timeout", timeout)
        object.__setattr__(self, "sensitive_params", frozenset(sensitive_params))
        object.__setattr__(self, "sensitive_headers", frozenset(h.lower() for h in sensitive_headers))

    def with_param(self, name: str, value: ParamValue, *, sensitive: bool = False) -> "RequestSpec":
        """Return a copy with ``name`` set, replacing any earlier value in place."""
        sensitive_params = self.sensitive_params | {name} if sensitive else self.sensitive_params
        return replace(
            self,
            params=tuple(_set_pair(list(self.params), name, value)),
            sensitive_params=sensitive_params,
        )

    def with_params(self, params: Mapping[str, ParamValue]) -> "RequestSpec":
        spec = self
        for name, value in params.items():
            spec = spec.with_param(name, value)
        return spec

    def with_header(self, name: str, value: str, *, sensitive: bool = False) -> "RequestSpec":
        """Return a copy with header ``name`` set (case-insensitive replace)."""
        headers = {k: v for k, v in self.headers.items() if k.lower() != name.lower()}
        headers[name] = value
        sensitive_headers = self.sensitive_headers | {name.lower()} if sensitive else self.sensitive_headers
        return replace(self, headers=headers, sensitive_headers=sensitive_headers)

    def get_param(self, name: str) -> ParamValue:
        for key, value in self.params:
            if key == name:
                return value
        return None

    def query_items(self) -> list[tuple[str, str]]:
        """Parameters as wire strings, with ``None`` values dropped."""
        return [(name, _to_wire(value)) for name, value in self.params if value is not None]

    def url(self) -> str:
        """Full URL including the base URL's own query and :attr:`params`."""
        return str(httpx.URL(self.base_url).copy_merge_params(self.query_items()))

    def redacted_url(self) -> str:
        """Full URL with sensitive parameter values replaced by ``***``."""
        url = httpx.URL(self.base_url)
        items = [(name, REDACTED if name in self.sensitive_params else value) for name, value in self.query_items()]
        return str(url.copy_merge_params(items))

    def redacted_headers(self) -> dict[str, str]:
        return {k: REDACTED if k.lower() in self.sensitive_headers else v for k, v in self.headers.items()}

    def __repr__(self) -> str:
        return f"RequestSpec(method={self.method!r}, url={self.redacted_url()!r}, headers={self.redacted_headers()!r})"


def _set_pair(pairs: list[tuple[str, ParamValue]], name: str, value: ParamValue) -> list[tuple[str, ParamValue]]:
    for index, (key, _) in enumerate(pairs):
        if key == name:
            pairs[index] = (name, value)
            return pairs
    pairs.append((name, value))
    return pairs


def _to_wire(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
