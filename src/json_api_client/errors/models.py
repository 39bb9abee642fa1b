"""RFC 7807 Problem Details models."""

from dataclasses import dataclass
from typing import Any

STANDARD_FIELDS = frozenset({"type", "title", "status", "detail", "instance"})


@dataclass
class ProblemDetail:
    """RFC 7807 Problem Details object.

    See: https://datatracker.ietf.org/doc/html/rfc7807
    """

    type: str | None = None  # URI reference identifying the problem type
    title: str | None = None  # Short, human-readable summary
    status: int | None = None  # HTTP status code
    detail: str | None = None  # Human-readable explanation
    instance: str | None = None  # URI reference identifying specific occurrence

    # Extension members (additional fields from API)
    extensions: dict[str, Any] | None = None

    @classmethod
    def from_body(cls, body: Any, content_type: str = "") -> "ProblemDetail | None":
        """Build problem details from an already decoded error body.

        Args:
            body: Decoded JSON error body (any JSON value).
            content_type: The response Content-Type header.

        Returns:
            ProblemDetail object or None if the body is not RFC 7807 shaped
        """
        if not isinstance(body, dict):
            return None

        # Without the problem+json media type, require at least one standard field
        if "application/problem+json" not in content_type and not any(field in body for field in STANDARD_FIELDS):
            return None

        status = body.get("status")
        extensions = {k: v for k, v in body.items() if k not in STANDARD_FIELDS}

        return cls(
            type=body.get("type"),
            title=body.get("title"),
            status=int(status) if isinstance(status, int) else None,
            detail=body.get("detail"),
            instance=body.get("instance"),
            extensions=extensions if extensions else None,
        )

    def to_exception_message(self) -> str:
        """Convert problem details to exception message."""
        lines = []

        if self.title:
            lines.append(self.title)
        elif self.detail:
            lines.append(self.detail)

        if self.title and self.detail and self.title != self.detail:
            lines.append(self.detail)

        if self.type:
            lines.append(f"Problem Type: {self.type}")

        if self.instance:
            lines.append(f"Instance: {self.instance}")

        if self.extensions:
            lines.append("Extension fields:")
            for key, value in self.extensions.items():
                lines.append(f"  - {key}: {value}")

        return "\n".join(lines) if lines else "Unknown API error"
