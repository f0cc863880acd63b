"""Domain exception hierarchy.

Each exception carries a short machine-readable ``kind`` that is echoed in
the error envelope.  Inner layers raise these; the outermost error handler
maps them to HTTP status codes.
"""

from __future__ import annotations

from typing import Any


class GatewayError(Exception):
    """Base exception for the entire application."""

    kind = "gateway_error"

    def extra(self) -> dict[str, Any]:
        """Additional fields merged into the error envelope."""
        return {}


# ── Credentials ─────────────────────────────────────────────────────────────


class MissingCredential(GatewayError):
    """No API key was found in headers or (where permitted) the body."""

    kind = "missing_credential"


class InvalidCredential(GatewayError):
    """The presented key does not resolve to a stored record."""

    kind = "invalid_credential"


class InactiveCredential(GatewayError):
    """The key exists but has been disabled by its owner."""

    kind = "inactive_credential"


# ── Admission ───────────────────────────────────────────────────────────────


class RateLimited(GatewayError):
    """A per-key or per-address window counter is over capacity."""

    kind = "rate_limited"

    def __init__(self, message: str, *, scope: str, retry_after: float) -> None:
        super().__init__(message)
        self.scope = scope
        self.retry_after = max(retry_after, 0.0)

    def extra(self) -> dict[str, Any]:
        return {"reason": f"{self.scope}_rate_limit", "retryAfter": round(self.retry_after)}


class TemporarilyBlocked(RateLimited):
    """The identity is serving a temporary block for repeated violations."""

    kind = "temporarily_blocked"

    def extra(self) -> dict[str, Any]:
        return {"reason": f"{self.scope}_blocked", "retryAfter": round(self.retry_after)}


class BlockedRequest(GatewayError):
    """The request matched a security policy (e.g. scanner user agent)."""

    kind = "blocked_request"


# ── Input validation ────────────────────────────────────────────────────────


class MalformedBody(GatewayError):
    """The request body is not a JSON object."""

    kind = "malformed_body"


class MissingField(GatewayError):
    """A required body field is absent or blank."""

    kind = "missing_field"

    def __init__(self, field: str) -> None:
        super().__init__(f"Field '{field}' is required.")
        self.field = field

    def extra(self) -> dict[str, Any]:
        return {"field": self.field}


class InvalidField(GatewayError):
    """A body field is present but has the wrong shape."""

    kind = "invalid_field"

    def __init__(self, field: str, expected: str) -> None:
        super().__init__(f"Field '{field}' must be a valid {expected}.")
        self.field = field
        self.expected = expected

    def extra(self) -> dict[str, Any]:
        return {"field": self.field, "expected": self.expected}


# ── Repository host errors ──────────────────────────────────────────────────


class ReadmeNotFound(GatewayError):
    """No README candidate produced non-empty content."""

    kind = "readme_not_found"


class MetadataUnavailable(GatewayError):
    """Repository metadata could not be fetched.  Never surfaced to callers."""

    kind = "metadata_unavailable"


# ── Summarization errors ────────────────────────────────────────────────────


class SummarizationRateLimited(GatewayError):
    """The summarization provider throttled the request."""

    kind = "summarization_rate_limited"


class SummarizationFailed(GatewayError):
    """Any other error originating from the summarization provider."""

    kind = "summarization_failed"


# ── Infrastructure ──────────────────────────────────────────────────────────


class ServiceUnavailable(GatewayError):
    """A required downstream collaborator is unconfigured or unreachable."""

    kind = "service_unavailable"


class UnexpectedFailure(GatewayError):
    """Catch-all raised at the pipeline boundary for unhandled exceptions."""

    kind = "unexpected_failure"
