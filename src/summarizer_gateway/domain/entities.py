"""Domain entities — pure data structures with no external dependencies."""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field, replace
from datetime import datetime

NOT_AVAILABLE = "N/A"
NOT_SPECIFIED = "Not specified"

_KEY_PREFIX = "gs_"


def generate_api_key() -> str:
    """Return a fresh opaque API key (prefix + 256 random bits as hex)."""
    return f"{_KEY_PREFIX}{secrets.token_hex(32)}"


@dataclass(frozen=True, slots=True)
class ApiKeyRecord:
    """A persisted API key as seen by the admission pipeline."""

    id: str
    key_value: str | None
    name: str
    is_active: bool = True
    usage_count: int = 0
    description: str | None = None
    last_used: datetime | None = None
    created_at: datetime | None = None
    user_id: str | None = None

    def without_secret(self) -> ApiKeyRecord:
        """Copy of this record with the raw key value removed."""
        return replace(self, key_value=None)


@dataclass(frozen=True, slots=True)
class AuthenticatedKey:
    """Outcome of a successful authentication."""

    record: ApiKeyRecord
    is_demo: bool = False


@dataclass(frozen=True, slots=True)
class WindowPolicy:
    """Capacity of one fixed-window counter."""

    window_seconds: float
    max_requests: int


@dataclass(frozen=True, slots=True)
class EscalationPolicy:
    """When repeated denials turn into a temporary block."""

    violation_threshold: int
    lookback_seconds: float
    block_seconds: float


@dataclass(slots=True)
class RateLimitState:
    """Mutable counter state for one key or one client address."""

    window_start: float
    count: int = 0
    violations: int = 0
    first_violation_at: float | None = None
    blocked_until: float | None = None

    def reset(self, now: float) -> None:
        self.window_start = now
        self.count = 0
        self.violations = 0
        self.first_violation_at = None
        self.blocked_until = None


@dataclass(frozen=True, slots=True)
class AdmissionDecision:
    """An allowed request, with the per-key window snapshot after counting it."""

    limit: int
    remaining: int
    reset_after: float


@dataclass(frozen=True, slots=True)
class ReadmeResult:
    """README text and the exact URL it was read from."""

    source_url: str
    text: str


@dataclass(frozen=True, slots=True)
class RepoMetadata:
    """Best-effort facts about a repository, with sentinels instead of nulls."""

    stars: int = 0
    latest_version: str = NOT_AVAILABLE
    license_name: str = NOT_SPECIFIED
    homepage: str = NOT_SPECIFIED
    description: str | None = None
    languages: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class SummaryResult:
    """Structured output of the summarization collaborator."""

    summary: str
    cool_facts: list[str] = field(default_factory=list)
    tools_used: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class UsageSnapshot:
    """Usage numbers reported back to a (non-demo) caller."""

    usage_count: int
    window_limit: int
    window_remaining: int
    reset_after: float


@dataclass(frozen=True, slots=True)
class SummaryEnvelope:
    """Everything the success response is composed from."""

    model_used: str
    readme_source: str
    summary: SummaryResult
    metadata: RepoMetadata
    website_url: str
    usage: UsageSnapshot | None = None


@dataclass(frozen=True, slots=True)
class InboundRequest:
    """Transport-neutral view of one inbound HTTP call."""

    method: str
    path: str
    headers: dict[str, str]
    body: bytes = b""
    client_address: str = "unknown"

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())
