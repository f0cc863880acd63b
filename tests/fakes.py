"""In-memory stand-ins for the pipeline's collaborators."""
from __future__ import annotations

import asyncio
import json
from typing import Any

from summarizer_gateway.domain.entities import (
    ApiKeyRecord,
    EscalationPolicy,
    InboundRequest,
    SummaryResult,
    WindowPolicy,
)
from summarizer_gateway.domain.exceptions import MetadataUnavailable
from summarizer_gateway.domain.ports.repository_host import FetchedFile
from summarizer_gateway.domain.value_objects import RepositoryCoordinates
from summarizer_gateway.infrastructure.memory_key_store import InMemoryKeyStore
from summarizer_gateway.services.admission import AdmissionController
from summarizer_gateway.services.authenticator import ApiKeyAuthenticator
from summarizer_gateway.services.metadata_fetcher import MetadataFetcher
from summarizer_gateway.services.pipeline import GatewayPipeline
from summarizer_gateway.services.repository_resolver import RepositoryResolver

RAW = "https://raw.githubusercontent.com"

LIVE_KEY = "gs_live_key_000000000000"
INACTIVE_KEY = "gs_inactive_key_00000000"
DEMO_KEY = "Demo_API_Key"


def run(coro: Any) -> Any:
    return asyncio.run(coro)


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRepositoryHost:
    """Serves raw files from a ``{(branch, path): text}`` map.

    ``repo`` / ``release`` / ``tags`` / ``languages`` set to ``None`` simulate a
    non-success status.
    """

    def __init__(
        self,
        files: dict[tuple[str, str], str] | None = None,
        repo: dict[str, Any] | None = None,
        release: dict[str, Any] | None = None,
        tags: list[dict[str, Any]] | None = None,
        languages: dict[str, Any] | None = None,
    ) -> None:
        self.files = files or {}
        self.repo = repo
        self.release = release
        self.tags = tags
        self.languages = languages
        self.raw_calls: list[tuple[str, str]] = []
        self.api_calls: list[str] = []

    async def fetch_raw_file(
        self, coords: RepositoryCoordinates, branch: str, path: str
    ) -> FetchedFile | None:
        self.raw_calls.append((branch, path))
        text = self.files.get((branch, path))
        if text is None:
            return None
        return FetchedFile(url=f"{RAW}/{coords.owner}/{coords.name}/{branch}/{path}", text=text)

    async def fetch_repository(self, coords: RepositoryCoordinates) -> dict[str, Any]:
        self.api_calls.append("repository")
        if self.repo is None:
            raise MetadataUnavailable("GitHub API returned HTTP 404")
        return self.repo

    async def fetch_latest_release(self, coords: RepositoryCoordinates) -> dict[str, Any]:
        self.api_calls.append("release")
        if self.release is None:
            raise MetadataUnavailable("GitHub API returned HTTP 404")
        return self.release

    async def fetch_tags(
        self, coords: RepositoryCoordinates, limit: int = 1
    ) -> list[dict[str, Any]]:
        self.api_calls.append("tags")
        if self.tags is None:
            raise MetadataUnavailable("GitHub API returned HTTP 404")
        return self.tags[:limit]

    async def fetch_languages(self, coords: RepositoryCoordinates) -> dict[str, Any]:
        self.api_calls.append("languages")
        if self.languages is None:
            raise MetadataUnavailable("GitHub API returned HTTP 404")
        return self.languages


class FakeSummarizer:
    model_name = "fake-model"

    def __init__(self, result: SummaryResult | None = None, error: Exception | None = None) -> None:
        self.result = result or SummaryResult(
            summary="A friendly greeting repository.",
            cool_facts=["It says hello"],
            tools_used=["markdown"],
        )
        self.error = error
        self.calls: list[tuple[Any, Any]] = []

    async def summarize(self, readme: Any, metadata: Any) -> SummaryResult:
        self.calls.append((readme, metadata))
        if self.error is not None:
            raise self.error
        return self.result


class FakeLlm:
    model_name = "fake-llm"

    def __init__(self, response: str = "", error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.prompts: list[tuple[str, str]] = []

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.prompts.append((system_prompt, user_prompt))
        if self.error is not None:
            raise self.error
        return self.response


class FailingUsageStore(InMemoryKeyStore):
    async def increment_usage(self, key_id: str) -> None:
        raise RuntimeError("database is down")


def seeded_records() -> list[ApiKeyRecord]:
    return [
        ApiKeyRecord(id="key-live", key_value=LIVE_KEY, name="Live", usage_count=4),
        ApiKeyRecord(id="key-off", key_value=INACTIVE_KEY, name="Off", is_active=False),
    ]


def seeded_store() -> InMemoryKeyStore:
    return InMemoryKeyStore(seeded_records())


def make_request(
    body: Any = None,
    headers: dict[str, str] | None = None,
    address: str = "10.0.0.1",
    path: str = "/api/github-summarizer",
) -> InboundRequest:
    if body is None:
        raw = b""
    elif isinstance(body, bytes):
        raw = body
    else:
        raw = json.dumps(body).encode()
    return InboundRequest(
        method="POST",
        path=path,
        headers={k.lower(): v for k, v in (headers or {}).items()},
        body=raw,
        client_address=address,
    )


def bearer(key: str = LIVE_KEY) -> dict[str, str]:
    return {"Authorization": f"Bearer {key}"}


def make_admission(
    key_max: int = 10,
    address_max: int = 100,
    threshold: int = 3,
    clock: FakeClock | None = None,
) -> AdmissionController:
    return AdmissionController(
        WindowPolicy(window_seconds=60, max_requests=key_max),
        WindowPolicy(window_seconds=900, max_requests=address_max),
        EscalationPolicy(violation_threshold=threshold, lookback_seconds=600, block_seconds=3600),
        clock=clock or FakeClock(),
    )


def make_pipeline(
    store: InMemoryKeyStore | None = None,
    host: FakeRepositoryHost | None = None,
    summarizer: Any = "default",
    admission: AdmissionController | None = None,
    interceptors: list[Any] | None = None,
    repository_host: str = "github.com",
) -> GatewayPipeline:
    host = host if host is not None else FakeRepositoryHost()
    return GatewayPipeline(
        authenticator=ApiKeyAuthenticator(
            store if store is not None else seeded_store(), [DEMO_KEY]
        ),
        admission=admission or make_admission(),
        resolver=RepositoryResolver(host),
        metadata=MetadataFetcher(host),
        summarizer=FakeSummarizer() if summarizer == "default" else summarizer,
        interceptors=interceptors or [],
        repository_host=repository_host,
    )
