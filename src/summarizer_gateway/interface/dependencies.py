"""FastAPI dependency injection wiring.

Process-wide collaborators (HTTP client, LLM client, key store, admission
state) are built once in :func:`startup` and handed to the pipeline
explicitly.
"""

from __future__ import annotations

import logging

import httpx

from summarizer_gateway.domain.ports.key_store import KeyStore
from summarizer_gateway.infrastructure.config import Settings, get_settings
from summarizer_gateway.infrastructure.github_rest_adapter import GitHubRestAdapter
from summarizer_gateway.infrastructure.memory_key_store import InMemoryKeyStore
from summarizer_gateway.infrastructure.openai_adapter import OpenAIAdapter
from summarizer_gateway.infrastructure.supabase_key_store import SupabaseKeyStore
from summarizer_gateway.services.admission import AdmissionController
from summarizer_gateway.services.authenticator import ApiKeyAuthenticator
from summarizer_gateway.services.interceptors import SecurityMonitor, SlowRequestMonitor
from summarizer_gateway.services.metadata_fetcher import MetadataFetcher
from summarizer_gateway.services.pipeline import GatewayPipeline
from summarizer_gateway.services.repository_resolver import RepositoryResolver
from summarizer_gateway.services.summarization import SummarizationGateway

logger = logging.getLogger(__name__)

_http_client: httpx.AsyncClient | None = None
_openai_adapter: OpenAIAdapter | None = None
_pipeline: GatewayPipeline | None = None


async def startup() -> None:
    """Initialise shared resources — called from the lifespan context manager."""
    global _http_client, _openai_adapter, _pipeline  # noqa: PLW0603

    settings = get_settings()
    _http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout_seconds))
    if settings.openai_api_key is not None:
        _openai_adapter = OpenAIAdapter(
            api_key=settings.openai_api_key.get_secret_value(),
            model=settings.openai_model,
            timeout=settings.http_timeout_seconds * 4,
        )
    else:
        logger.warning("OPENAI_API_KEY is not set; summarization requests will return 503.")

    _pipeline = build_pipeline(settings, _http_client, _openai_adapter)


async def shutdown() -> None:
    """Release shared resources."""
    global _http_client, _openai_adapter, _pipeline  # noqa: PLW0603

    if _http_client:
        await _http_client.aclose()
        _http_client = None
    if _openai_adapter:
        await _openai_adapter.close()
        _openai_adapter = None
    _pipeline = None


def build_key_store(settings: Settings, client: httpx.AsyncClient) -> KeyStore | None:
    """Key store selected by ``KEY_STORE_BACKEND``; ``None`` if it is unconfigured."""
    if settings.key_store_backend == "memory":
        return InMemoryKeyStore.from_seed(settings.seed_api_keys)

    if not settings.supabase_url or settings.supabase_key is None:
        logger.warning("Supabase key store selected but SUPABASE_URL / SUPABASE_KEY are unset.")
        return None
    return SupabaseKeyStore(
        client,
        settings.supabase_url,
        settings.supabase_key.get_secret_value(),
        settings.supabase_table,
        tracks_last_used=settings.key_store_tracks_last_used,
    )


def build_pipeline(
    settings: Settings,
    client: httpx.AsyncClient,
    llm: OpenAIAdapter | None,
) -> GatewayPipeline:
    token = settings.github_token.get_secret_value() if settings.github_token else None
    github = GitHubRestAdapter(client=client, token=token)

    return GatewayPipeline(
        authenticator=ApiKeyAuthenticator(build_key_store(settings, client), settings.demo_api_keys),
        admission=AdmissionController(
            settings.key_rate_limit.to_policy(),
            settings.address_rate_limit.to_policy(),
            settings.escalation_policy(),
            max_tracked_identities=settings.max_tracked_identities,
        ),
        resolver=RepositoryResolver(github),
        metadata=MetadataFetcher(github),
        summarizer=(
            SummarizationGateway(llm, max_readme_tokens=settings.max_readme_tokens)
            if llm is not None
            else None
        ),
        interceptors=[
            SecurityMonitor(settings.blocked_user_agents),
            SlowRequestMonitor(settings.slow_request_seconds),
        ],
        repository_host=settings.repository_host,
    )


def get_pipeline() -> GatewayPipeline:
    """Return the process-wide pipeline built at startup."""
    assert _pipeline is not None, "startup() was not called"
    return _pipeline
