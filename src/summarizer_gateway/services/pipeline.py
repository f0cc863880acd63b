"""Gateway pipeline — the end-to-end handling of one proxied request.

This is the single entry point for the business logic.  It depends only on
the ports and the pure service modules; the interface layer injects concrete
adapters at runtime.

Stages (terminal on the first failure)::

    Authenticate → AdmissionCheck → Validate → ResolveRepository
      → FetchReadme → FetchMetadata (best-effort) → Summarize → Compose
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from summarizer_gateway.domain.entities import (
    NOT_SPECIFIED,
    AuthenticatedKey,
    InboundRequest,
    RepoMetadata,
    SummaryEnvelope,
    UsageSnapshot,
)
from summarizer_gateway.domain.exceptions import (
    GatewayError,
    InvalidField,
    ServiceUnavailable,
    UnexpectedFailure,
)
from summarizer_gateway.domain.value_objects import DEFAULT_HOST, RepositoryCoordinates
from summarizer_gateway.services.admission import AdmissionController
from summarizer_gateway.services.authenticator import ApiKeyAuthenticator
from summarizer_gateway.services.interceptors import Interceptor, build_chain
from summarizer_gateway.services.metadata_fetcher import MetadataFetcher
from summarizer_gateway.services.readme_text import website_from_readme
from summarizer_gateway.services.repository_resolver import RepositoryResolver
from summarizer_gateway.services.request_validator import (
    FieldShape,
    FieldSpec,
    ValidationSchema,
    validate_body,
)
from summarizer_gateway.services.summarization import SummarizationGateway, pad_tools_with_languages

logger = logging.getLogger(__name__)

URL_FIELD = "githubUrl"

SUMMARIZE_SCHEMA = ValidationSchema(
    fields=(FieldSpec(URL_FIELD, shape=FieldShape.URL, required=True, sanitize=True),),
)

T = TypeVar("T")


class GatewayPipeline:
    """Orchestrates authentication, admission, validation and summarization.

    Parameters
    ----------
    authenticator:
        Resolves the caller's API key.
    admission:
        Process-wide rate limiter shared by every request.
    resolver / metadata:
        README search and metadata enrichment over the repository host.
    summarizer:
        ``None`` when no summarization provider is configured.
    interceptors:
        Wrapped around every call, first element outermost.
    repository_host:
        Domain that ``githubUrl`` must point at.
    """

    def __init__(
        self,
        authenticator: ApiKeyAuthenticator,
        admission: AdmissionController,
        resolver: RepositoryResolver,
        metadata: MetadataFetcher,
        summarizer: SummarizationGateway | None,
        interceptors: Sequence[Interceptor] = (),
        repository_host: str = DEFAULT_HOST,
    ) -> None:
        self._auth = authenticator
        self._admission = admission
        self._resolver = resolver
        self._metadata = metadata
        self._summarizer = summarizer
        self._interceptors = list(interceptors)
        self._host = repository_host

    # ── Public entry points ─────────────────────────────────────────────

    async def summarize(self, request: InboundRequest) -> SummaryEnvelope:
        """Run the full pipeline for ``POST /api/github-summarizer``."""
        return await self._run(request, self._summarize)

    async def validate_key(self, request: InboundRequest) -> AuthenticatedKey:
        """Authenticate only, accepting a body credential."""
        return await self._run(request, self._validate_key)

    # ── Boundary ────────────────────────────────────────────────────────

    async def _run(
        self, request: InboundRequest, handler: Callable[[InboundRequest], Awaitable[T]]
    ) -> T:
        chain = build_chain(self._interceptors, handler)
        try:
            return await chain(request)
        except GatewayError:
            raise
        except Exception as exc:
            logger.exception("Unhandled error in %s %s", request.method, request.path)
            raise UnexpectedFailure(
                "An unexpected error occurred. Please try again later."
            ) from exc

    # ── Stages ──────────────────────────────────────────────────────────

    async def _validate_key(self, request: InboundRequest) -> AuthenticatedKey:
        return await self._auth.authenticate(
            request.headers, request.body, allow_body_credential=True
        )

    async def _summarize(self, request: InboundRequest) -> SummaryEnvelope:
        # 1. Authenticate (headers only; the body belongs to the summarizer)
        auth = await self._auth.authenticate(request.headers)

        # 2. Admission
        decision = self._admission.admit(auth.record.id, request.client_address)

        if self._summarizer is None:
            raise ServiceUnavailable(
                "Summarization service not configured. Set OPENAI_API_KEY and restart the server."
            )

        # 3. Validate body
        body = validate_body(SUMMARIZE_SCHEMA, request.body)

        # 4. Resolve repository coordinates
        coords = RepositoryCoordinates.from_url(body[URL_FIELD], host=self._host)
        if coords is None:
            raise InvalidField(URL_FIELD, f"repository URL (https://{self._host}/OWNER/REPO)")
        logger.info("Summarising %s for key %s", coords.full_name, auth.record.id)

        # 5. README (ordered fallback search)
        readme = await self._resolver.find_readme(coords)

        # 6. Metadata, best-effort
        try:
            metadata = await self._metadata.fetch(coords)
        except Exception:
            logger.warning("Metadata enrichment failed for %s", coords.full_name, exc_info=True)
            metadata = None

        # 7. Summarize
        summary = await self._summarizer.summarize(readme, metadata)

        # 8. Compose
        effective = metadata or RepoMetadata()
        summary = pad_tools_with_languages(summary, effective.languages)
        website = effective.homepage
        if website == NOT_SPECIFIED:
            website = website_from_readme(readme.text) or NOT_SPECIFIED

        usage = None
        if not auth.is_demo:
            usage = UsageSnapshot(
                usage_count=auth.record.usage_count,
                window_limit=decision.limit,
                window_remaining=decision.remaining,
                reset_after=decision.reset_after,
            )

        return SummaryEnvelope(
            model_used=self._summarizer.model_name,
            readme_source=readme.source_url,
            summary=summary,
            metadata=effective,
            website_url=website,
            usage=usage,
        )
