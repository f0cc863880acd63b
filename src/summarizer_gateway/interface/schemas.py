"""Pydantic response DTOs for the API boundary.

Request bodies are read raw and checked by the request validator, so only
responses are modelled here.  Field names are camelCase on the wire.
"""

from __future__ import annotations

import math
from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from summarizer_gateway.domain.entities import ApiKeyRecord, SummaryEnvelope


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UsageInfo(_CamelModel):
    usage_count: int
    window_limit: int
    window_remaining: int
    reset_after: int


class SummarizeResponse(_CamelModel):
    """Successful response from ``POST /api/github-summarizer``."""

    success: bool = True
    message: str = "Repository summarized successfully."
    model_used: str
    readme_source: str
    summary: str
    cool_facts: list[str]
    tools_used: list[str]
    stars: int
    latest_version: str
    license_type: str
    website_url: str
    usage: UsageInfo | None = None

    @classmethod
    def from_envelope(cls, env: SummaryEnvelope) -> SummarizeResponse:
        return cls(
            model_used=env.model_used,
            readme_source=env.readme_source,
            summary=env.summary.summary,
            cool_facts=env.summary.cool_facts,
            tools_used=env.summary.tools_used,
            stars=env.metadata.stars,
            latest_version=env.metadata.latest_version,
            license_type=env.metadata.license_name,
            website_url=env.website_url,
            usage=(
                UsageInfo(
                    usage_count=env.usage.usage_count,
                    window_limit=env.usage.window_limit,
                    window_remaining=env.usage.window_remaining,
                    reset_after=math.ceil(env.usage.reset_after),
                )
                if env.usage is not None
                else None
            ),
        )


class ApiKeyInfo(_CamelModel):
    """Public view of a key — never includes the key value."""

    id: str
    name: str
    description: str | None = None
    usage_count: int
    last_used: datetime | None = None
    is_active: bool

    @classmethod
    def from_record(cls, record: ApiKeyRecord) -> ApiKeyInfo:
        return cls(
            id=record.id,
            name=record.name,
            description=record.description,
            usage_count=record.usage_count,
            last_used=record.last_used,
            is_active=record.is_active,
        )


class ValidateKeyResponse(_CamelModel):
    """Successful response from ``POST /api/validate-api-key``."""

    success: bool = True
    message: str = "API key validated successfully"
    api_key: ApiKeyInfo


class ErrorResponse(BaseModel):
    """Standard error envelope returned on all failure paths."""

    error: str
    message: str
