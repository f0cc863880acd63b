"""API routes — thin controllers that delegate to the pipeline."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from summarizer_gateway.domain.entities import InboundRequest
from summarizer_gateway.interface.dependencies import get_pipeline
from summarizer_gateway.interface.schemas import (
    ApiKeyInfo,
    ErrorResponse,
    SummarizeResponse,
    ValidateKeyResponse,
)
from summarizer_gateway.services.pipeline import GatewayPipeline

router = APIRouter(prefix="/api")

_AUTH_METHODS = [
    "Authorization: Bearer <api_key>",
    "apikey: <api_key>",
]

_ERRORS: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Missing credential or invalid body"},
    401: {"model": ErrorResponse, "description": "Invalid or inactive API key"},
    403: {"model": ErrorResponse, "description": "Blocked by security policy"},
    429: {"model": ErrorResponse, "description": "Rate limited or temporarily blocked"},
    503: {"model": ErrorResponse, "description": "Key store or summarizer unavailable"},
}


def client_address(request: Request) -> str:
    """Caller address, preferring proxy headers over the socket peer."""
    for header in ("x-real-ip", "x-client-ip", "x-forwarded-for"):
        value = request.headers.get(header)
        if value:
            first = value.split(",")[0].strip()
            if first:
                return first
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


async def to_inbound(request: Request) -> InboundRequest:
    return InboundRequest(
        method=request.method,
        path=request.url.path,
        headers={k.lower(): v for k, v in request.headers.items()},
        body=await request.body(),
        client_address=client_address(request),
    )


# ── GitHub summarizer ───────────────────────────────────────────────────────


@router.get("/github-summarizer")
async def summarizer_info() -> dict[str, Any]:
    """Describe the summarizer endpoint.  Needs no credential."""
    return {
        "name": "GitHub Repository Summarizer API",
        "version": "1.0.0",
        "description": "Summarizes a GitHub repository README with repository facts.",
        "authentication": {"required": True, "methods": _AUTH_METHODS},
        "parameters": {
            "githubUrl": "GitHub repository URL, e.g. https://github.com/OWNER/REPO",
        },
    }


@router.post(
    "/github-summarizer",
    response_model=SummarizeResponse,
    response_model_exclude_none=True,
    responses={
        **_ERRORS,
        404: {"model": ErrorResponse, "description": "README not found"},
        502: {"model": ErrorResponse, "description": "Summarization provider error"},
    },
)
async def summarize(
    request: Request,
    pipeline: GatewayPipeline = Depends(get_pipeline),
) -> SummarizeResponse:
    """Summarise a public GitHub repository's README."""
    envelope = await pipeline.summarize(await to_inbound(request))
    return SummarizeResponse.from_envelope(envelope)


# ── Key validation ──────────────────────────────────────────────────────────


@router.get("/validate-api-key")
async def validate_key_info() -> dict[str, Any]:
    """Describe the key validation endpoint.  Needs no credential."""
    return {
        "name": "API Key Validation API",
        "version": "1.0.0",
        "description": "Validates an API key without running any business logic.",
        "authentication": {
            "required": True,
            "methods": [*_AUTH_METHODS, 'Request body: { "apiKey": "<api_key>" }'],
        },
        "endpoints": {
            "POST": {
                "description": "Validate API key and return key information",
                "parameters": {
                    "apiKey": "Your API key (Authorization header, apikey header, or request body)",
                },
            },
            "GET": {"description": "Get API information and documentation", "parameters": {}},
        },
    }


@router.post("/validate-api-key", response_model=ValidateKeyResponse, responses=_ERRORS)
async def validate_key(
    request: Request,
    pipeline: GatewayPipeline = Depends(get_pipeline),
) -> ValidateKeyResponse:
    """Validate an API key and return its public details."""
    auth = await pipeline.validate_key(await to_inbound(request))
    return ValidateKeyResponse(api_key=ApiKeyInfo.from_record(auth.record))
