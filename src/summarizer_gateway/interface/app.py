"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from summarizer_gateway.infrastructure.config import get_settings
from summarizer_gateway.interface.dependencies import shutdown, startup
from summarizer_gateway.interface.error_handlers import register_error_handlers
from summarizer_gateway.interface.routes import router

SECURITY_HEADERS: dict[str, str] = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=(), interest-cohort=()",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
}

NO_CACHE_HEADERS: dict[str, str] = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup / shutdown of shared resources."""
    await startup()
    yield
    await shutdown()


async def _response_headers(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    if request.url.path.startswith("/api/"):
        response.headers.update(NO_CACHE_HEADERS)
    return response


def create_app() -> FastAPI:
    """Build and wire the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title="GitHub Summarizer Gateway",
        version="1.0.0",
        description=(
            "API-key protected endpoint that summarizes the README of a public "
            "GitHub repository, with per-key and per-address rate limiting."
        ),
        lifespan=_lifespan,
    )

    register_error_handlers(app)
    app.middleware("http")(_response_headers)
    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allow_origins,
            allow_methods=["GET", "POST"],
            allow_headers=["Authorization", "apikey", "Content-Type"],
        )
    app.include_router(router)

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
