"""Request interceptors — an ordered chain wrapped around each pipeline call.

An interceptor receives the inbound request and the next handler and must
return whatever that handler returns (or raise).  The first interceptor in
the list is the outermost.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Sequence
from enum import Enum
from typing import Any

from summarizer_gateway.domain.entities import InboundRequest
from summarizer_gateway.domain.exceptions import (
    BlockedRequest,
    GatewayError,
    InactiveCredential,
    InvalidCredential,
    MissingCredential,
    RateLimited,
    TemporarilyBlocked,
)

security_logger = logging.getLogger("summarizer_gateway.security")
logger = logging.getLogger(__name__)

Handler = Callable[[InboundRequest], Awaitable[Any]]
Interceptor = Callable[[InboundRequest, Handler], Awaitable[Any]]


class SecurityEvent(str, Enum):
    SUSPICIOUS_ACTIVITY = "SUSPICIOUS_ACTIVITY"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    AUTHENTICATION_FAILURE = "AUTHENTICATION_FAILURE"
    BLOCKED_REQUEST = "BLOCKED_REQUEST"
    API_ABUSE = "API_ABUSE"


_SEVERITY = {
    SecurityEvent.SUSPICIOUS_ACTIVITY: "medium",
    SecurityEvent.RATE_LIMIT_EXCEEDED: "medium",
    SecurityEvent.AUTHENTICATION_FAILURE: "high",
    SecurityEvent.BLOCKED_REQUEST: "medium",
    SecurityEvent.API_ABUSE: "high",
}


def log_security_event(
    event: SecurityEvent, request: InboundRequest, details: dict[str, Any]
) -> None:
    entry = {
        "eventType": event.value,
        "severity": _SEVERITY[event],
        "clientIP": request.client_address,
        "userAgent": request.header("user-agent") or "unknown",
        "method": request.method,
        "path": request.path,
        "details": details,
    }
    security_logger.warning("[SECURITY] %s: %s", event.value, json.dumps(entry, default=str))


def build_chain(interceptors: Sequence[Interceptor], handler: Handler) -> Handler:
    """Wrap *handler* so that ``interceptors[0]`` runs first."""
    for interceptor in reversed(interceptors):
        handler = _bind(interceptor, handler)
    return handler


def _bind(interceptor: Interceptor, call_next: Handler) -> Handler:
    async def bound(request: InboundRequest) -> Any:
        return await interceptor(request, call_next)

    return bound


class SecurityMonitor:
    """Blocks known scanner user agents and records auth / abuse failures."""

    def __init__(self, blocked_user_agents: Iterable[str] = ()) -> None:
        self._blocked = tuple(ua.lower() for ua in blocked_user_agents if ua)

    async def __call__(self, request: InboundRequest, call_next: Handler) -> Any:
        user_agent = (request.header("user-agent") or "").lower()
        match = next((sig for sig in self._blocked if sig in user_agent), None)
        if match is not None:
            log_security_event(
                SecurityEvent.SUSPICIOUS_ACTIVITY,
                request,
                {"reason": "Suspicious user agent detected", "signature": match},
            )
            raise BlockedRequest("Request blocked due to security policy.")

        try:
            return await call_next(request)
        except TemporarilyBlocked as exc:
            log_security_event(SecurityEvent.API_ABUSE, request, {"scope": exc.scope})
            raise
        except RateLimited as exc:
            log_security_event(SecurityEvent.RATE_LIMIT_EXCEEDED, request, {"scope": exc.scope})
            raise
        except (MissingCredential, InvalidCredential, InactiveCredential) as exc:
            log_security_event(SecurityEvent.AUTHENTICATION_FAILURE, request, {"kind": exc.kind})
            raise


class SlowRequestMonitor:
    """Warns about requests that take longer than *threshold_seconds*."""

    def __init__(
        self,
        threshold_seconds: float = 5.0,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._threshold = threshold_seconds
        self._clock = clock

    async def __call__(self, request: InboundRequest, call_next: Handler) -> Any:
        started = self._clock()
        outcome = "ok"
        try:
            return await call_next(request)
        except GatewayError as exc:
            outcome = exc.kind
            raise
        finally:
            elapsed = self._clock() - started
            if elapsed > self._threshold:
                log_security_event(
                    SecurityEvent.SUSPICIOUS_ACTIVITY,
                    request,
                    {"reason": "Unusually slow request", "seconds": round(elapsed, 2), "outcome": outcome},
                )
            else:
                logger.debug("%s %s finished in %.3fs (%s)", request.method, request.path, elapsed, outcome)
