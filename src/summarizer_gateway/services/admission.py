"""Admission controller — layered fixed-window rate limiting with escalation.

Every request is counted against two independent windows: one for the API
key and one for the client address.  A request is denied when either count,
after incrementing, exceeds its capacity.  Each denial is a *violation* for
the offending identity; enough violations inside the lookback period install
a temporary block that denies outright until it expires.

State lives in process memory.  All reads and writes happen inside one
``threading.Lock`` section that never awaits, so concurrent requests cannot
both slip under a capacity check.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from summarizer_gateway.domain.entities import (
    AdmissionDecision,
    EscalationPolicy,
    RateLimitState,
    WindowPolicy,
)
from summarizer_gateway.domain.exceptions import RateLimited, TemporarilyBlocked

logger = logging.getLogger(__name__)

SCOPE_KEY = "key"
SCOPE_ADDRESS = "address"


class AdmissionController:
    """Decides allow / deny for a ``(key id, client address)`` pair.

    Parameters
    ----------
    key_policy / address_policy:
        Window length and capacity for each counter kind.
    escalation:
        Violation threshold, lookback and block length.
    clock:
        Monotonic seconds source; injectable for tests.
    max_tracked_identities:
        Once this many states exist, idle ones are pruned.
    """

    def __init__(
        self,
        key_policy: WindowPolicy,
        address_policy: WindowPolicy,
        escalation: EscalationPolicy,
        *,
        clock: Callable[[], float] = time.monotonic,
        max_tracked_identities: int = 10_000,
    ) -> None:
        self._policies = {SCOPE_KEY: key_policy, SCOPE_ADDRESS: address_policy}
        self._escalation = escalation
        self._clock = clock
        self._max_tracked = max_tracked_identities
        self._states: dict[tuple[str, str], RateLimitState] = {}
        self._lock = threading.Lock()

    def admit(self, key_id: str, client_address: str) -> AdmissionDecision:
        """Count one request; raise :class:`RateLimited` / :class:`TemporarilyBlocked` on denial."""
        with self._lock:
            now = self._clock()
            if len(self._states) > self._max_tracked:
                self._prune(now)

            identities = [(SCOPE_KEY, key_id), (SCOPE_ADDRESS, client_address)]
            states = [(scope, self._state_for(scope, ident, now)) for scope, ident in identities]

            # Blocks are checked before any counter moves.
            for scope, state in states:
                if state.blocked_until is None:
                    continue
                if now < state.blocked_until:
                    raise TemporarilyBlocked(
                        f"This {scope} is temporarily blocked due to repeated rate limit violations.",
                        scope=scope,
                        retry_after=state.blocked_until - now,
                    )
                state.reset(now)

            exceeded: list[int] = []
            for index, (scope, state) in enumerate(states):
                policy = self._policies[scope]
                if now - state.window_start >= policy.window_seconds:
                    state.window_start = now
                    state.count = 0
                state.count += 1
                if state.count > policy.max_requests:
                    exceeded.append(index)

            if exceeded:
                for index in exceeded:
                    scope, state = states[index]
                    self._record_violation(scope, identities[index][1], state, now)
                scope, state = states[exceeded[0]]
                policy = self._policies[scope]
                raise RateLimited(
                    f"Too many requests for this {scope}. Please try again later.",
                    scope=scope,
                    retry_after=state.window_start + policy.window_seconds - now,
                )

            key_state = states[0][1]
            policy = self._policies[SCOPE_KEY]
            return AdmissionDecision(
                limit=policy.max_requests,
                remaining=policy.max_requests - key_state.count,
                reset_after=key_state.window_start + policy.window_seconds - now,
            )

    def state(self, scope: str, identity: str) -> RateLimitState | None:
        """Current state for one identity, mainly for inspection in tests."""
        return self._states.get((scope, identity))

    # ── Internals (caller holds the lock) ───────────────────────────────

    def _state_for(self, scope: str, identity: str, now: float) -> RateLimitState:
        state = self._states.get((scope, identity))
        if state is None:
            state = RateLimitState(window_start=now)
            self._states[(scope, identity)] = state
        return state

    def _record_violation(self, scope: str, identity: str, state: RateLimitState, now: float) -> None:
        esc = self._escalation
        if state.first_violation_at is None or now - state.first_violation_at > esc.lookback_seconds:
            state.first_violation_at = now
            state.violations = 0
        state.violations += 1

        if state.violations >= esc.violation_threshold:
            state.blocked_until = now + esc.block_seconds
            logger.warning(
                "Blocking %s %s for %.0fs after %d violations",
                scope,
                identity,
                esc.block_seconds,
                state.violations,
            )

    def _prune(self, now: float) -> None:
        idle = [
            ident
            for ident, state in self._states.items()
            if state.blocked_until is None
            and now - state.window_start >= self._policies[ident[0]].window_seconds
            and (
                state.first_violation_at is None
                or now - state.first_violation_at > self._escalation.lookback_seconds
            )
        ]
        for ident in idle:
            del self._states[ident]
        logger.debug("Pruned %d idle rate-limit states", len(idle))
