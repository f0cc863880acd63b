"""Port: key store — lookup and usage accounting for persisted API keys."""

from __future__ import annotations

from typing import Protocol

from summarizer_gateway.domain.entities import ApiKeyRecord


class KeyStore(Protocol):
    """Abstract contract for the persistence layer holding API keys."""

    async def find_by_value(self, key_value: str) -> ApiKeyRecord | None:
        """Return the record whose key equals *key_value*, or ``None``."""
        ...

    async def increment_usage(self, key_id: str) -> None:
        """Atomically add one to the key's usage counter and touch ``last_used``."""
        ...
