"""In-process key store — implements the KeyStore port for local runs and tests."""

from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone

from summarizer_gateway.domain.entities import ApiKeyRecord, generate_api_key


class InMemoryKeyStore:
    """Dictionary-backed key store; increments are atomic under a lock."""

    def __init__(self, records: list[ApiKeyRecord] | None = None) -> None:
        self._lock = threading.Lock()
        self._by_id: dict[str, ApiKeyRecord] = {}
        for record in records or []:
            self._by_id[record.id] = record

    @classmethod
    def from_seed(cls, seed: dict[str, str]) -> InMemoryKeyStore:
        """Build a store from a ``{key_value: display_name}`` mapping."""
        now = datetime.now(timezone.utc)
        return cls(
            [
                ApiKeyRecord(id=str(uuid.uuid4()), key_value=key, name=name, created_at=now)
                for key, name in seed.items()
            ]
        )

    def create(self, name: str, description: str | None = None) -> ApiKeyRecord:
        record = ApiKeyRecord(
            id=str(uuid.uuid4()),
            key_value=generate_api_key(),
            name=name,
            description=description,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._by_id[record.id] = record
        return record

    def set_active(self, key_id: str, active: bool) -> None:
        with self._lock:
            self._by_id[key_id] = replace(self._by_id[key_id], is_active=active)

    def get(self, key_id: str) -> ApiKeyRecord | None:
        return self._by_id.get(key_id)

    async def find_by_value(self, key_value: str) -> ApiKeyRecord | None:
        wanted = key_value.strip()
        with self._lock:
            for record in self._by_id.values():
                if record.key_value == wanted:
                    return record
        return None

    async def increment_usage(self, key_id: str) -> None:
        with self._lock:
            record = self._by_id[key_id]
            self._by_id[key_id] = replace(
                record,
                usage_count=record.usage_count + 1,
                last_used=datetime.now(timezone.utc),
            )
