"""Supabase (PostgREST) key store — implements the KeyStore port over httpx.

The table layout is fixed by configuration: ``key_store_tracks_last_used``
says whether the ``last_used`` column exists, instead of probing for it at
runtime.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from summarizer_gateway.domain.entities import ApiKeyRecord
from summarizer_gateway.domain.exceptions import ServiceUnavailable

logger = logging.getLogger(__name__)

_MAX_CAS_ATTEMPTS = 3


class _ApiKeyRow(BaseModel):
    """Row shape of the ``api_keys`` table."""

    id: str
    key_value: str
    name: str
    description: str | None = None
    is_active: bool = True
    usage_count: int = 0
    last_used: datetime | None = None
    created_at: datetime | None = None
    user_id: str | None = None

    def to_record(self) -> ApiKeyRecord:
        return ApiKeyRecord(**self.model_dump())


class SupabaseKeyStore:
    """Key store backed by a Supabase project's REST endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        service_key: str,
        table: str = "api_keys",
        *,
        tracks_last_used: bool = True,
    ) -> None:
        self._client = client
        self._endpoint = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Accept": "application/json",
        }
        self._tracks_last_used = tracks_last_used

    async def find_by_value(self, key_value: str) -> ApiKeyRecord | None:
        rows = await self._select({"key_value": f"eq.{key_value.strip()}", "select": "*"})
        if not rows:
            return None
        try:
            return _ApiKeyRow.model_validate(rows[0]).to_record()
        except ValidationError as exc:
            raise ServiceUnavailable("Key store returned an unreadable record.") from exc

    async def increment_usage(self, key_id: str) -> None:
        """Compare-and-set increment: only writes if nobody else moved the counter."""
        for _ in range(_MAX_CAS_ATTEMPTS):
            rows = await self._select({"id": f"eq.{key_id}", "select": "usage_count"})
            if not rows:
                raise ServiceUnavailable(f"Key {key_id} disappeared before its usage was recorded.")
            current = int(rows[0].get("usage_count") or 0)

            patch: dict[str, Any] = {"usage_count": current + 1}
            if self._tracks_last_used:
                patch["last_used"] = datetime.now(timezone.utc).isoformat()

            updated = await self._request(
                "PATCH",
                params={"id": f"eq.{key_id}", "usage_count": f"eq.{current}"},
                json=patch,
                headers={"Prefer": "return=representation"},
            )
            if updated:
                return
            logger.debug("Concurrent usage update on key %s, retrying", key_id)

        raise ServiceUnavailable(f"Could not record usage for key {key_id} after retries.")

    async def _select(self, params: dict[str, str]) -> list[dict[str, Any]]:
        return await self._request("GET", params=params)

    async def _request(
        self,
        method: str,
        *,
        params: dict[str, str],
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        try:
            resp = await self._client.request(
                method,
                self._endpoint,
                params=params,
                json=json,
                headers={**self._headers, **(headers or {})},
            )
        except httpx.HTTPError as exc:
            raise ServiceUnavailable(f"Key store is unreachable: {exc}") from exc

        if resp.status_code >= 400:
            raise ServiceUnavailable(f"Key store returned HTTP {resp.status_code}.")

        if not resp.content:
            return []
        try:
            data = resp.json()
        except ValueError as exc:
            raise ServiceUnavailable("Key store returned a non-JSON response.") from exc
        return data if isinstance(data, list) else [data]
