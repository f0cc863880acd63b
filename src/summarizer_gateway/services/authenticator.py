"""Key authenticator — resolves the caller's API key and records its use.

Flow:
  1. Extract a candidate key (Bearer header → ``apikey`` header → body)
  2. Short-circuit configured demo identities
  3. Look the key up in the key store
  4. Reject unknown or inactive keys
  5. Best-effort usage increment
  6. Return the record with the raw key stripped

Raw keys are never logged.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import replace
from datetime import datetime, timezone

from summarizer_gateway.domain.entities import ApiKeyRecord, AuthenticatedKey
from summarizer_gateway.domain.exceptions import (
    InactiveCredential,
    InvalidCredential,
    MalformedBody,
    MissingCredential,
    ServiceUnavailable,
)
from summarizer_gateway.domain.ports.key_store import KeyStore

logger = logging.getLogger(__name__)

DEMO_KEY_ID = "demo-key-id"

_BEARER_PREFIX = "bearer "


def extract_api_key(
    headers: Mapping[str, str], body: bytes | None = None, *, allow_body: bool = False
) -> str | None:
    """Return the first credential found, or ``None``.

    *headers* must use lower-case names.  The body is only parsed when
    *allow_body* is set; a body that is not valid JSON raises
    :class:`MalformedBody`.
    """
    authorization = headers.get("authorization", "")
    if authorization[: len(_BEARER_PREFIX)].lower() == _BEARER_PREFIX:
        token = authorization[len(_BEARER_PREFIX):].strip()
        if token:
            return token

    header_key = headers.get("apikey", "").strip()
    if header_key:
        return header_key

    if not allow_body or not body:
        return None

    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as exc:
        raise MalformedBody("Please ensure your request body contains valid JSON.") from exc

    if isinstance(payload, dict):
        candidate = payload.get("apiKey")
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


class ApiKeyAuthenticator:
    """Turns request credentials into an :class:`AuthenticatedKey`.

    Parameters
    ----------
    key_store:
        Persistence adapter; ``None`` means the store is not configured and
        every non-demo request fails with :class:`ServiceUnavailable`.
    demo_keys:
        Literal key values treated as the public demo identity.  They never
        reach the key store and never move a usage counter.
    """

    def __init__(self, key_store: KeyStore | None, demo_keys: Iterable[str] = ()) -> None:
        self._store = key_store
        self._demo_keys = frozenset(demo_keys)

    async def authenticate(
        self,
        headers: Mapping[str, str],
        body: bytes | None = None,
        *,
        allow_body_credential: bool = False,
    ) -> AuthenticatedKey:
        key_value = extract_api_key(headers, body, allow_body=allow_body_credential)
        if key_value is None:
            raise MissingCredential(
                "Please provide an API key in the Authorization header (Bearer token), "
                "the apikey header, or where supported the request body as apiKey."
            )

        if key_value in self._demo_keys:
            return AuthenticatedKey(record=_demo_record(), is_demo=True)

        if self._store is None:
            raise ServiceUnavailable("API key validation requires a configured key store.")

        record = await self._store.find_by_value(key_value)
        if record is None:
            raise InvalidCredential("The provided API key was not found or is invalid.")
        if not record.is_active:
            raise InactiveCredential("The provided API key is currently inactive.")

        try:
            await self._store.increment_usage(record.id)
        except Exception:
            logger.warning("Failed to record usage for key %s", record.id, exc_info=True)

        used = replace(
            record.without_secret(),
            usage_count=record.usage_count + 1,
            last_used=datetime.now(timezone.utc),
        )
        return AuthenticatedKey(record=used)


def _demo_record() -> ApiKeyRecord:
    return ApiKeyRecord(
        id=DEMO_KEY_ID,
        key_value=None,
        name="Demo API Key",
        description="Demo API key for testing purposes",
        last_used=datetime.now(timezone.utc),
    )
