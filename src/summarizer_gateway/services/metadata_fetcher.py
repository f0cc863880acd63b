"""Metadata fetcher — best-effort repository facts (stars, release, license, homepage, languages)."""

from __future__ import annotations

import logging
from typing import Any

from summarizer_gateway.domain.entities import NOT_AVAILABLE, NOT_SPECIFIED, RepoMetadata
from summarizer_gateway.domain.exceptions import MetadataUnavailable
from summarizer_gateway.domain.ports.repository_host import RepositoryHost
from summarizer_gateway.domain.value_objects import RepositoryCoordinates

logger = logging.getLogger(__name__)


class MetadataFetcher:
    """Enriches a repository with metadata, never raising for upstream failures."""

    def __init__(self, host: RepositoryHost) -> None:
        self._host = host

    async def fetch(self, coords: RepositoryCoordinates) -> RepoMetadata | None:
        """Return metadata, or ``None`` if the repository-info call fails."""
        try:
            repo = await self._host.fetch_repository(coords)
        except MetadataUnavailable as exc:
            logger.warning("Metadata unavailable for %s: %s", coords.full_name, exc)
            return None

        return RepoMetadata(
            stars=_as_int(repo.get("stargazers_count")),
            latest_version=await self._latest_version(coords),
            license_name=_license_name(repo.get("license")),
            homepage=repo.get("homepage") or NOT_SPECIFIED,
            description=repo.get("description") or None,
            languages=await self._languages(coords),
        )

    async def _latest_version(self, coords: RepositoryCoordinates) -> str:
        """Latest release name, falling back to the newest tag."""
        try:
            release = await self._host.fetch_latest_release(coords)
        except MetadataUnavailable as exc:
            logger.debug("No latest release for %s: %s", coords.full_name, exc)
        else:
            version = release.get("tag_name") or release.get("name")
            if version:
                return version

        try:
            tags = await self._host.fetch_tags(coords, limit=1)
        except MetadataUnavailable as exc:
            logger.debug("No tags for %s: %s", coords.full_name, exc)
            return NOT_AVAILABLE
        if tags and tags[0].get("name"):
            return tags[0]["name"]
        return NOT_AVAILABLE

    async def _languages(self, coords: RepositoryCoordinates) -> tuple[str, ...]:
        try:
            breakdown = await self._host.fetch_languages(coords)
        except MetadataUnavailable as exc:
            logger.debug("No language breakdown for %s: %s", coords.full_name, exc)
            return ()
        return tuple(name for name in breakdown if isinstance(name, str) and name)


def _license_name(license_info: Any) -> str:
    if isinstance(license_info, dict):
        return license_info.get("name") or NOT_SPECIFIED
    return NOT_SPECIFIED


def _as_int(value: Any) -> int:
    return value if isinstance(value, int) and value >= 0 else 0
