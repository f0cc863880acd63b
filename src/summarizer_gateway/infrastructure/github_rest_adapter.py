"""GitHub REST API adapter — implements the RepositoryHost port."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from summarizer_gateway.domain.exceptions import MetadataUnavailable
from summarizer_gateway.domain.ports.repository_host import FetchedFile
from summarizer_gateway.domain.value_objects import RepositoryCoordinates

logger = logging.getLogger(__name__)

_GITHUB_API = "https://api.github.com"
_RAW_BASE = "https://raw.githubusercontent.com"
_USER_AGENT = "summarizer-gateway/1.0"


class GitHubRestAdapter:
    """Concrete RepositoryHost backed by raw.githubusercontent.com and the v3 API."""

    def __init__(self, client: httpx.AsyncClient, token: str | None = None) -> None:
        self._client = client
        self._api_headers: dict[str, str] = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": _USER_AGENT,
        }
        if token:
            self._api_headers["Authorization"] = f"Bearer {token}"

    @staticmethod
    def raw_url(coords: RepositoryCoordinates, branch: str, path: str) -> str:
        return f"{_RAW_BASE}/{coords.owner}/{coords.name}/{branch}/{path}"

    async def fetch_raw_file(
        self, coords: RepositoryCoordinates, branch: str, path: str
    ) -> FetchedFile | None:
        """GET a raw file; ``None`` on any non-200 status or network error."""
        url = self.raw_url(coords, branch, path)
        try:
            resp = await self._client.get(url, headers={"User-Agent": _USER_AGENT})
        except httpx.HTTPError as exc:
            logger.debug("Network error fetching %s: %s", url, exc)
            return None

        if resp.status_code != 200:
            logger.debug("raw.githubusercontent.com returned HTTP %d for %s", resp.status_code, url)
            return None
        return FetchedFile(url=url, text=resp.text)

    async def fetch_repository(self, coords: RepositoryCoordinates) -> dict[str, Any]:
        """GET /repos/{owner}/{repo}."""
        return await self._api_get(f"/repos/{coords.owner}/{coords.name}")

    async def fetch_latest_release(self, coords: RepositoryCoordinates) -> dict[str, Any]:
        """GET /repos/{owner}/{repo}/releases/latest (404 when there are no releases)."""
        return await self._api_get(f"/repos/{coords.owner}/{coords.name}/releases/latest")

    async def fetch_tags(self, coords: RepositoryCoordinates, limit: int = 1) -> list[dict[str, Any]]:
        """GET /repos/{owner}/{repo}/tags, newest first."""
        url = f"{_GITHUB_API}/repos/{coords.owner}/{coords.name}/tags"
        data = await self._api_get_json(url, params={"per_page": limit})
        if not isinstance(data, list):
            raise MetadataUnavailable(f"Unexpected payload shape from {url}")
        return [tag for tag in data if isinstance(tag, dict)]

    async def fetch_languages(self, coords: RepositoryCoordinates) -> dict[str, Any]:
        """GET /repos/{owner}/{repo}/languages."""
        return await self._api_get(f"/repos/{coords.owner}/{coords.name}/languages")

    async def _api_get(self, endpoint: str) -> dict[str, Any]:
        url = f"{_GITHUB_API}{endpoint}"
        data = await self._api_get_json(url)
        if not isinstance(data, dict):
            raise MetadataUnavailable(f"Unexpected payload shape from {url}")
        return data

    async def _api_get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """Perform a GitHub API GET request, translating every failure."""
        try:
            resp = await self._client.get(url, headers=self._api_headers, params=params)
        except httpx.HTTPError as exc:
            raise MetadataUnavailable(f"Network error fetching {url}: {exc}") from exc

        if resp.status_code == 403 and resp.headers.get("x-ratelimit-remaining") == "0":
            raise MetadataUnavailable(
                "GitHub API rate limit exceeded. "
                "Set the GITHUB_TOKEN environment variable to increase the limit."
            )

        if resp.status_code != 200:
            raise MetadataUnavailable(f"GitHub API returned HTTP {resp.status_code} for {url}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise MetadataUnavailable(f"GitHub API returned invalid JSON for {url}") from exc
        return data
