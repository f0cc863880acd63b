"""Port: repository host — raw file and metadata access for one repository."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from summarizer_gateway.domain.value_objects import RepositoryCoordinates


@dataclass(frozen=True, slots=True)
class FetchedFile:
    """A raw file body together with the URL it was served from."""

    url: str
    text: str


class RepositoryHost(Protocol):
    """Abstract contract for fetching repository content and metadata."""

    async def fetch_raw_file(
        self, coords: RepositoryCoordinates, branch: str, path: str
    ) -> FetchedFile | None:
        """Return the file on *branch*, or ``None`` for any non-success outcome."""
        ...

    async def fetch_repository(self, coords: RepositoryCoordinates) -> dict[str, Any]:
        """Return the repository-info payload; raise ``MetadataUnavailable`` on failure."""
        ...

    async def fetch_latest_release(self, coords: RepositoryCoordinates) -> dict[str, Any]:
        """Return the latest-release payload; raise ``MetadataUnavailable`` on failure."""
        ...

    async def fetch_tags(self, coords: RepositoryCoordinates, limit: int = 1) -> list[dict[str, Any]]:
        """Return the newest *limit* tags; raise ``MetadataUnavailable`` on failure."""
        ...

    async def fetch_languages(self, coords: RepositoryCoordinates) -> dict[str, Any]:
        """Return the ``{language: bytes}`` breakdown; raise ``MetadataUnavailable`` on failure."""
        ...
