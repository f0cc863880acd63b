"""README discovery — a bounded, ordered fallback search over raw file URLs."""

from __future__ import annotations

import logging
from collections.abc import Iterator

from summarizer_gateway.domain.entities import ReadmeResult
from summarizer_gateway.domain.exceptions import ReadmeNotFound
from summarizer_gateway.domain.ports.repository_host import RepositoryHost
from summarizer_gateway.domain.value_objects import RepositoryCoordinates

logger = logging.getLogger(__name__)

README_BRANCHES: tuple[str, ...] = ("main", "master")
README_FILENAMES: tuple[str, ...] = ("README.md", "Readme.md", "readme.md", "README.MD")


def readme_candidates() -> Iterator[tuple[str, str]]:
    """Yield ``(branch, filename)`` pairs in trial order."""
    for branch in README_BRANCHES:
        for filename in README_FILENAMES:
            yield branch, filename


class RepositoryResolver:
    """Finds the README of a repository through a :class:`RepositoryHost`."""

    def __init__(self, host: RepositoryHost) -> None:
        self._host = host

    async def find_readme(self, coords: RepositoryCoordinates) -> ReadmeResult:
        """Return the first non-blank README; raise :class:`ReadmeNotFound` otherwise.

        Candidates are fetched one at a time so a single request never puts
        more than one in-flight call on the upstream host.
        """
        for branch, filename in readme_candidates():
            fetched = await self._host.fetch_raw_file(coords, branch, filename)
            if fetched is not None and fetched.text.strip():
                logger.info("README for %s found at %s", coords.full_name, fetched.url)
                return ReadmeResult(source_url=fetched.url, text=fetched.text)

        raise ReadmeNotFound(
            f"No README found for {coords.full_name} on branch "
            f"{' or '.join(README_BRANCHES)}. Make sure it exists."
        )
