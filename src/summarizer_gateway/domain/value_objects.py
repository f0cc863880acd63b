"""Value objects — self-validating domain primitives."""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlsplit

_GIT_SUFFIX_RE = re.compile(r"\.git$", re.IGNORECASE)

DEFAULT_HOST = "github.com"


@dataclass(frozen=True, slots=True)
class RepositoryCoordinates:
    """The ``(owner, name)`` pair identifying a hosted repository.

    Built from URLs such as ``https://github.com/psf/requests``.  Trailing
    ``.git``, trailing slashes and any path below the repository root
    (``tree/<branch>``, ``blob/<branch>/<path>``) are ignored.
    """

    owner: str
    name: str

    @classmethod
    def from_url(cls, url: str, host: str = DEFAULT_HOST) -> RepositoryCoordinates | None:
        """Parse *url*; return ``None`` when it is not a repository URL on *host*."""
        try:
            parts = urlsplit(url.strip())
        except ValueError:
            return None

        hostname = parts.hostname or ""
        if not parts.scheme or not _host_matches(hostname, host):
            return None

        segments = [s for s in parts.path.split("/") if s]
        if len(segments) < 2:
            return None

        owner = segments[0]
        name = _GIT_SUFFIX_RE.sub("", segments[1]).rstrip("/")
        if not name:
            return None
        return cls(owner=owner, name=name)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


def _host_matches(hostname: str, expected: str) -> bool:
    hostname = hostname.lower()
    expected = expected.lower()
    return hostname == expected or hostname.endswith(f".{expected}")
