"""Tests for RepositoryCoordinates.from_url — repository URL parsing."""
from __future__ import annotations

import pytest

from summarizer_gateway.domain.value_objects import RepositoryCoordinates


class TestRecognisedUrls:
    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/octocat/Hello-World",
            "https://github.com/octocat/Hello-World.git",
            "https://github.com/octocat/Hello-World/",
            "https://github.com/octocat/Hello-World/tree/main",
            "https://github.com/octocat/Hello-World/blob/main/docs/README.md",
            "https://github.com/octocat/Hello-World.GIT",
            "  https://github.com/octocat/Hello-World  ",
            "https://www.github.com/octocat/Hello-World",
        ],
    )
    def test_resolves_to_owner_and_name(self, url):
        coords = RepositoryCoordinates.from_url(url)
        assert coords == RepositoryCoordinates(owner="octocat", name="Hello-World")

    def test_full_name(self):
        coords = RepositoryCoordinates.from_url("https://github.com/psf/requests")
        assert coords.full_name == "psf/requests"

    def test_custom_host(self):
        coords = RepositoryCoordinates.from_url("https://git.example.org/a/b", host="git.example.org")
        assert coords == RepositoryCoordinates(owner="a", name="b")


class TestRejectedUrls:
    @pytest.mark.parametrize(
        "url",
        [
            "https://gitlab.com/a/b",
            "https://github.com/onlyowner",
            "https://github.com/",
            "https://evilgithub.com/a/b",
            "github.com/a/b",
            "not a url",
            "",
            "https://github.com/owner/.git",
        ],
    )
    def test_returns_none(self, url):
        assert RepositoryCoordinates.from_url(url) is None
