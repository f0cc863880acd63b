"""Tests for the httpx-backed adapters (GitHub REST and Supabase key store)."""
from __future__ import annotations

import json

import httpx
import pytest

from summarizer_gateway.domain.exceptions import MetadataUnavailable, ServiceUnavailable
from summarizer_gateway.domain.value_objects import RepositoryCoordinates
from summarizer_gateway.infrastructure.github_rest_adapter import GitHubRestAdapter
from summarizer_gateway.infrastructure.memory_key_store import InMemoryKeyStore
from summarizer_gateway.infrastructure.supabase_key_store import SupabaseKeyStore

from fakes import run

COORDS = RepositoryCoordinates(owner="octocat", name="Hello-World")


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# =====================================================================
# GitHubRestAdapter
# =====================================================================

class TestGitHubRaw:
    def test_fetches_raw_file(self):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, text="# Hello")

        adapter = GitHubRestAdapter(_client(handler))
        fetched = run(adapter.fetch_raw_file(COORDS, "main", "README.md"))

        assert fetched.text == "# Hello"
        assert fetched.url == "https://raw.githubusercontent.com/octocat/Hello-World/main/README.md"
        assert str(seen[0].url) == fetched.url

    def test_missing_file_is_none(self):
        adapter = GitHubRestAdapter(_client(lambda r: httpx.Response(404)))
        assert run(adapter.fetch_raw_file(COORDS, "main", "README.md")) is None

    def test_network_error_is_none(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        adapter = GitHubRestAdapter(_client(handler))
        assert run(adapter.fetch_raw_file(COORDS, "main", "README.md")) is None


class TestGitHubApi:
    def test_repository_with_token(self):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"stargazers_count": 3})

        adapter = GitHubRestAdapter(_client(handler), token="ghp_test")
        assert run(adapter.fetch_repository(COORDS)) == {"stargazers_count": 3}
        assert seen[0].url.path == "/repos/octocat/Hello-World"
        assert seen[0].headers["authorization"] == "Bearer ghp_test"

    def test_latest_release_path(self):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"tag_name": "v1"})

        run(GitHubRestAdapter(_client(handler)).fetch_latest_release(COORDS))
        assert seen[0].url.path == "/repos/octocat/Hello-World/releases/latest"
        assert "authorization" not in seen[0].headers

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(404, json={"message": "Not Found"}),
            httpx.Response(403, headers={"x-ratelimit-remaining": "0"}),
            httpx.Response(200, text="<html>"),
            httpx.Response(200, json=[1, 2]),
        ],
    )
    def test_failures_raise_metadata_unavailable(self, response):
        adapter = GitHubRestAdapter(_client(lambda r: response))
        with pytest.raises(MetadataUnavailable):
            run(adapter.fetch_repository(COORDS))

    def test_newest_tag_request(self):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[{"name": "v0.3.1"}])

        tags = run(GitHubRestAdapter(_client(handler)).fetch_tags(COORDS))
        assert tags == [{"name": "v0.3.1"}]
        assert seen[0].url.path == "/repos/octocat/Hello-World/tags"
        assert seen[0].url.params["per_page"] == "1"

    def test_tags_must_be_a_list(self):
        adapter = GitHubRestAdapter(_client(lambda r: httpx.Response(200, json={"name": "v1"})))
        with pytest.raises(MetadataUnavailable):
            run(adapter.fetch_tags(COORDS))

    def test_languages(self):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"C": 1200, "Makefile": 80})

        languages = run(GitHubRestAdapter(_client(handler)).fetch_languages(COORDS))
        assert list(languages) == ["C", "Makefile"]
        assert seen[0].url.path == "/repos/octocat/Hello-World/languages"


# =====================================================================
# Key stores
# =====================================================================

ROW = {
    "id": "k1",
    "key_value": "gs_abc",
    "name": "Primary",
    "description": None,
    "is_active": True,
    "usage_count": 7,
    "last_used": None,
    "created_at": "2024-05-01T12:00:00+00:00",
    "user_id": "u1",
}


class TestSupabaseKeyStore:
    def _store(self, handler, **kwargs):
        return SupabaseKeyStore(
            _client(handler), "https://proj.supabase.co/", "service-key", **kwargs
        )

    def test_find_by_value(self):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[ROW])

        record = run(self._store(handler).find_by_value("  gs_abc "))

        assert record.id == "k1"
        assert record.usage_count == 7
        assert record.created_at.year == 2024
        assert seen[0].url.path == "/rest/v1/api_keys"
        assert seen[0].url.params["key_value"] == "eq.gs_abc"
        assert seen[0].headers["apikey"] == "service-key"

    def test_find_unknown(self):
        assert run(self._store(lambda r: httpx.Response(200, json=[])).find_by_value("x")) is None

    def test_backend_error_is_unavailable(self):
        with pytest.raises(ServiceUnavailable):
            run(self._store(lambda r: httpx.Response(500)).find_by_value("x"))

    def test_non_json_success_is_unavailable(self):
        store = self._store(lambda r: httpx.Response(200, text="<html>gateway</html>"))
        with pytest.raises(ServiceUnavailable):
            run(store.find_by_value("x"))

    def test_unreachable_backend(self):
        def handler(request):
            raise httpx.ConnectTimeout("timeout", request=request)

        with pytest.raises(ServiceUnavailable):
            run(self._store(handler).find_by_value("x"))

    def test_increment_uses_compare_and_set(self):
        patches: list[httpx.Request] = []

        def handler(request):
            if request.method == "GET":
                return httpx.Response(200, json=[{"usage_count": 7}])
            patches.append(request)
            return httpx.Response(200, json=[{**ROW, "usage_count": 8}])

        run(self._store(handler).increment_usage("k1"))

        assert len(patches) == 1
        assert patches[0].url.params["usage_count"] == "eq.7"
        body = json.loads(patches[0].content)
        assert body["usage_count"] == 8
        assert "last_used" in body
        assert patches[0].headers["prefer"] == "return=representation"

    def test_increment_retries_after_lost_race(self):
        counts = iter([7, 8])
        patch_results = iter([[], [{**ROW, "usage_count": 9}]])
        patch_bodies: list[dict] = []

        def handler(request):
            if request.method == "GET":
                return httpx.Response(200, json=[{"usage_count": next(counts)}])
            patch_bodies.append(json.loads(request.content))
            return httpx.Response(200, json=next(patch_results))

        run(self._store(handler, tracks_last_used=False).increment_usage("k1"))
        assert patch_bodies == [{"usage_count": 8}, {"usage_count": 9}]

    def test_increment_gives_up(self):
        def handler(request):
            if request.method == "GET":
                return httpx.Response(200, json=[{"usage_count": 1}])
            return httpx.Response(200, json=[])

        with pytest.raises(ServiceUnavailable):
            run(self._store(handler).increment_usage("k1"))


class TestInMemoryKeyStore:
    def test_seeded_keys_resolve(self):
        store = InMemoryKeyStore.from_seed({"gs_one": "One"})
        record = run(store.find_by_value("gs_one"))
        assert record.name == "One"
        assert record.is_active

    def test_created_keys_are_prefixed_and_unique(self):
        store = InMemoryKeyStore()
        first = store.create("a")
        second = store.create("b")
        assert first.key_value.startswith("gs_")
        assert first.key_value != second.key_value

    def test_increment_and_deactivate(self):
        store = InMemoryKeyStore()
        record = store.create("a")
        run(store.increment_usage(record.id))
        store.set_active(record.id, False)

        updated = store.get(record.id)
        assert updated.usage_count == 1
        assert updated.last_used is not None
        assert updated.is_active is False
