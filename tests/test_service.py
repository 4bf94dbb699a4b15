"""
Tests for the two-tier cached profile service.
"""

import asyncio

import httpx
import pytest

from profile_card.cache import BoundedTTLCache
from profile_card.coalescer import RequestCoalescer
from profile_card.errors import (
    OverloadError,
    UpstreamNotFoundError,
    UpstreamRateLimitError,
)
from profile_card.github_client import GitHubClient
from profile_card.service import ProfileService, make_cache_key
from profile_card.sweeper import ExpirySweeper
from tests.helpers import (
    AVATAR_URL,
    GRAPHQL_URL,
    FakeGitHubClient,
    FakeRemoteCache,
    graphql_page,
    make_profile,
    repo_node,
)


def build_service(cache, test_settings, client=None, remote=None, max_in_flight=100):
    return ProfileService(
        client=client or FakeGitHubClient(),
        cache=cache,
        coalescer=RequestCoalescer(cache, max_in_flight=max_in_flight),
        remote=remote,
        config=test_settings,
    )


def test_cache_key_includes_categories():
    assert make_cache_key("octocat", True) == "octocat:langs"
    assert make_cache_key("octocat", False) == "octocat:nolangs"


class TestCacheTiers:
    @pytest.mark.asyncio
    async def test_miss_fetches_and_fills_both_tiers(self, cache, test_settings):
        client = FakeGitHubClient()
        remote = FakeRemoteCache()
        service = build_service(cache, test_settings, client=client, remote=remote)

        profile = await service.fetch_profile("octocat")

        assert profile.user.login == "octocat"
        assert profile.user.avatar_data_url == "data:image/png;base64,AAAA"
        assert profile.stats.stars == 7
        assert [lang.name for lang in profile.languages] == ["Python"]
        assert cache.get("octocat:langs") is profile
        assert remote.store["octocat:langs"] == profile
        assert remote.sets == [("octocat:langs", test_settings.cache_ttl_seconds)]

    @pytest.mark.asyncio
    async def test_local_hit_skips_upstream_and_remote(self, cache, test_settings):
        client = FakeGitHubClient()
        remote = FakeRemoteCache()
        service = build_service(cache, test_settings, client=client, remote=remote)
        cached = make_profile()
        cache.set("octocat:langs", cached)

        assert await service.fetch_profile("octocat") is cached
        assert client.calls == []
        assert remote.sets == []

    @pytest.mark.asyncio
    async def test_remote_hit_backfills_local(self, cache, test_settings):
        client = FakeGitHubClient()
        remote = FakeRemoteCache()
        stored = make_profile(stars=99)
        remote.store["octocat:nolangs"] = stored
        service = build_service(cache, test_settings, client=client, remote=remote)

        profile = await service.fetch_profile("octocat", include_languages=False)

        assert profile == stored
        assert cache.get("octocat:nolangs") == stored
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_category_sets_are_separate_entries(self, cache, test_settings):
        client = FakeGitHubClient()
        service = build_service(cache, test_settings, client=client)

        with_langs = await service.fetch_profile("octocat", include_languages=True)
        without_langs = await service.fetch_profile("octocat", include_languages=False)

        assert client.calls == [("octocat", True), ("octocat", False)]
        assert with_langs.languages and not without_langs.languages

    @pytest.mark.asyncio
    async def test_remote_failure_does_not_fail_fetch(self, cache, test_settings):
        service = build_service(cache, test_settings, remote=FakeRemoteCache(fail=True))

        profile = await service.fetch_profile("octocat")

        assert cache.get("octocat:langs") is profile

    @pytest.mark.asyncio
    async def test_expired_entry_refetched(self, cache, clock, test_settings):
        client = FakeGitHubClient()
        service = build_service(cache, test_settings, client=client)

        await service.fetch_profile("octocat")
        clock.advance(test_settings.cache_ttl_seconds + 1)
        await service.fetch_profile("octocat")

        assert len(client.calls) == 2


class TestCoalescing:
    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_fetch(self, cache, test_settings):
        gate = asyncio.Event()
        client = FakeGitHubClient(gate=gate)
        service = build_service(cache, test_settings, client=client)

        tasks = [asyncio.create_task(service.fetch_profile("octocat")) for _ in range(25)]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*tasks)

        assert client.calls == [("octocat", True)]
        assert client.max_active["octocat"] == 1
        assert all(result is results[0] for result in results)

    @pytest.mark.asyncio
    async def test_different_keys_fetch_in_parallel(self, cache, test_settings):
        gate = asyncio.Event()
        client = FakeGitHubClient(gate=gate)
        service = build_service(cache, test_settings, client=client)

        tasks = [
            asyncio.create_task(service.fetch_profile(login))
            for login in ("alice", "bob", "carol")
        ]
        await asyncio.sleep(0)
        assert client.active == 3
        gate.set()
        await asyncio.gather(*tasks)

    @pytest.mark.asyncio
    async def test_overload_raises_without_upstream_call(self, test_settings):
        cache = BoundedTTLCache()
        gate = asyncio.Event()
        client = FakeGitHubClient(gate=gate)
        service = build_service(cache, test_settings, client=client, max_in_flight=100)

        tasks = [asyncio.create_task(service.fetch_profile(f"user{i}")) for i in range(100)]
        await asyncio.sleep(0)
        assert len(client.calls) == 100

        with pytest.raises(OverloadError):
            await service.fetch_profile("user100")
        assert len(client.calls) == 100

        gate.set()
        await asyncio.gather(*tasks)


class TestFailures:
    @pytest.mark.asyncio
    async def test_failed_fetch_leaves_no_entry(self, cache, test_settings):
        client = FakeGitHubClient(error=UpstreamNotFoundError("ghost"))
        remote = FakeRemoteCache()
        service = build_service(cache, test_settings, client=client, remote=remote)

        with pytest.raises(UpstreamNotFoundError):
            await service.fetch_profile("ghost")

        assert cache.get_entry("ghost:langs") is None
        assert remote.store == {}

    @pytest.mark.asyncio
    async def test_not_found_is_not_negatively_cached(self, cache, test_settings):
        client = FakeGitHubClient(error=UpstreamNotFoundError("ghost"))
        service = build_service(cache, test_settings, client=client)

        for _ in range(2):
            with pytest.raises(UpstreamNotFoundError):
                await service.fetch_profile("ghost")

        assert len(client.calls) == 2

    @pytest.mark.asyncio
    async def test_rate_limit_end_to_end(self, cache, test_settings, httpx_mock):
        httpx_mock.add_response(url=GRAPHQL_URL, method="POST", status_code=403)
        service = build_service(cache, test_settings, client=GitHubClient(test_settings))

        with pytest.raises(UpstreamRateLimitError):
            await service.fetch_profile("octocat")

        assert cache.get_entry("octocat:langs") is None
        assert service.coalescer.in_flight_count == 0


class TestAssembly:
    @pytest.mark.asyncio
    async def test_full_record_from_graphql(self, cache, test_settings, httpx_mock):
        httpx_mock.add_response(
            url=GRAPHQL_URL,
            method="POST",
            json=graphql_page(
                [
                    repo_node(3, [("TypeScript", 300), ("JavaScript", 100)]),
                    repo_node(2, [("TypeScript", 100)]),
                    repo_node(1, [("Python", 400)]),
                ],
                total_repos=3,
            ),
        )
        httpx_mock.add_exception(httpx.ConnectError("avatar down"), url=AVATAR_URL + "&s=96")
        service = build_service(cache, test_settings, client=GitHubClient(test_settings))

        profile = await service.fetch_profile("octocat")

        assert profile.user.avatar_url == AVATAR_URL
        assert profile.user.avatar_data_url is None
        assert profile.user.twitter == "github"
        assert profile.stats.stars == 6
        assert profile.stats.repos == 3
        assert profile.stats.prs == 6
        assert profile.stats.issues == 9
        assert profile.stats.commits == 42
        assert [(l.name, l.size) for l in profile.languages] == [
            ("TypeScript", 400),
            ("Python", 400),
            ("JavaScript", 100),
        ]
        assert profile.languages[0].color == "#3178c6"


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_and_close(self, cache, test_settings):
        client = FakeGitHubClient()
        remote = FakeRemoteCache()
        service = ProfileService(
            client=client,
            cache=cache,
            coalescer=RequestCoalescer(cache),
            remote=remote,
            sweeper=ExpirySweeper(cache),
            config=test_settings,
        )

        service.start()
        assert service.sweeper.running
        await service.close()

        assert not service.sweeper.running
        assert client.closed and remote.closed

    def test_from_settings_wires_components(self, test_settings):
        service = ProfileService.from_settings(test_settings)

        assert service.remote is None
        assert service.cache.max_size == 500
        assert service.coalescer.max_in_flight == 100
        assert service.sweeper is not None
