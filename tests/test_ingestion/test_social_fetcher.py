"""Tests for social post discovery through Custom Search."""

from datetime import datetime, timezone

import httpx
import pytest
import respx

from jet_tracker.errors import SourceFetchError
from jet_tracker.ingestion.http_client import HTTPClient, RetryConfig
from jet_tracker.ingestion.schemas import SocialPlatform
from jet_tracker.ingestion.social_fetcher import (
    SocialSearchFetcher,
    build_queries,
    extract_post_id,
    extract_username,
    infer_platform,
)

SEARCH_HOST = "www.googleapis.com"
SEARCH_PATH = "/customsearch/v1"
NO_RETRY = RetryConfig(max_retries=0)


def _item(link: str, title: str = "Gripen for Portugal?", **extra) -> dict:
    return {"link": link, "title": title, "snippet": "Discussion about fighters", **extra}


class TestUrlHelpers:
    """Tests for platform, post id and username inference."""

    @pytest.mark.parametrize(
        "url,platform",
        [
            ("https://www.reddit.com/r/portugal/comments/abc", SocialPlatform.REDDIT),
            ("https://old.reddit.com/r/x/comments/1", SocialPlatform.REDDIT),
            ("https://x.com/someone/status/123", SocialPlatform.X),
            ("https://twitter.com/someone/status/123", SocialPlatform.X),
            ("https://m.facebook.com/groups/1/posts/2", SocialPlatform.FACEBOOK),
            ("https://www.linkedin.com/posts/abc", SocialPlatform.LINKEDIN),
            ("https://forum.example.pt/t/1", SocialPlatform.OTHER),
        ],
    )
    def test_infer_platform(self, url, platform):
        assert infer_platform(url) == platform

    def test_notreddit_domain_is_other(self):
        assert infer_platform("https://notreddit.com/r/a") == SocialPlatform.OTHER

    def test_post_id_is_last_segment(self):
        assert extract_post_id("https://x.com/someone/status/1789/") == "1789"

    def test_post_id_falls_back_to_hash(self):
        post_id = extract_post_id("https://www.linkedin.com/")
        assert len(post_id) == 16
        assert post_id == extract_post_id("https://www.linkedin.com/")

    def test_usernames(self):
        assert extract_username("https://x.com/defense_pt/status/1", SocialPlatform.X) == "defense_pt"
        assert extract_username("https://www.reddit.com/user/pilot42/comments/a", SocialPlatform.REDDIT) == "pilot42"
        assert extract_username("https://www.reddit.com/u/pilot42", SocialPlatform.REDDIT) == "pilot42"
        assert extract_username("https://www.reddit.com/r/portugal/comments/a", SocialPlatform.REDDIT) is None
        assert extract_username("https://x.com/home", SocialPlatform.X) is None


class TestBuildQueries:
    def test_crosses_terms_and_platforms(self):
        queries = build_queries(["Gripen Portugal", "F-35 Portugal"], 7)

        assert len(queries) == 8
        assert queries[0].query == "Gripen Portugal site:reddit.com"
        assert all(q.date_restrict == "d7" for q in queries)

    def test_x_scope_covers_both_domains(self):
        (query,) = build_queries(["Gripen"], 3, [SocialPlatform.X])
        assert query.query == "Gripen (site:x.com OR site:twitter.com)"

    def test_window_never_below_one_day(self):
        (query,) = build_queries(["Gripen"], 0, [SocialPlatform.REDDIT])
        assert query.date_restrict == "d1"


class TestSocialSearchFetcher:
    """Tests for SocialSearchFetcher.fetch_social."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_maps_results_to_candidates(self):
        route = respx.get(host=SEARCH_HOST, path=SEARCH_PATH).mock(
            return_value=httpx.Response(
                200,
                json={
                    "items": [
                        _item(
                            "https://www.reddit.com/r/portugal/comments/abc123",
                            pagemap={"metatags": [{"article:published_time": "2026-03-11T18:30:00Z"}]},
                        ),
                        _item("https://x.com/defense_pt/status/999", title="F-35 costs"),
                        {"link": "", "title": "no link"},
                    ]
                },
            )
        )

        async with HTTPClient(NO_RETRY) as client:
            fetcher = SocialSearchFetcher(client, api_key="k", engine_id="cx1")
            candidates = await fetcher.fetch_social(["Gripen Portugal"], 7, [SocialPlatform.REDDIT])

        assert len(candidates) == 2
        reddit, x_post = candidates

        assert reddit.kind == "social"
        assert reddit.platform == SocialPlatform.REDDIT
        assert reddit.post_id == "abc123"
        assert reddit.published_at == datetime(2026, 3, 11, 18, 30, tzinfo=timezone.utc)
        assert reddit.published_at_estimated is False
        assert reddit.body == "Discussion about fighters"

        assert x_post.platform == SocialPlatform.X
        assert x_post.author_username == "defense_pt"
        assert x_post.published_at_estimated is True

        params = route.calls.last.request.url.params
        assert params["key"] == "k"
        assert params["cx"] == "cx1"
        assert params["q"] == "Gripen Portugal site:reddit.com"
        assert params["num"] == "10"
        assert params["dateRestrict"] == "d7"
        assert params["sort"] == "date"

    @pytest.mark.asyncio
    @respx.mock
    async def test_dedupes_across_queries(self):
        respx.get(host=SEARCH_HOST, path=SEARCH_PATH).mock(
            return_value=httpx.Response(
                200, json={"items": [_item("https://www.reddit.com/r/pt/comments/same")]}
            )
        )

        async with HTTPClient(NO_RETRY) as client:
            fetcher = SocialSearchFetcher(client, api_key="k", engine_id="cx1")
            candidates = await fetcher.fetch_social(["Gripen", "JAS 39"], 7, [SocialPlatform.REDDIT])

        assert len(candidates) == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_partial_failure_keeps_other_queries(self):
        calls = 0

        def side_effect(request):
            nonlocal calls
            calls += 1
            if calls == 1:
                return httpx.Response(403, json={"error": "forbidden"})
            return httpx.Response(200, json={"items": [_item("https://x.com/a/status/1")]})

        respx.get(host=SEARCH_HOST, path=SEARCH_PATH).mock(side_effect=side_effect)

        async with HTTPClient(NO_RETRY) as client:
            fetcher = SocialSearchFetcher(client, api_key="k", engine_id="cx1")
            candidates = await fetcher.fetch_social(
                ["Gripen"], 7, [SocialPlatform.REDDIT, SocialPlatform.X]
            )

        assert [c.post_id for c in candidates] == ["1"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_all_queries_failing_raises(self):
        respx.get(host=SEARCH_HOST, path=SEARCH_PATH).mock(
            return_value=httpx.Response(400, json={"error": "bad key"})
        )

        async with HTTPClient(NO_RETRY) as client:
            fetcher = SocialSearchFetcher(client, api_key="k", engine_id="cx1")
            with pytest.raises(SourceFetchError) as exc_info:
                await fetcher.fetch_social(["Gripen"], 7, [SocialPlatform.REDDIT])

        assert exc_info.value.source == "social:Gripen"

    @pytest.mark.asyncio
    @respx.mock
    async def test_no_items_key_is_empty(self):
        respx.get(host=SEARCH_HOST, path=SEARCH_PATH).mock(
            return_value=httpx.Response(200, json={"searchInformation": {"totalResults": "0"}})
        )

        async with HTTPClient(NO_RETRY) as client:
            fetcher = SocialSearchFetcher(client, api_key="k", engine_id="cx1")
            assert await fetcher.fetch_social(["Gripen"], 7) == []
