"""
Test crawl-mode URL discovery

Breadth-first traversal over FakeFetcher pages: same-host filtering, depth
bound and failure tolerance.
"""
import asyncio

import pytest

from conftest import FakeFetcher
from site_auditor.features.crawl.services.url_discovery import CrawlDiscoveryService
from site_auditor.platform.exceptions import FetchError


def links(*hrefs: str) -> str:
    return "".join(f'<a href="{href}">link</a>' for href in hrefs)


class TestCrawlDiscoveryService:
    @pytest.mark.asyncio
    async def test_seed_with_two_internal_and_one_external_link(self):
        fetcher = FakeFetcher({
            "https://example.com": links("/a", "/b", "https://external.org/x"),
        })
        urls = await CrawlDiscoveryService(fetcher).discover_urls("https://example.com", 1)

        assert urls == ["https://example.com", "https://example.com/a", "https://example.com/b"]
        assert fetcher.requested == ["https://example.com"]

    @pytest.mark.asyncio
    async def test_depth_bounds_expansion(self):
        fetcher = FakeFetcher({
            "https://example.com": links("/level1"),
            "https://example.com/level1": links("/level2"),
            "https://example.com/level2": links("/level3"),
        })
        urls = await CrawlDiscoveryService(fetcher).discover_urls("https://example.com", 2)

        assert urls == [
            "https://example.com",
            "https://example.com/level1",
            "https://example.com/level2",
        ]
        # level2 sits at max depth: kept, never fetched
        assert "https://example.com/level2" not in fetcher.requested

    @pytest.mark.asyncio
    async def test_other_hosts_are_never_visited(self):
        fetcher = FakeFetcher({
            "https://example.com": links("https://blog.example.com/", "https://example.com/ok"),
            "https://example.com/ok": links("https://evil.test/"),
        })
        urls = await CrawlDiscoveryService(fetcher).discover_urls("https://example.com", 3)

        assert urls == ["https://example.com", "https://example.com/ok"]
        assert all("example.com" == url.split("/")[2] for url in fetcher.requested)

    @pytest.mark.asyncio
    async def test_duplicates_and_fragments_collapse(self):
        fetcher = FakeFetcher({
            "https://example.com": links("/a", "/a#section", "/a"),
        })
        urls = await CrawlDiscoveryService(fetcher).discover_urls("https://example.com#top", 1)
        assert urls == ["https://example.com", "https://example.com/a"]

    @pytest.mark.asyncio
    async def test_fetch_failures_are_skipped(self):
        fetcher = FakeFetcher({
            "https://example.com": links("/broken", "/fine"),
            "https://example.com/broken": FetchError("https://example.com/broken", 3, status_code=403),
            "https://example.com/fine": links("/deeper"),
        })
        urls = await CrawlDiscoveryService(fetcher).discover_urls("https://example.com", 2)

        assert urls == [
            "https://example.com",
            "https://example.com/broken",
            "https://example.com/fine",
            "https://example.com/deeper",
        ]

    @pytest.mark.asyncio
    async def test_unreachable_seed_still_returns_seed(self):
        urls = await CrawlDiscoveryService(FakeFetcher()).discover_urls("https://example.com", 2)
        assert urls == ["https://example.com"]

    @pytest.mark.asyncio
    async def test_concurrent_crawls_do_not_share_state(self):
        fetcher = FakeFetcher({
            "https://one.test": links("/x"),
            "https://two.test": links("/y"),
        })
        service = CrawlDiscoveryService(fetcher)
        first, second = await asyncio.gather(
            service.discover_urls("https://one.test", 1),
            service.discover_urls("https://two.test", 1),
        )
        assert first == ["https://one.test", "https://one.test/x"]
        assert second == ["https://two.test", "https://two.test/y"]

    @pytest.mark.asyncio
    async def test_warning_threshold_does_not_cap(self):
        fetcher = FakeFetcher({"https://example.com": links(*[f"/p{i}" for i in range(10)])})
        urls = await CrawlDiscoveryService(fetcher, warning_threshold=3).discover_urls("https://example.com", 1)
        assert len(urls) == 11
