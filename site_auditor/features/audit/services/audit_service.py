from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, List, Optional

from site_auditor.features.ads_txt.services.ads_txt_analyzer import AdsTxtAnalyzer
from site_auditor.features.audit.schemas.audit import (
    AnalysisMode,
    AuditProgressEvent,
    AuditRequest,
    AuditSnapshot,
)
from site_auditor.features.crawl.schemas.crawl import CrawledPage
from site_auditor.features.crawl.services.batch_analyzer import BatchAnalysisService
from site_auditor.features.crawl.services.url_discovery import CrawlDiscoveryService
from site_auditor.features.fetching.services.fetch_service import FetchService
from site_auditor.features.llm.schemas.agent import AIAgent
from site_auditor.features.llm.services.backend_factory import BackendFactory, get_backend, resolve_api_key
from site_auditor.features.reports.services.aggregator import summarize_crawl, summarize_sitemap
from site_auditor.features.robots.services.robots_analyzer import RobotsTxtAnalyzer
from site_auditor.features.sitemap.services.sitemap_discovery import SitemapDiscoveryService
from site_auditor.platform.config import settings
from site_auditor.platform.exceptions import EmptyDiscoveryError, InvalidURLError
from site_auditor.platform.logger import get_logger
from site_auditor.platform.utils.url_validator import validate_url

logger = get_logger(__name__)

ProgressCallback = Callable[[AuditProgressEvent], Awaitable[None]]


def build_crawl_snapshot(property_url: str, agent: AIAgent, pages: List[CrawledPage]) -> AuditSnapshot:
    return AuditSnapshot(
        property_url=property_url,
        analysis_mode=AnalysisMode.CRAWL,
        agent_name=agent.name,
        crawled_data=pages,
        crawl_summary=summarize_crawl(pages),
    )


class AuditService:
    """
    Runs one audit end to end for a single analysis mode.

    Holds no per-run state: every run gets its own discovery state, and,
    unless one was injected, its own FetchService.
    """

    def __init__(
        self,
        fetcher: Optional[FetchService] = None,
        backend_factory: Optional[BackendFactory] = None,
        batch_size: Optional[int] = None,
        sitemap_request_delay: Optional[float] = None,
    ):
        self.fetcher = fetcher
        self.backend_factory = backend_factory or get_backend
        self.batch_size = max(1, batch_size or settings.ANALYSIS_BATCH_SIZE)
        self.sitemap_request_delay = sitemap_request_delay

    @asynccontextmanager
    async def open_fetcher(self) -> AsyncIterator[FetchService]:
        if self.fetcher is not None:
            yield self.fetcher
            return
        async with FetchService() as fetcher:
            yield fetcher

    @staticmethod
    def prepare_url(url: str) -> str:
        is_valid, url_str, error_message = validate_url(url)
        if not is_valid:
            raise InvalidURLError(f"Invalid URL: {error_message}")
        return url_str

    async def discover_crawl_urls(self, fetcher: FetchService, url: str, crawl_depth: Optional[int]) -> List[str]:
        depth = crawl_depth or settings.DEFAULT_CRAWL_DEPTH
        urls = await CrawlDiscoveryService(fetcher).discover_urls(url, depth)
        if not urls:
            raise EmptyDiscoveryError("Crawl found no URLs to analyze.")
        return urls

    async def analyze_crawl_urls(
        self,
        fetcher: FetchService,
        urls: List[str],
        agent: AIAgent,
        api_key: str,
        progress: Optional[ProgressCallback] = None,
    ) -> List[CrawledPage]:
        """
        Analyze discovered URLs in sequential batches of batch_size.

        Batches never overlap, so at most batch_size pages are being fetched
        at once.
        """
        analyzer = BatchAnalysisService(fetcher, self.backend_factory)
        pages: List[CrawledPage] = []
        for start in range(0, len(urls), self.batch_size):
            batch = await analyzer.analyze_batch(urls[start:start + self.batch_size], agent, api_key)
            pages.extend(batch)
            if progress is not None:
                await progress(AuditProgressEvent(batch=batch, analyzed=len(pages), total=len(urls)))
        return pages

    async def run_audit(self, request: AuditRequest, progress: Optional[ProgressCallback] = None) -> AuditSnapshot:
        """
        Run the audit described by `request`.

        Raises:
            InvalidURLError: unusable URL
            ConfigurationError: no credential for the agent's provider
            EmptyDiscoveryError: crawl or sitemap discovery found nothing
            RateLimitError, ModelBackendError, MalformedResponseError: robots
                and ads modes, where the model step is fatal
        """
        url = self.prepare_url(request.url)
        agent = request.agent
        api_key = resolve_api_key(agent.provider, request.api_key)
        mode = request.analysis_mode

        logger.info(f"Starting {mode.value} audit of {url} with {agent.provider.value}/{agent.model}")
        snapshot = AuditSnapshot(property_url=url, analysis_mode=mode, agent_name=agent.name)

        async with self.open_fetcher() as fetcher:
            if mode == AnalysisMode.CRAWL:
                urls = await self.discover_crawl_urls(fetcher, url, request.crawl_depth)
                pages = await self.analyze_crawl_urls(fetcher, urls, agent, api_key, progress)
                snapshot = build_crawl_snapshot(url, agent, pages)

            elif mode == AnalysisMode.SITEMAP:
                discovery = SitemapDiscoveryService(
                    fetcher, self.backend_factory, request_delay=self.sitemap_request_delay
                )
                entries = await discovery.discover_sitemap_entries(url, agent, api_key)
                if not entries:
                    raise EmptyDiscoveryError(
                        "Could not find any URLs in the sitemap(s). The sitemap might be empty or inaccessible."
                    )
                snapshot.sitemap_data = entries
                snapshot.sitemap_summary = summarize_sitemap(entries)

            elif mode == AnalysisMode.ROBOTS:
                snapshot.robots_txt_data = await RobotsTxtAnalyzer(
                    fetcher, self.backend_factory
                ).analyze_robots_txt(url, agent, api_key)

            elif mode == AnalysisMode.ADS:
                snapshot.ads_txt_data = await AdsTxtAnalyzer(
                    fetcher, self.backend_factory
                ).analyze_ads_txt(url, agent, api_key)

        logger.info(f"Finished {mode.value} audit of {url}")
        return snapshot
