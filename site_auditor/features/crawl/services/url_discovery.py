from collections import deque
from typing import Deque, List, Optional, Set, Tuple
from urllib.parse import urldefrag

from site_auditor.features.crawl.utils.link_parser import extract_link_targets, hostname_of
from site_auditor.features.fetching.services.fetch_service import FetchService
from site_auditor.platform.config import settings
from site_auditor.platform.exceptions import TransportError
from site_auditor.platform.logger import get_logger

logger = get_logger(__name__)


class CrawlDiscoveryService:
    """
    Breadth-first discovery of a site's internal pages.

    All traversal state (queue, visited set, results) lives inside a single
    discover_urls call, so concurrent audits never share it. Pages are
    fetched one at a time to keep outbound load on the relay low.

    There is no cap on the number of discovered URLs besides max_depth. Past
    CRAWL_URL_WARNING_THRESHOLD URLs a warning is logged, nothing more.
    """

    def __init__(self, fetcher: FetchService, warning_threshold: Optional[int] = None):
        self.fetcher = fetcher
        self.warning_threshold = (
            warning_threshold if warning_threshold is not None else settings.CRAWL_URL_WARNING_THRESHOLD
        )

    async def discover_urls(self, start_url: str, max_depth: int) -> List[str]:
        """
        Discover same-host URLs reachable from start_url within max_depth hops.

        Args:
            start_url: Seed URL (depth 0), always part of the result
            max_depth: Pages at this depth or deeper are kept but not expanded

        Returns:
            De-duplicated URLs in discovery order, seed first
        """
        seed = urldefrag(start_url.strip())[0]
        base_host = hostname_of(seed)

        queue: Deque[Tuple[str, int]] = deque([(seed, 0)])
        visited: Set[str] = {seed}
        found: List[str] = [seed]
        warned = False

        while queue:
            url, depth = queue.popleft()
            if depth >= max_depth:
                continue

            try:
                html = await self.fetcher.fetch_resource(url)
            except TransportError as e:
                logger.warning(f"Could not crawl {url}: {e}")
                continue

            for target in extract_link_targets(html, url):
                if hostname_of(target) != base_host or target in visited:
                    continue
                visited.add(target)
                found.append(target)
                queue.append((target, depth + 1))

            if not warned and self.warning_threshold and len(found) > self.warning_threshold:
                warned = True
                logger.warning(
                    f"Crawl of {seed} has discovered {len(found)} URLs "
                    f"(threshold {self.warning_threshold}); depth {max_depth} is the only bound"
                )

        logger.info(f"Discovered {len(found)} URLs from {seed} (max depth {max_depth})")
        return found
