import asyncio
import math
from collections import deque
from typing import Any, Deque, List, Optional, Set

from site_auditor.features.fetching.services.fetch_service import FetchService
from site_auditor.features.llm.schemas.agent import AIAgent, PromptParts
from site_auditor.features.llm.services.backend_factory import BackendFactory, get_backend
from site_auditor.features.llm.services.base import ModelBackend
from site_auditor.features.llm.services.structured_extraction import request_structured_json
from site_auditor.features.sitemap.schemas.sitemap import SitemapEntry
from site_auditor.platform.config import settings
from site_auditor.platform.exceptions import (
    AuditorError,
    ConfigurationError,
    MalformedResponseError,
    TransportError,
    classify_model_error,
)
from site_auditor.platform.logger import get_logger
from site_auditor.platform.utils.url_validator import site_origin

logger = get_logger(__name__)


def sitemaps_from_robots(robots_txt: str) -> List[str]:
    """`Sitemap:` directive values of a robots.txt body, in file order."""
    sitemaps = []
    for line in (robots_txt or "").splitlines():
        line = line.strip()
        if line.lower().startswith("sitemap:"):
            sitemap_url = line[line.index(":") + 1:].strip()
            if sitemap_url:
                sitemaps.append(sitemap_url)
    return sitemaps


def _as_priority(value: Any) -> float:
    try:
        priority = float(value)
    except (TypeError, ValueError):
        return 0.5
    return priority if math.isfinite(priority) else 0.5


def normalize_sitemap_items(items: List[Any]) -> List[SitemapEntry]:
    """Backfill defaults and drop items without a usable loc."""
    entries = []
    for item in items:
        if not isinstance(item, dict):
            continue
        loc = str(item.get("loc") or "").strip()
        if not loc:
            continue
        entries.append(SitemapEntry(
            loc=loc,
            lastmod=str(item.get("lastmod") or ""),
            changefreq=str(item.get("changefreq") or ""),
            priority=_as_priority(item.get("priority", 0.5)),
        ))
    return entries


class SitemapDiscoveryService:
    """
    Flattens a site's sitemaps into leaf entries.

    Sitemaps are seeded from robots.txt `Sitemap:` lines, falling back to
    /sitemap.xml only when robots.txt names none. Nested sitemap references
    (.xml / .xml.gz locs) are queued for traversal and never returned as
    entries. A failing sitemap is logged and skipped.
    """

    def __init__(
        self,
        fetcher: FetchService,
        backend_factory: Optional[BackendFactory] = None,
        request_delay: Optional[float] = None,
    ):
        self.fetcher = fetcher
        self.backend_factory = backend_factory or get_backend
        self.request_delay = (
            request_delay if request_delay is not None else settings.SITEMAP_REQUEST_DELAY_SECONDS
        )

    async def seed_sitemap_urls(self, site_url: str) -> List[str]:
        origin = site_origin(site_url)
        queue: List[str] = []
        try:
            robots_txt = await self.fetcher.fetch_resource(f"{origin}/robots.txt")
            queue.extend(sitemaps_from_robots(robots_txt))
        except TransportError as e:
            logger.warning(f"Could not fetch robots.txt for {origin}, will try default sitemap location: {e}")

        if not queue:
            queue.append(f"{origin}/sitemap.xml")
        return queue

    @staticmethod
    def _build_prompt(agent: AIAgent, sitemap_content: str) -> PromptParts:
        user = f"""**Task**: Parse the provided sitemap.xml content and extract every URL entry.
**Sitemap Content:** ```xml
{sitemap_content}
```
**Methodology**:
1.  Parse the XML to find all URL entries (in `<url>` or `<sitemap>` tags).
2.  If it is a sitemap index, list the sub-sitemap URLs.
3.  For each URL, extract `loc`, `lastmod`, `changefreq`, and `priority`.
4.  Use defaults for missing data: `lastmod: ""`, `changefreq: ""`, `priority: 0.5`.
**Final Output**: Return ONLY a valid JSON array of objects. If the content is invalid or empty, return an empty array `[]`."""
        return PromptParts(
            system=f"{agent.system_prompt}\n\nYou are an expert XML parsing tool designed to output JSON.",
            user=user,
        )

    async def parse_sitemap(self, backend: ModelBackend, agent: AIAgent, sitemap_content: str) -> List[SitemapEntry]:
        """
        Have the model turn one sitemap body into provisional entries.

        Raises:
            RateLimitError, ModelBackendError, MalformedResponseError
        """
        try:
            parsed = await request_structured_json(
                backend,
                self._build_prompt(agent, sitemap_content),
                agent.model,
                max_output_tokens=settings.SITEMAP_MAX_OUTPUT_TOKENS,
            )
        except Exception as e:
            raise classify_model_error(e, agent.provider.value) from e

        if not isinstance(parsed, list):
            raise MalformedResponseError("Parsed data is not an array.")
        return normalize_sitemap_items(parsed)

    async def discover_sitemap_entries(self, site_url: str, agent: AIAgent, api_key: str) -> List[SitemapEntry]:
        """
        Traverse every sitemap reachable from the site's robots.txt.

        Returns:
            Leaf entries in traversal order, unique by loc
        """
        if not api_key:
            raise ConfigurationError(f"{agent.provider.display_name} API key is required.")
        backend = self.backend_factory(agent.provider, api_key)

        visited: Set[str] = set()
        seen_locs: Set[str] = set()
        entries: List[SitemapEntry] = []

        try:
            queue: Deque[str] = deque(await self.seed_sitemap_urls(site_url))

            while queue:
                sitemap_url = queue.popleft()
                if sitemap_url in visited:
                    continue
                visited.add(sitemap_url)

                try:
                    content = await self.fetcher.fetch_resource(sitemap_url)
                    for entry in await self.parse_sitemap(backend, agent, content):
                        if entry.is_nested_sitemap:
                            if entry.loc not in visited:
                                queue.append(entry.loc)
                        elif entry.loc not in seen_locs:
                            seen_locs.add(entry.loc)
                            entries.append(entry)
                except AuditorError as e:
                    logger.warning(f"Could not fetch or parse sitemap {sitemap_url}: {e}")

                # Spread model calls out while more sitemaps remain
                if queue and self.request_delay > 0:
                    await asyncio.sleep(self.request_delay)
        finally:
            await backend.aclose()

        logger.info(f"Collected {len(entries)} sitemap entries from {len(visited)} sitemaps for {site_url}")
        return entries
