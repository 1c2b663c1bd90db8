from typing import Dict, Iterable

from site_auditor.features.crawl.schemas.crawl import CrawledPage, CrawlSummary
from site_auditor.features.sitemap.schemas.sitemap import SitemapEntry, SitemapSummary

NOT_SET = "not set"


def summarize_crawl(pages: Iterable[CrawledPage]) -> CrawlSummary:
    """Single pass, mutually exclusive buckets by status range."""
    summary = CrawlSummary()
    for page in pages:
        summary.totalPages += 1
        if 200 <= page.status < 300:
            summary.healthyPages += 1
        elif 300 <= page.status < 400:
            summary.redirects += 1
        elif 400 <= page.status < 500:
            summary.clientErrors += 1
        elif page.status >= 500:
            summary.serverErrors += 1
    return summary


def summarize_sitemap(entries: Iterable[SitemapEntry]) -> SitemapSummary:
    entries = list(entries)
    if not entries:
        return SitemapSummary()

    distribution: Dict[str, int] = {}
    total_priority = 0.0
    has_lastmod = 0
    for entry in entries:
        if entry.lastmod:
            has_lastmod += 1
        total_priority += entry.priority or 0
        freq = entry.changefreq or NOT_SET
        distribution[freq] = distribution.get(freq, 0) + 1

    return SitemapSummary(
        totalUrls=len(entries),
        hasLastmod=has_lastmod,
        averagePriority=total_priority / len(entries),
        changeFreqDistribution=distribution,
    )
