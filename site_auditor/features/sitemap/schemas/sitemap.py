from typing import Dict

from pydantic import BaseModel, Field

NESTED_SITEMAP_SUFFIXES = (".xml", ".xml.gz")


class SitemapEntry(BaseModel):
    loc: str
    lastmod: str = ""
    changefreq: str = ""
    priority: float = 0.5

    @property
    def is_nested_sitemap(self) -> bool:
        """Entries pointing at another sitemap file, as found in sitemap indexes."""
        return self.loc.strip().lower().endswith(NESTED_SITEMAP_SUFFIXES)


class SitemapSummary(BaseModel):
    totalUrls: int = 0
    hasLastmod: int = 0
    averagePriority: float = 0.0
    changeFreqDistribution: Dict[str, int] = Field(default_factory=dict)
