"""
Crawl Schemas

Page-level results produced by the batch dispatcher and the crawl summary
derived from them.
"""
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class MetaTag(BaseModel):
    """One <meta> tag, keyed by either name or property."""
    name: Optional[str] = None
    property: Optional[str] = None
    content: str = ""


class LinkRef(BaseModel):
    url: str
    anchor: str = ""


class CrawledPage(BaseModel):
    """
    One page's analysis result.

    `status` is inferred by the model from the page body, not observed on the
    wire, except for fetch-failure placeholders. Treat it as a best-effort
    classification.
    """
    url: str
    status: int = 500
    title: str = "N/A"
    description: str = "N/A"
    h1: str = "N/A"
    contentPreview: str = "N/A"
    internalLinks: int = 0
    externalLinks: int = 0
    metaTags: List[MetaTag] = Field(default_factory=list)
    internalLinkUrls: List[LinkRef] = Field(default_factory=list)
    externalLinkUrls: List[LinkRef] = Field(default_factory=list)

    @field_validator("status")
    @classmethod
    def _known_status_range(cls, value: int) -> int:
        # Anything outside 2xx-5xx is recorded as a server error
        return value if 200 <= value <= 599 else 500


class CrawlSummary(BaseModel):
    totalPages: int = 0
    healthyPages: int = 0
    redirects: int = 0
    clientErrors: int = 0
    serverErrors: int = 0
