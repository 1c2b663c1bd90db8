from typing import List, Optional

from pydantic import BaseModel, Field

from site_auditor.features.crawl.schemas.crawl import CrawledPage


class IndexNowSubmission(BaseModel):
    """
    Either explicit `urls`, or the `pages` of a crawl audit from which the
    healthy (2xx) URLs are taken.
    """
    site_url: str
    urls: List[str] = Field(default_factory=list)
    pages: Optional[List[CrawledPage]] = None
    api_key: Optional[str] = None


class IndexNowResult(BaseModel):
    submitted: int
    status_code: int
    urls: List[str]
