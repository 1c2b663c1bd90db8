from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from site_auditor.features.ads_txt.schemas.ads_txt import AdsTxtAnalysis
from site_auditor.features.crawl.schemas.crawl import CrawledPage, CrawlSummary
from site_auditor.features.llm.schemas.agent import AIAgent
from site_auditor.features.robots.schemas.robots import RobotsTxtAnalysis
from site_auditor.features.sitemap.schemas.sitemap import SitemapEntry, SitemapSummary
from site_auditor.platform.config import settings


class AnalysisMode(str, Enum):
    CRAWL = "crawl"
    SITEMAP = "sitemap"
    ROBOTS = "robots"
    ADS = "ads"


class AuditRequest(BaseModel):
    url: str
    analysis_mode: AnalysisMode = AnalysisMode.CRAWL
    agent: AIAgent
    api_key: Optional[str] = None
    crawl_depth: Optional[int] = None

    @field_validator("crawl_depth")
    @classmethod
    def _depth_in_range(cls, value: Optional[int]) -> Optional[int]:
        if value is None:
            return value
        if value < 1 or value > settings.MAX_CRAWL_DEPTH:
            raise ValueError(f"crawl_depth must be between 1 and {settings.MAX_CRAWL_DEPTH}")
        return value

    class Config:
        json_schema_extra = {
            "example": {
                "url": "https://example.com",
                "analysis_mode": "crawl",
                "agent": {
                    "name": "SEO Analyst",
                    "provider": "gemini",
                    "model": "gemini-2.5-flash",
                },
                "crawl_depth": 2,
            }
        }


class AuditSnapshot(BaseModel):
    """
    Everything one audit run produced, as handed to the persistence layer.
    Only the fields of the run's analysis_mode are populated.
    """
    property_url: str
    analysis_mode: AnalysisMode
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    agent_name: str
    crawled_data: List[CrawledPage] = Field(default_factory=list)
    crawl_summary: Optional[CrawlSummary] = None
    sitemap_data: Optional[List[SitemapEntry]] = None
    sitemap_summary: Optional[SitemapSummary] = None
    robots_txt_data: Optional[RobotsTxtAnalysis] = None
    ads_txt_data: Optional[AdsTxtAnalysis] = None


class AuditProgressEvent(BaseModel):
    """Emitted after each analyzed crawl batch."""
    batch: List[CrawledPage]
    analyzed: int
    total: int
