from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── App ─────────────────────────────────────
    APP_NAME: str = "AI Auditor Pro"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    DEBUG: bool = True
    LOG_DIR: str = "logs"

    # ── Fetch relay ─────────────────────────────
    FETCH_RELAY_URL: str = "https://corsproxy.io/?"
    FETCH_RETRIES: int = 3
    FETCH_TIMEOUT_SECONDS: float = 30.0
    FETCH_BACKOFF_SECONDS: float = 0.5

    # ── Crawl / sitemap ─────────────────────────
    ANALYSIS_BATCH_SIZE: int = 3
    DEFAULT_CRAWL_DEPTH: int = 2
    MAX_CRAWL_DEPTH: int = 5
    # Only logged when crossed, the crawl itself is bounded by depth alone
    CRAWL_URL_WARNING_THRESHOLD: int = 500
    SITEMAP_REQUEST_DELAY_SECONDS: float = 1.0
    SITEMAP_MAX_OUTPUT_TOKENS: int = 8192

    # ── Model providers ─────────────────────────
    MODEL_REQUEST_TIMEOUT_SECONDS: float = 120.0

    GEMINI_API_KEY: Optional[str] = None
    OPENAI_API_KEY: Optional[str] = None
    OPENROUTER_API_KEY: Optional[str] = None

    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    OPENROUTER_REFERER: str = "https://ai-auditor.pro"

    # ── Indexing ────────────────────────────────
    INDEXNOW_ENDPOINT: str = "https://api.indexnow.org/indexnow"
    INDEXNOW_API_KEY: Optional[str] = None

    class Config:
        env_file = str(Path(__file__).parent.parent.parent / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
