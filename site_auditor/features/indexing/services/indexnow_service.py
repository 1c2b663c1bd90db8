from typing import Iterable, List, Optional

import httpx

from site_auditor.features.crawl.schemas.crawl import CrawledPage
from site_auditor.features.indexing.schemas.indexnow import IndexNowResult
from site_auditor.platform.config import settings
from site_auditor.platform.exceptions import ConfigurationError, EmptyDiscoveryError, TransportError
from site_auditor.platform.logger import get_logger
from site_auditor.platform.utils.url_validator import site_origin, validate_url

logger = get_logger(__name__)


def healthy_urls(pages: Iterable[CrawledPage]) -> List[str]:
    urls = [page.url for page in pages if 200 <= page.status < 300]
    if not urls:
        raise EmptyDiscoveryError("No healthy (2xx) URLs found in this audit to submit.")
    return urls


class IndexNowService:
    """Notifies IndexNow-enabled search engines about a site's URLs."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, endpoint: Optional[str] = None):
        self.client = client
        self.endpoint = endpoint or settings.INDEXNOW_ENDPOINT

    @staticmethod
    def build_payload(urls: List[str], api_key: str, site_url: str) -> dict:
        _, url_str, _ = validate_url(site_url)
        origin = site_origin(url_str)
        return {
            "host": httpx.URL(url_str).host,
            "key": api_key,
            "keyLocation": f"{origin}/{api_key}.txt",
            "urlList": urls,
        }

    @staticmethod
    def _error_details(response: httpx.Response) -> str:
        details = f"Request failed with status {response.status_code}."
        try:
            error_data = response.json()
        except ValueError:
            return details
        message = error_data.get("message") if isinstance(error_data, dict) else None
        return f"{details} Message: {message or response.text}"

    async def submit(self, urls: List[str], api_key: Optional[str], site_url: str) -> IndexNowResult:
        """
        Raises:
            ConfigurationError: no IndexNow key given or configured
            ValueError: nothing to submit
            TransportError: IndexNow answered with a non-2xx status
        """
        api_key = (api_key or "").strip() or (settings.INDEXNOW_API_KEY or "").strip()
        if not api_key:
            raise ConfigurationError("IndexNow API key is not provided.")
        if not urls:
            raise ValueError("No URLs to submit.")

        payload = self.build_payload(urls, api_key, site_url)
        headers = {"Content-Type": "application/json; charset=utf-8"}

        if self.client is not None:
            response = await self.client.post(self.endpoint, json=payload, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.post(self.endpoint, json=payload, headers=headers)

        if not response.is_success:
            details = self._error_details(response)
            logger.error(f"IndexNow submission for {payload['host']} failed: {details}")
            raise TransportError(details, url=self.endpoint, status_code=response.status_code)

        logger.info(f"Submitted {len(urls)} URLs for {payload['host']} to IndexNow")
        return IndexNowResult(submitted=len(urls), status_code=response.status_code, urls=urls)
