import asyncio
from typing import Optional
from urllib.parse import quote, unquote

import httpx

from site_auditor.platform.config import settings
from site_auditor.platform.exceptions import FetchError
from site_auditor.platform.logger import get_logger

logger = get_logger(__name__)


class RelayStatusError(Exception):
    """Relay answered with a non-2xx status for one attempt."""

    def __init__(self, url: str, status_code: int):
        super().__init__(f"Relay request failed with status {status_code} for {url}")
        self.status_code = status_code


class FetchService:
    """
    Retrieves raw text for a URL through the configured relay.

    Each attempt has its own deadline; a timed-out attempt counts as one
    failure and the loop moves on to the next attempt. No caching.

    Usage:
        async with FetchService() as fetcher:
            html = await fetcher.fetch_resource("https://example.com")
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        relay_url: Optional[str] = None,
        retries: Optional[int] = None,
        timeout: Optional[float] = None,
        backoff: Optional[float] = None,
    ):
        self.relay_url = relay_url if relay_url is not None else settings.FETCH_RELAY_URL
        self.retries = max(1, retries if retries is not None else settings.FETCH_RETRIES)
        self.timeout = timeout if timeout is not None else settings.FETCH_TIMEOUT_SECONDS
        self.backoff = backoff if backoff is not None else settings.FETCH_BACKOFF_SECONDS
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self):
        self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
            self._owns_client = True
        return self._client

    async def aclose(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def build_relay_url(self, url: str) -> str:
        """Append the target to the relay prefix, URL-encoded exactly once."""
        return f"{self.relay_url}{quote(unquote(url), safe='')}"

    async def fetch_resource(self, url: str) -> str:
        """
        Fetch the text body of `url` through the relay.

        Raises:
            FetchError: after every attempt failed. Carries the URL, the
                attempt count and the relay status of the last attempt.
        """
        client = self._get_client()
        target = self.build_relay_url(url)
        last_error: Optional[BaseException] = None
        last_status: Optional[int] = None

        for attempt in range(self.retries):
            try:
                response = await asyncio.wait_for(client.get(target), timeout=self.timeout)
                if not response.is_success:
                    raise RelayStatusError(url, response.status_code)
                return response.text
            except RelayStatusError as e:
                last_error, last_status = e, e.status_code
            except asyncio.TimeoutError:
                last_error = TimeoutError(f"Attempt timed out after {self.timeout}s")
                last_status = None
            except httpx.HTTPError as e:
                last_error, last_status = e, None

            logger.warning(f"Attempt {attempt + 1} of {self.retries} failed for {url}: {last_error}")
            if attempt < self.retries - 1:
                await asyncio.sleep(self.backoff * (attempt + 1))

        logger.error(f"Final attempt failed for {url}: {last_error}")
        raise FetchError(url, self.retries, cause=last_error, status_code=last_status)
