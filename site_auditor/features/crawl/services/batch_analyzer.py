import asyncio
import json
import re
from typing import List, Optional, Tuple

from site_auditor.features.crawl.schemas.crawl import CrawledPage
from site_auditor.features.crawl.services.page_records import (
    FETCH_FAILED_TITLE,
    normalize_page_item,
    placeholder_page,
)
from site_auditor.features.fetching.services.fetch_service import FetchService
from site_auditor.features.llm.schemas.agent import AIAgent, PromptParts
from site_auditor.features.llm.services.backend_factory import BackendFactory, get_backend
from site_auditor.features.llm.services.base import ModelBackend
from site_auditor.features.llm.services.structured_extraction import request_structured_json
from site_auditor.features.reports.services.reconciler import reconcile_pages
from site_auditor.platform.exceptions import (
    ConfigurationError,
    MalformedResponseError,
    TransportError,
    classify_model_error,
)
from site_auditor.platform.logger import get_logger

logger = get_logger(__name__)

STATUS_IN_MESSAGE = re.compile(r"status (\d{3})")

PAGE_ANALYSIS_PROTOCOL = """
**Analysis Protocol for EACH page's HTML:**

1.  **Status Inference**: From the HTML, infer status (200, 404, 301). Default to 200 if unsure.
2.  **Content Extraction (for status 200)**: Extract `title`, `meta description`, primary `h1`, a 200-char `contentPreview`, and all `metaTags`.
3.  **Link Extraction**: Count unique internal/external links (`<a>` tags with http/https). Provide details for `internalLinkUrls` and `externalLinkUrls` as arrays of objects containing `url` and `anchor` text.
4.  **Non-200 Handling**: For non-200 pages, all fields besides status should be "N/A", 0, or empty arrays.

**ABSOLUTE RULES:**
*   Analyze ONLY the provided HTML.
*   Return a JSON array with an object for every URL, even if analysis fails.
*   Copy each `url` exactly as provided.

**Output Format:**
Return ONLY a valid JSON array of objects, matching this structure: `{"url": string, "status": number, "title": string, "description": string, "h1": string, "contentPreview": string, "internalLinks": number, "externalLinks": number, "metaTags": Array<{name?: string, property?: string, content: string}>, "internalLinkUrls": Array<{"url": string, "anchor": string}>, "externalLinkUrls": Array<{"url": string, "anchor": string}>}`."""


def infer_fetch_status(error: Exception) -> int:
    """Relay status carried by the error, else one parsed from its message, else 500."""
    status_code = getattr(error, "status_code", None)
    if isinstance(status_code, int):
        return status_code
    match = STATUS_IN_MESSAGE.search(str(error))
    return int(match.group(1)) if match else 500


class BatchAnalysisService:
    """
    Fetches a batch of pages and has the agent's model extract one
    CrawledPage per URL.

    Guarantees one result per submitted URL: fetch failures become
    "Fetch Failed" placeholders, and any failure of the model step turns the
    whole fetched subset into "Analysis Failed" placeholders carrying the
    error message. No per-item recovery is attempted inside a batch.
    """

    def __init__(self, fetcher: FetchService, backend_factory: Optional[BackendFactory] = None):
        self.fetcher = fetcher
        self.backend_factory = backend_factory or get_backend

    async def _fetch_one(self, url: str) -> Tuple[str, Optional[str], Optional[Exception]]:
        try:
            return url, await self.fetcher.fetch_resource(url), None
        except TransportError as e:
            return url, None, e

    @staticmethod
    def _build_prompt(agent: AIAgent, pages: List[dict]) -> PromptParts:
        system = (
            f"{agent.system_prompt}\n\n"
            "You must respond with a single JSON array, adhering to the user's specified format. "
            "The array should contain an analysis object for each URL provided."
        )
        user = (
            "I will provide you with an array of objects, each containing a URL and its HTML. "
            "Your mission is to analyze each one.\n\n"
            f"**Data Provided**: {json.dumps(pages)}\n\n"
            f"{PAGE_ANALYSIS_PROTOCOL}"
        )
        return PromptParts(system=system, user=user)

    async def _extract_pages(self, backend: ModelBackend, agent: AIAgent, pages: List[dict]) -> List[CrawledPage]:
        parsed = await request_structured_json(backend, self._build_prompt(agent, pages), agent.model)
        if not isinstance(parsed, list):
            raise MalformedResponseError("Parsed data is not an array.")
        return [page for page in (normalize_page_item(item) for item in parsed) if page is not None]

    async def analyze_batch(self, urls: List[str], agent: AIAgent, api_key: str) -> List[CrawledPage]:
        """
        Analyze one batch of URLs.

        Args:
            urls: URLs of the batch
            agent: Provider, model and system prompt to use
            api_key: Credential for agent.provider

        Returns:
            Exactly one CrawledPage per input URL, in input order

        Raises:
            ConfigurationError: missing credential, before any fetch
        """
        if not api_key:
            raise ConfigurationError(f"{agent.provider.display_name} API key is required.")
        backend = self.backend_factory(agent.provider, api_key)

        try:
            fetched = await asyncio.gather(*(self._fetch_one(url) for url in urls))

            results: List[CrawledPage] = []
            valid_pages = []
            for url, html, error in fetched:
                if html is None:
                    results.append(placeholder_page(
                        url, FETCH_FAILED_TITLE, str(error), status=infer_fetch_status(error)
                    ))
                else:
                    valid_pages.append({"url": url, "html": html})

            if not valid_pages:
                return reconcile_pages(urls, results)

            failure_message = None
            try:
                results.extend(await self._extract_pages(backend, agent, valid_pages))
            except Exception as e:
                error = classify_model_error(e, agent.provider.value)
                failure_message = str(error) or "Could not parse AI response."
                logger.error(
                    f"Failed to parse {agent.provider.value} response for page batch analysis: {e}"
                )

            if failure_message is not None:
                return reconcile_pages(urls, results, failure_message=failure_message)

            reconciled = reconcile_pages(urls, results)
            logger.info(f"Analyzed batch of {len(urls)} URLs ({len(valid_pages)} fetched)")
            return reconciled
        finally:
            await backend.aclose()
