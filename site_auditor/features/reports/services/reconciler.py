from typing import Dict, Iterable, List
from urllib.parse import urlsplit, urlunsplit

from site_auditor.features.crawl.schemas.crawl import CrawledPage
from site_auditor.features.crawl.services.page_records import ANALYSIS_FAILED_TITLE, placeholder_page
from site_auditor.platform.logger import get_logger

logger = get_logger(__name__)

MISSING_RESULT_MESSAGE = "The AI returned no analysis for this URL."


def _url_key(url: str) -> str:
    """Scheme and host compare case-insensitively, paths do not; a trailing slash is ignored."""
    try:
        parsed = urlsplit(url.strip())
    except ValueError:
        return url.strip().rstrip("/")
    return urlunsplit((
        parsed.scheme.lower(),
        parsed.netloc.lower(),
        parsed.path.rstrip("/"),
        parsed.query,
        "",
    ))


def reconcile_pages(
    urls: List[str],
    pages: Iterable[CrawledPage],
    failure_message: str = MISSING_RESULT_MESSAGE,
) -> List[CrawledPage]:
    """
    Re-key partial results by URL so every submitted URL has exactly one page.

    Matching is exact first, then ignoring a trailing slash and the case of
    scheme and host; the first result for a URL wins. Results for URLs outside `urls` are dropped.
    URLs left without a result get an "Analysis Failed" placeholder.

    Returns:
        One CrawledPage per input URL, in input order
    """
    exact: Dict[str, CrawledPage] = {}
    loose: Dict[str, CrawledPage] = {}
    for page in pages:
        exact.setdefault(page.url, page)
        loose.setdefault(_url_key(page.url), page)

    wanted = set(urls)
    wanted_keys = {_url_key(url) for url in urls}
    for page_url in exact:
        if page_url not in wanted and _url_key(page_url) not in wanted_keys:
            logger.warning(f"Dropping result for URL outside the batch: {page_url}")

    reconciled = []
    for url in urls:
        page = exact.get(url) or loose.get(_url_key(url))
        if page is None:
            reconciled.append(placeholder_page(url, ANALYSIS_FAILED_TITLE, failure_message))
            continue
        if page.url != url:
            page = page.model_copy(update={"url": url})
        reconciled.append(page)

    return reconciled
