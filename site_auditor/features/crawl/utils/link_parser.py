from typing import List
from urllib.parse import urldefrag, urljoin, urlparse

from bs4 import BeautifulSoup

from site_auditor.platform.logger import get_logger

logger = get_logger(__name__)

SKIPPED_PREFIXES = ("mailto:", "tel:", "javascript:", "#")
ALLOWED_SCHEMES = ("http", "https")


def extract_link_targets(html: str, page_url: str) -> List[str]:
    """
    Absolute http(s) targets of every <a href> on the page, fragments removed,
    in document order. Duplicates are kept; the caller owns de-duplication.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    targets = []

    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.lower().startswith(SKIPPED_PREFIXES):
            continue

        try:
            absolute = urljoin(page_url, href)
            parsed = urlparse(absolute)
        except ValueError:
            logger.warning(f"Could not parse link href: \"{href}\" on page {page_url}")
            continue

        if parsed.scheme not in ALLOWED_SCHEMES:
            continue

        targets.append(urldefrag(absolute)[0])

    return targets


def hostname_of(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""
