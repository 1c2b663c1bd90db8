from typing import Any, List, Optional

from site_auditor.features.crawl.schemas.crawl import CrawledPage, LinkRef, MetaTag

NOT_AVAILABLE = "N/A"
CONTENT_PREVIEW_LIMIT = 200

FETCH_FAILED_TITLE = "Fetch Failed"
ANALYSIS_FAILED_TITLE = "Analysis Failed"


def placeholder_page(url: str, title: str, description: str, status: int = 500) -> CrawledPage:
    return CrawledPage(
        url=url,
        status=status,
        title=title,
        description=description or NOT_AVAILABLE,
    )


def _as_text(value: Any, default: str = NOT_AVAILABLE) -> str:
    if value is None:
        return default
    return value if isinstance(value, str) else str(value)


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def _meta_tags(value: Any) -> List[MetaTag]:
    if not isinstance(value, list):
        return []
    tags = []
    for tag in value:
        if not isinstance(tag, dict):
            continue
        name, prop = tag.get("name"), tag.get("property")
        tags.append(MetaTag(
            name=str(name) if name is not None else None,
            property=str(prop) if prop is not None else None,
            content=_as_text(tag.get("content"), ""),
        ))
    return tags


def _links(value: Any) -> List[LinkRef]:
    if not isinstance(value, list):
        return []
    links = []
    for link in value:
        if isinstance(link, str):
            links.append(LinkRef(url=link))
        elif isinstance(link, dict) and link.get("url"):
            links.append(LinkRef(url=_as_text(link["url"]), anchor=_as_text(link.get("anchor"), "")))
    return links


def normalize_page_item(item: Any) -> Optional[CrawledPage]:
    """
    Build a CrawledPage from one model-produced object, backfilling every
    missing or unusable field with its default. Non-objects yield None.
    """
    if not isinstance(item, dict):
        return None

    preview = _as_text(item.get("contentPreview"))
    return CrawledPage(
        url=_as_text(item.get("url"), "Unknown URL").strip(),
        status=_as_int(item.get("status"), 500),
        title=_as_text(item.get("title")),
        description=_as_text(item.get("description")),
        h1=_as_text(item.get("h1")),
        contentPreview=preview[:CONTENT_PREVIEW_LIMIT],
        internalLinks=max(0, _as_int(item.get("internalLinks"), 0)),
        externalLinks=max(0, _as_int(item.get("externalLinks"), 0)),
        metaTags=_meta_tags(item.get("metaTags")),
        internalLinkUrls=_links(item.get("internalLinkUrls")),
        externalLinkUrls=_links(item.get("externalLinkUrls")),
    )
