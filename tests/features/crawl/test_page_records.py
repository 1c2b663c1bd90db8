import json

from site_auditor.features.crawl.schemas.crawl import CrawledPage
from site_auditor.features.crawl.services.page_records import (
    CONTENT_PREVIEW_LIMIT,
    normalize_page_item,
    placeholder_page,
)


class TestNormalizePageItem:
    def test_missing_fields_get_defaults(self):
        page = normalize_page_item({"url": " https://example.com/ "})
        assert page.url == "https://example.com/"
        assert page.status == 500
        assert (page.title, page.description, page.h1, page.contentPreview) == ("N/A",) * 4
        assert (page.internalLinks, page.externalLinks) == (0, 0)
        assert page.metaTags == [] and page.internalLinkUrls == [] and page.externalLinkUrls == []

    def test_values_are_coerced(self):
        page = normalize_page_item({
            "url": "https://example.com/",
            "status": "404",
            "internalLinks": "7",
            "externalLinks": None,
            "contentPreview": "x" * 500,
            "metaTags": [{"name": "robots", "content": "noindex"}, "garbage"],
            "internalLinkUrls": ["https://example.com/a", {"url": "https://example.com/b", "anchor": "B"}, {}],
        })
        assert page.status == 404
        assert page.internalLinks == 7
        assert page.externalLinks == 0
        assert len(page.contentPreview) == CONTENT_PREVIEW_LIMIT
        assert [tag.name for tag in page.metaTags] == ["robots"]
        assert [link.url for link in page.internalLinkUrls] == ["https://example.com/a", "https://example.com/b"]
        assert page.internalLinkUrls[1].anchor == "B"

    def test_non_objects_are_dropped(self):
        assert normalize_page_item("https://example.com") is None
        assert normalize_page_item(None) is None


class TestCrawledPageStatus:
    def test_out_of_range_status_is_a_server_error(self):
        assert CrawledPage(url="u", status=0).status == 500
        assert CrawledPage(url="u", status=999).status == 500
        assert CrawledPage(url="u", status=302).status == 302

    def test_placeholder(self):
        page = placeholder_page("https://example.com", "Fetch Failed", "")
        assert page.status == 500
        assert page.description == "N/A"


class TestNonFiniteNumbers:
    def test_infinite_counts_fall_back_to_defaults(self):
        page = normalize_page_item(json.loads(
            '{"url": "https://example.com/", "status": 1e999, "internalLinks": Infinity, "externalLinks": NaN}'
        ))
        assert page.status == 500
        assert page.internalLinks == 0
        assert page.externalLinks == 0
