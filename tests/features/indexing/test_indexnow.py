import json

import httpx
import pytest

from site_auditor.features.crawl.schemas.crawl import CrawledPage
from site_auditor.features.indexing.routes.indexnow import get_indexnow_service
from site_auditor.features.indexing.services.indexnow_service import IndexNowService, healthy_urls
from site_auditor.platform.config import settings
from site_auditor.platform.exceptions import ConfigurationError, EmptyDiscoveryError, TransportError

ENDPOINT = "https://indexnow.test/indexnow"


def service_with(handler) -> IndexNowService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return IndexNowService(client=client, endpoint=ENDPOINT)


class TestHealthyUrls:
    def test_only_2xx_pages(self):
        pages = [
            CrawledPage(url="https://a.test/", status=200),
            CrawledPage(url="https://a.test/moved", status=301),
            CrawledPage(url="https://a.test/gone", status=404),
            CrawledPage(url="https://a.test/ok", status=204),
        ]
        assert healthy_urls(pages) == ["https://a.test/", "https://a.test/ok"]

    def test_none_healthy_raises(self):
        with pytest.raises(EmptyDiscoveryError):
            healthy_urls([CrawledPage(url="https://a.test/", status=500)])


class TestIndexNowService:
    @pytest.mark.asyncio
    async def test_payload(self):
        captured = {}

        def handler(request):
            captured["url"] = str(request.url)
            captured["body"] = json.loads(request.content)
            return httpx.Response(202)

        result = await service_with(handler).submit(
            ["https://www.example.com/", "https://www.example.com/a"], "abc123", "https://www.example.com/blog"
        )

        assert captured["url"] == ENDPOINT
        assert captured["body"] == {
            "host": "www.example.com",
            "key": "abc123",
            "keyLocation": "https://www.example.com/abc123.txt",
            "urlList": ["https://www.example.com/", "https://www.example.com/a"],
        }
        assert result.submitted == 2
        assert result.status_code == 202

    @pytest.mark.asyncio
    async def test_non_2xx_raises_with_details(self):
        def handler(request):
            return httpx.Response(403, json={"message": "Key not valid"})

        with pytest.raises(TransportError) as exc_info:
            await service_with(handler).submit(["https://a.test/"], "key", "https://a.test")

        assert exc_info.value.status_code == 403
        assert "Request failed with status 403." in str(exc_info.value)
        assert "Key not valid" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_key_required(self, monkeypatch):
        monkeypatch.setattr(settings, "INDEXNOW_API_KEY", None)
        with pytest.raises(ConfigurationError):
            await service_with(lambda request: httpx.Response(200)).submit(["https://a.test/"], None, "https://a.test")

    @pytest.mark.asyncio
    async def test_urls_required(self):
        with pytest.raises(ValueError):
            await service_with(lambda request: httpx.Response(200)).submit([], "key", "https://a.test")


class TestIndexNowEndpoint:
    def test_submits_healthy_pages(self, client, test_app):
        sent = []

        def handler(request):
            sent.append(json.loads(request.content))
            return httpx.Response(200)

        test_app.dependency_overrides[get_indexnow_service] = lambda: service_with(handler)

        response = client.post("/api/v1/indexing/indexnow", json={
            "site_url": "https://a.test",
            "api_key": "key",
            "pages": [
                {"url": "https://a.test/", "status": 200},
                {"url": "https://a.test/missing", "status": 404},
            ],
        })

        assert response.status_code == 200
        assert response.json()["message"] == "Successfully submitted 1 URLs to IndexNow."
        assert sent[0]["urlList"] == ["https://a.test/"]

    def test_nothing_to_submit_is_422(self, client):
        response = client.post("/api/v1/indexing/indexnow", json={"site_url": "https://a.test", "api_key": "key"})
        assert response.status_code == 422
