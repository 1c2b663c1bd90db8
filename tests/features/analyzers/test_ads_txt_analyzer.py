import json

import pytest

from conftest import FakeBackend, FakeFetcher
from site_auditor.features.ads_txt.services.ads_txt_analyzer import AdsTxtAnalyzer
from site_auditor.platform.exceptions import MalformedResponseError

ADS_URL = "https://example.com/ads.txt"


def make_analyzer(fetcher, backend) -> AdsTxtAnalyzer:
    return AdsTxtAnalyzer(fetcher, backend_factory=lambda provider, api_key: backend)


class TestAdsTxtAnalyzer:
    @pytest.mark.asyncio
    async def test_absent_ads_txt_returns_empty_analysis(self, agent):
        backend = FakeBackend()
        analysis = await make_analyzer(FakeFetcher(), backend).analyze_ads_txt("https://example.com", agent, "key")

        assert analysis.model_dump() == {"records": [], "malformedLines": []}
        assert backend.prompts == []

    @pytest.mark.asyncio
    async def test_records_are_structured(self, agent):
        content = "google.com, pub-123, DIRECT, f08c47fec0942fa0\nappnexus.com, 456, reseller\nbroken line"
        fetcher = FakeFetcher({ADS_URL: content})
        backend = FakeBackend([json.dumps({
            "records": [
                {"domain": "google.com", "publisherId": "pub-123", "relationship": "DIRECT", "tagId": "f08c47fec0942fa0"},
                {"domain": "appnexus.com", "publisherId": "456", "relationship": "reseller"},
                {"domain": "", "publisherId": "789", "relationship": "DIRECT"},
            ],
            "malformedLines": ["broken line"],
        })])

        analysis = await make_analyzer(fetcher, backend).analyze_ads_txt("https://example.com", agent, "key")

        assert len(analysis.records) == 2
        assert analysis.records[0].tagId == "f08c47fec0942fa0"
        assert analysis.records[1].relationship == "RESELLER"
        assert analysis.records[1].tagId is None
        assert analysis.malformedLines == ["broken line"]
        assert content in backend.prompts[0].user

    @pytest.mark.asyncio
    async def test_non_json_answer_raises_malformed(self, agent):
        fetcher = FakeFetcher({ADS_URL: "google.com, pub-1, DIRECT"})
        backend = FakeBackend(["There are no records here."])
        with pytest.raises(MalformedResponseError):
            await make_analyzer(fetcher, backend).analyze_ads_txt("https://example.com", agent, "key")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("answer", [
        '{"records": [], "malformedLines": "garbage"}',
        '{"records": {"domain": "google.com"}, "malformedLines": []}',
        '{"records": 3, "malformedLines": []}',
    ])
    async def test_non_array_fields_raise_malformed(self, agent, answer):
        fetcher = FakeFetcher({ADS_URL: "google.com, pub-1, DIRECT"})
        backend = FakeBackend([answer])
        with pytest.raises(MalformedResponseError):
            await make_analyzer(fetcher, backend).analyze_ads_txt("https://example.com", agent, "key")
