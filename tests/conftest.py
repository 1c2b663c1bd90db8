"""
Test configuration and fixtures for the site auditor API.

Network access is never needed: the relay is replaced by FakeFetcher and
model providers by FakeBackend, both scripted per test.
"""
import json
from typing import Callable, Dict, Generator, List, Optional, Union

from dotenv import load_dotenv

import pytest
from fastapi.testclient import TestClient

from site_auditor.features.llm.schemas.agent import AIAgent, PromptParts, Provider
from site_auditor.features.llm.services.base import ModelBackend
from site_auditor.platform.exceptions import FetchError

load_dotenv()


class FakeFetcher:
    """Serves canned bodies by URL; unknown URLs fail like an exhausted fetch."""

    def __init__(self, pages: Optional[Dict[str, Union[str, Exception]]] = None):
        self.pages = dict(pages or {})
        self.requested: List[str] = []

    async def fetch_resource(self, url: str) -> str:
        self.requested.append(url)
        body = self.pages.get(url)
        if body is None:
            raise FetchError(url, 3, status_code=404)
        if isinstance(body, Exception):
            raise body
        return body


class FakeBackend(ModelBackend):
    """
    Returns scripted completions in order. An entry may be a string, an
    exception to raise, or a callable receiving the prompt.
    """

    provider = Provider.GEMINI

    def __init__(self, responses=None, api_key: str = "test-key"):
        super().__init__(api_key)
        self.responses = list(responses or [])
        self.prompts: List[PromptParts] = []
        self.max_output_tokens: List[Optional[int]] = []
        self.closed = False

    async def complete(self, prompt, model, *, max_output_tokens=None, json_response=True) -> str:
        self.prompts.append(prompt)
        self.max_output_tokens.append(max_output_tokens)
        if not self.responses:
            raise AssertionError("FakeBackend ran out of scripted responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(prompt)
        return response

    async def aclose(self) -> None:
        self.closed = True


def page_payload(url: str, status: int = 200, **fields) -> dict:
    payload = {
        "url": url,
        "status": status,
        "title": f"Title of {url}",
        "description": "A page",
        "h1": "Heading",
        "contentPreview": "Preview",
        "internalLinks": 1,
        "externalLinks": 0,
        "metaTags": [],
        "internalLinkUrls": [],
        "externalLinkUrls": [],
    }
    payload.update(fields)
    return payload


def echo_pages_response(prompt: PromptParts) -> str:
    """Model stand-in that analyzes every page handed to it as a healthy page."""
    data = prompt.user.split("**Data Provided**: ", 1)[1].split("\n\n", 1)[0]
    pages = json.loads(data)
    return json.dumps([page_payload(page["url"]) for page in pages])


@pytest.fixture
def agent() -> AIAgent:
    return AIAgent(name="Test Agent", provider=Provider.GEMINI, model="gemini-2.5-flash")


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def backend_factory(fake_backend) -> Callable[..., ModelBackend]:
    def factory(provider, api_key):
        return fake_backend
    return factory


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from site_auditor.main import app

    return app


@pytest.fixture(scope="function")
def client(test_app) -> Generator[TestClient, None, None]:
    with TestClient(test_app) as test_client:
        yield test_client
    test_app.dependency_overrides.clear()
