from contextlib import contextmanager
from pathlib import Path

import pytest

from venuediscovery.config import DiscoverySettings
from venuediscovery.models import SourceFamily, VenueConfig
from venuediscovery.scrapers.base import make_session
from venuediscovery.scrapers.browser import RenderedPage

FIXTURES = Path(__file__).parent / "fixtures"


class FakeBrowser:
    """Stands in for a BrowserSession: serves canned (html, data) per URL."""

    def __init__(self, pages: dict):
        self.pages = pages
        self.loads = []

    def load(self, url, wait_until="domcontentloaded", ready_selector=None, ready_function=None, evaluate=None):
        self.loads.append(url)
        html, data = self.pages[url]
        return RenderedPage(url=url, html=html, data=data)


class FakeRenderer:
    def __init__(self, pages: dict = None):
        self.pages = pages or {}
        self.sessions = 0
        self.open = 0

    @contextmanager
    def session(self):
        self.sessions += 1
        self.open += 1
        try:
            yield FakeBrowser(self.pages)
        finally:
            self.open -= 1


@pytest.fixture
def read_fixture():
    def read(name: str) -> str:
        return (FIXTURES / name).read_text()
    return read


@pytest.fixture
def fake_renderer():
    return FakeRenderer


@pytest.fixture
def settings():
    return DiscoverySettings(detail_concurrency=3, venue_concurrency=2)


@pytest.fixture
def http(settings):
    return make_session(settings.user_agent)


@pytest.fixture
def make_venue():
    def make(slug: str, family: SourceFamily, url: str, **kwargs) -> VenueConfig:
        kwargs.setdefault("name", slug.replace("-", " ").title())
        return VenueConfig(slug=slug, source_family=family, url=url, **kwargs)
    return make
