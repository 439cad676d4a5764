"""
Registry and batch preview tests.

Adding a source family? Register its scraper in venuediscovery.scrapers.SCRAPER_TYPES,
save a rendered listing under tests/fixtures/, and test it the way
test_jsonld.py (plain HTTP, mocked with `responses`) or test_emptybottle.py
(browser-rendered, served by the FakeRenderer in conftest.py) do.
"""

import pytest

from venuediscovery.discovery import Discovery
from venuediscovery.errors import ConfigurationError, SourceUnavailableError
from venuediscovery.models import PreviewEvent, SourceFamily
from venuediscovery.scrapers import SCRAPER_TYPES, ScraperRegistry, build_registry
from venuediscovery.scrapers.jsonld import JsonLdScraper


class StubScraper:
    """Returns canned previews per venue; an Exception value is raised instead."""

    def __init__(self, previews):
        self.previews = previews
        self.scrape_calls = []

    def preview(self, venue_slug):
        result = self.previews[venue_slug]
        if isinstance(result, Exception):
            raise result
        return result

    def scrape(self, venue_slug, event_ids, on_progress=None):
        self.scrape_calls.append((venue_slug, event_ids))
        return []


@pytest.fixture
def venues(make_venue):
    return {
        v.slug: v for v in (
            make_venue("the-van-buren", SourceFamily.JSONLD, "https://thevanburenphx.com/shows", city="Phoenix", state="AZ"),
            make_venue("arizona-financial-theatre", SourceFamily.JSONLD, "https://www.arizonafinancialtheatre.com/shows", city="Phoenix", state="AZ"),
            make_venue("rialto", SourceFamily.JSONLD, "https://rialto.example.com/shows", city="Tucson", state="AZ"),
            make_venue("empty-bottle", SourceFamily.EMPTYBOTTLE, "https://www.emptybottle.com/", city="Chicago", state="IL"),
        )
    }


def _preview(event_id, venue):
    return PreviewEvent(id=event_id, title=f"Show {event_id}", date="2099-01-01", venue=venue)


def test_every_scraper_is_registered_under_its_family():
    for family, cls in SCRAPER_TYPES.items():
        assert cls.source_family is family, (
            f"Scraper class {cls.__name__} has source_family={cls.source_family} "
            f"but is registered under {family}"
        )
    assert set(SCRAPER_TYPES) == set(SourceFamily)


def test_build_registry(venues, http, settings, fake_renderer):
    registry = build_registry(venues, http=http, renderer=fake_renderer(), settings=settings)

    scraper = registry.get("jsonld")
    assert isinstance(scraper, JsonLdScraper)
    assert sorted(scraper.venues) == ["arizona-financial-theatre", "rialto", "the-van-buren"]
    assert registry.get(SourceFamily.JSONLD) is scraper
    assert "wix" in registry


def test_unknown_family_is_absent():
    registry = ScraperRegistry({})
    assert registry.get("myspace") is None
    assert registry.get("jsonld") is None
    assert "myspace" not in registry


def test_unknown_venue(venues):
    discovery = Discovery(venues, ScraperRegistry({}))
    with pytest.raises(ConfigurationError, match="Unknown venue"):
        discovery.preview("the-fillmore")


def test_missing_adapter(venues):
    discovery = Discovery(venues, ScraperRegistry({}))
    with pytest.raises(ConfigurationError, match="No scraper"):
        discovery.preview("the-van-buren")


def test_scrape_without_ids_skips_the_scraper(venues):
    stub = StubScraper({})
    discovery = Discovery(venues, ScraperRegistry({SourceFamily.JSONLD: stub}))
    assert discovery.scrape("the-van-buren", []) == []
    assert stub.scrape_calls == []


def test_batch_preview_isolates_failures(venues):
    stub = StubScraper({
        "the-van-buren": [_preview("1", "The Van Buren"), _preview("2", "The Van Buren")],
        "arizona-financial-theatre": SourceUnavailableError("Timed out rendering"),
        "rialto": [_preview("3", "Rialto")],
    })
    discovery = Discovery(venues, ScraperRegistry({SourceFamily.JSONLD: stub}))

    results = discovery.preview_batch(["the-van-buren", "arizona-financial-theatre", "rialto", "nowhere"])

    assert [r.venue_slug for r in results] == ["the-van-buren", "arizona-financial-theatre", "rialto", "nowhere"]
    assert [len(r.events) for r in results] == [2, 0, 1, 0]
    assert results[0].ok and results[2].ok
    assert results[1].error == "Timed out rendering"
    assert results[3].error == "Unknown venue: nowhere"


def test_batch_preview_of_nothing(venues):
    assert Discovery(venues, ScraperRegistry({})).preview_batch([]) == []


def test_cities(venues):
    discovery = Discovery(venues, ScraperRegistry({}))
    assert discovery.cities() == [("Chicago", "IL", 1), ("Phoenix", "AZ", 2), ("Tucson", "AZ", 1)]
