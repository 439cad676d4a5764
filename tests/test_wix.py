import json

import pytest
import responses as rsps

from venuediscovery.errors import SourceUnavailableError
from venuediscovery.models import SourceFamily
from venuediscovery.scrapers.wix import WixScraper, parse_sitemap, slug_from_url

BASE = "https://www.celebritytheatre.com"
SITEMAP = f"{BASE}/event-pages-sitemap.xml"


def _event_page(name, start, price=None, performer=None):
    event = {
        "@context": "https://schema.org",
        "@type": "Event",
        "name": name,
        "startDate": start,
        "location": {"@type": "Place", "name": "Celebrity Theatre"},
        "image": {"@type": "ImageObject", "url": f"{BASE}/img/{name.lower().replace(' ', '-')}.jpg"},
    }
    if price is not None:
        event["offers"] = {"@type": "Offer", "price": price, "url": f"{BASE}/tickets/{name.lower().replace(' ', '-')}"}
    if performer:
        event["performer"] = [{"@type": "Person", "name": p} for p in performer]
    return f'<html><head><script type="application/ld+json">{json.dumps(event)}</script></head><body></body></html>'


@pytest.fixture
def scraper(make_venue, http, settings, fake_renderer):
    venue = make_venue("celebrity-theatre", SourceFamily.WIX, f"{BASE}/events/", name="Celebrity Theatre")
    return WixScraper({venue.slug: venue}, http=http, renderer=fake_renderer(), settings=settings)


@pytest.fixture
def wix_site(read_fixture):
    with rsps.RequestsMock(assert_all_requests_are_fired=False) as mock:
        mock.add(rsps.GET, SITEMAP, body=read_fixture("wix_sitemap.xml"), content_type="application/xml")
        mock.add(
            rsps.GET, f"{BASE}/events/gin-blossoms-2099-06-01",
            body=_event_page("Gin Blossoms", "2099-06-01T19:30:00-07:00", price="45.00"),
        )
        mock.add(
            rsps.GET, f"{BASE}/events/an-evening-with-air-supply",
            body=_event_page(
                "An Evening With Air Supply", "2099-05-10T20:00:00-07:00",
                performer=["Air Supply"],
            ),
        )
        mock.add(
            rsps.GET, f"{BASE}/events/lou-gramm-2020-01-10",
            body=_event_page("Lou Gramm", "2020-01-10T19:00:00-07:00"),
        )
        mock.add(rsps.GET, f"{BASE}/events/gift-cards", body="<html><body>Gift cards</body></html>")
        yield mock


def test_parse_sitemap(read_fixture):
    urls, children = parse_sitemap(read_fixture("wix_sitemap.xml"))
    assert children == []
    assert len(urls) == 4
    assert f"{BASE}/about" not in urls


def test_parse_sitemap_index(read_fixture):
    urls, children = parse_sitemap(read_fixture("wix_sitemap_index.xml"))
    assert urls == []
    assert children == [f"{BASE}/event-pages-sitemap-1.xml", f"{BASE}/event-pages-sitemap-2.xml"]


def test_slug_from_url():
    assert slug_from_url(f"{BASE}/events/gin-blossoms-2099-06-01") == "gin-blossoms-2099-06-01"
    assert slug_from_url(f"{BASE}/events/gin-blossoms/?lang=en") == "gin-blossoms"


def test_preview_keeps_upcoming_event_pages(scraper, wix_site):
    events = scraper.preview("celebrity-theatre")

    # gift-cards has no JSON-LD and the Lou Gramm show is in the past
    assert [e.id for e in events] == ["an-evening-with-air-supply", "gin-blossoms-2099-06-01"]
    assert [e.date for e in events] == ["2099-05-10", "2099-06-01"]
    assert events[1].title == "Gin Blossoms"


def test_scrape(scraper, wix_site):
    progress = []
    events = scraper.scrape(
        "celebrity-theatre",
        ["gin-blossoms-2099-06-01", "an-evening-with-air-supply", "gift-cards"],
        on_progress=progress.append,
    )
    by_id = {e.id: e for e in events}

    assert set(by_id) == {"gin-blossoms-2099-06-01", "an-evening-with-air-supply"}
    gin = by_id["gin-blossoms-2099-06-01"]
    assert gin.artists == ("Gin Blossoms",)
    assert gin.price == "$45"
    assert gin.show_time == "7:30 PM"
    assert gin.ticket_url == f"{BASE}/tickets/gin-blossoms"
    assert by_id["an-evening-with-air-supply"].artists == ("Air Supply",)

    assert len(progress) == 3
    assert {p.phase for p in progress} == {"assembling"}


def test_sitemap_index_is_followed(scraper, read_fixture):
    with rsps.RequestsMock(assert_all_requests_are_fired=False) as mock:
        mock.add(rsps.GET, SITEMAP, body=read_fixture("wix_sitemap_index.xml"))
        mock.add(
            rsps.GET, f"{BASE}/event-pages-sitemap-1.xml",
            body=read_fixture("wix_sitemap.xml"),
        )
        mock.add(rsps.GET, f"{BASE}/event-pages-sitemap-2.xml", status=404)
        mock.add(
            rsps.GET, f"{BASE}/events/gin-blossoms-2099-06-01",
            body=_event_page("Gin Blossoms", "2099-06-01T19:30:00-07:00"),
        )
        for slug in ("an-evening-with-air-supply", "lou-gramm-2020-01-10", "gift-cards"):
            mock.add(rsps.GET, f"{BASE}/events/{slug}", status=404)

        events = scraper.preview("celebrity-theatre")

    assert [e.id for e in events] == ["gin-blossoms-2099-06-01"]


def test_missing_sitemap(scraper):
    with rsps.RequestsMock() as mock:
        mock.add(rsps.GET, SITEMAP, status=404)
        with pytest.raises(SourceUnavailableError):
            scraper.preview("celebrity-theatre")
