from datetime import datetime, timezone

import pytest

from venuediscovery.models import (
    BatchPreviewResult,
    DiscoveredEvent,
    ImportResult,
    ImportStatus,
    PreviewEvent,
    SourceFamily,
    VenueConfig,
)
from venuediscovery.normalize import scrape_timestamp

SCRAPED_AT = datetime(2026, 10, 1, 18, 30, 0, 123456, tzinfo=timezone.utc)


def _event(**kwargs):
    fields = dict(
        id="670245",
        title="Hot Mulligan",
        date="2099-02-19",
        venue="The Rebel Lounge",
        venue_slug="the-rebel-lounge",
        artists=("Hot Mulligan", "Sweet Pill"),
        scraped_at=SCRAPED_AT,
    )
    fields.update(kwargs)
    return DiscoveredEvent(**fields)


def test_event_requires_an_artist():
    with pytest.raises(ValueError):
        _event(artists=())
    with pytest.raises(ValueError):
        _event(artists=("Hot Mulligan", ""))


def test_artist_list_becomes_tuple():
    event = _event(artists=["Hot Mulligan"])
    assert event.artists == ("Hot Mulligan",)
    assert event.headliner == "Hot Mulligan"


@pytest.mark.parametrize("bad_date", ["2099/02/19", "Feb 19", "2099-02-30", ""])
def test_dates_must_be_iso(bad_date):
    with pytest.raises(ValueError):
        _event(date=bad_date)
    with pytest.raises(ValueError):
        PreviewEvent(id="1", title="x", date=bad_date, venue="v")


def test_payload_omits_empty_fields():
    payload = _event(price="$25", doors_time="7:00 PM").to_payload()
    assert payload == {
        "id": "670245",
        "title": "Hot Mulligan",
        "date": "2099-02-19",
        "venue": "The Rebel Lounge",
        "venueSlug": "the-rebel-lounge",
        "artists": ["Hot Mulligan", "Sweet Pill"],
        "scrapedAt": "2026-10-01T18:30:00.123456Z",
        "doorsTime": "7:00 PM",
        "price": "$25",
    }


def test_payload_includes_status_flags_only_when_set():
    payload = _event(is_sold_out=True).to_payload()
    assert payload["isSoldOut"] is True
    assert "isCancelled" not in payload


def test_event_from_payload():
    event = _event(ticket_url="https://wl.seetickets.us/event/x/670245", is_cancelled=True)
    assert DiscoveredEvent.from_payload(event.to_payload()) == event


def test_scrape_timestamps_strictly_increase():
    stamps = [scrape_timestamp() for _ in range(200)]
    assert all(a < b for a, b in zip(stamps, stamps[1:]))
    assert stamps[0].tzinfo is not None


def test_venue_sitemap_default():
    venue = VenueConfig("celebrity-theatre", "Celebrity Theatre", SourceFamily.WIX, "https://www.celebritytheatre.com/events/")
    assert venue.base_url == "https://www.celebritytheatre.com"
    assert venue.sitemap == "https://www.celebritytheatre.com/event-pages-sitemap.xml"


def test_batch_result_payload():
    ok = BatchPreviewResult("valley-bar", events=[PreviewEvent("1", "Show", "2099-01-01", "Valley Bar")])
    failed = BatchPreviewResult("empty-bottle", error="Timed out")
    assert ok.ok and not failed.ok
    assert ok.to_payload()["events"][0]["id"] == "1"
    assert failed.to_payload() == {"venueSlug": "empty-bottle", "events": [], "error": "Timed out"}


def test_import_result_from_payload():
    result = ImportResult.from_payload({"total": 3, "imported": 2, "duplicates": 1, "messages": ["IMPORTED: x"]})
    assert (result.total, result.imported, result.duplicates, result.errors) == (3, 2, 1, 0)
    assert result.messages == ["IMPORTED: x"]


def test_changed_fields():
    status = ImportStatus.from_payload({
        "exists": True,
        "showId": 42,
        "status": "approved",
        "currentData": {
            "price": 20.0,
            "ageRequirement": "21+",
            "eventDate": "2099-02-19T03:00:00Z",
            "isSoldOut": False,
            "isCancelled": False,
            "artists": ["hot mulligan", "sweet pill"],
        },
    })
    event = _event(price="$25", age_restriction="21+", is_sold_out=True)
    assert status.changed_fields(event) == ["price", "isSoldOut"]


def test_changed_fields_for_unknown_event():
    assert ImportStatus(exists=False).changed_fields(_event()) == []
