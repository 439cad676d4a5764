"""
JSON-LD listing scraper (Live Nation / Ticketmaster venue sites).

Listing page, e.g. https://www.arizonafinancialtheatre.com/shows
  - Every show is embedded as a schema.org MusicEvent block:
      name, startDate ("2026-02-07T20:00:00-07:00"), doorTime, url, image,
      location.name, performer[].name, offers, eventStatus
  - `url` is the Ticketmaster event page, ending in /event/<ID>; that ID is
    the event's stable identifier. Events without one get a hash of
    name + startDate.

No secondary page visits: preview and scrape both read the listing page.
"""

import logging
import re
from typing import Optional

from venuediscovery.models import DiscoveredEvent, PreviewEvent, SourceFamily
from venuediscovery.normalize import iso_date, scrape_timestamp, stable_event_id, time_from_iso
from venuediscovery.scrapers import structured
from venuediscovery.scrapers.base import UNKNOWN_TITLE, BaseScraper, OnProgress

logger = logging.getLogger(__name__)

_TICKETMASTER_ID = re.compile(r"/event/([A-Za-z0-9]+)$")


def event_id(event: dict) -> str:
    url = event.get("url") or ""
    m = _TICKETMASTER_ID.search(url)
    if m:
        return m.group(1)
    return stable_event_id(event.get("name"), event.get("startDate"))


class JsonLdScraper(BaseScraper):
    source_family = SourceFamily.JSONLD

    def _listing_events(self, url: str) -> dict[str, dict]:
        """Dated events keyed by ID; a show repeated across blocks keeps its first entry."""
        html = self._fetch_html(url)
        events: dict[str, dict] = {}
        for e in structured.parse_jsonld_events(html):
            if iso_date(e.get("startDate")):
                events.setdefault(event_id(e), e)
        return events

    def preview(self, venue_slug: str) -> list[PreviewEvent]:
        venue = self.venue(venue_slug)
        logger.info("[jsonld] Previewing events from %s", venue.name)

        events = [
            PreviewEvent(
                id=eid,
                title=e.get("name") or UNKNOWN_TITLE,
                date=iso_date(e.get("startDate")),
                venue=structured.location_name(e) or venue.name,
            )
            for eid, e in self._listing_events(venue.url).items()
        ]
        logger.info("[jsonld] Found %d events", len(events))
        return events

    def scrape(
        self,
        venue_slug: str,
        event_ids: list[str],
        on_progress: Optional[OnProgress] = None,
    ) -> list[DiscoveredEvent]:
        venue = self.venue(venue_slug)
        logger.info("[jsonld] Scraping %d events from %s", len(event_ids), venue.name)

        wanted = set(event_ids)
        selected = [(eid, e) for eid, e in self._listing_events(venue.url).items() if eid in wanted]

        events: list[DiscoveredEvent] = []
        for count, (eid, e) in enumerate(selected, start=1):
            title = e.get("name") or UNKNOWN_TITLE
            events.append(DiscoveredEvent(
                id=eid,
                title=title,
                date=iso_date(e.get("startDate")),
                venue=structured.location_name(e) or venue.name,
                venue_slug=venue_slug,
                artists=tuple(structured.artists(e, title)),
                scraped_at=scrape_timestamp(),
                image_url=structured.image_url(e.get("image")),
                doors_time=time_from_iso(e.get("doorTime")),
                show_time=time_from_iso(e.get("startDate")),
                ticket_url=e.get("url") or structured.offer_url(e),
                price=structured.offer_price(e),
                is_sold_out=structured.is_sold_out(e),
                is_cancelled=structured.is_cancelled(e),
            ))
            self._notify(on_progress, count, len(selected), title, "processing")

        logger.info("[jsonld] Scraped %d events", len(events))
        return events
