"""
Wix events scraper (sitemap + JSON-LD detail pages).

Wix sites have no usable listing page without JavaScript, but publish
  - a sitemap (default https://<host>/event-pages-sitemap.xml, overridable with
    `sitemap_url`) whose <loc> entries include every event page as
    https://<host>/events/<slug>
  - an Event JSON-LD block on each event page (@type "Event", not MusicEvent)

The slug is the stable event ID. Sitemap URLs whose page has no event JSON-LD
are not event pages and are dropped.
"""

import logging
import re
from datetime import date
from typing import Optional

from bs4 import BeautifulSoup

from venuediscovery.models import DiscoveredEvent, PreviewEvent, SourceFamily
from venuediscovery.normalize import iso_date, scrape_timestamp, time_from_iso
from venuediscovery.pool import run_bounded
from venuediscovery.scrapers import structured
from venuediscovery.scrapers.base import UNKNOWN_TITLE, BaseScraper, OnProgress

logger = logging.getLogger(__name__)

_EVENT_PATH = re.compile(r"/events/([^/?#]+)/?$")
_MAX_CHILD_SITEMAPS = 20


def slug_from_url(url: str) -> str:
    m = re.search(r"/events/([^/?#]+)", url)
    return m.group(1) if m else url


def parse_sitemap(xml: str) -> tuple[list[str], list[str]]:
    """Return (event_page_urls, child_sitemap_urls)."""
    soup = BeautifulSoup(xml, "xml")
    if soup.find("sitemapindex"):
        return [], [loc.get_text(strip=True) for loc in soup.find_all("loc")]
    urls = [loc.get_text(strip=True) for loc in soup.find_all("loc")]
    return [u for u in urls if _EVENT_PATH.search(u)], []


class WixScraper(BaseScraper):
    source_family = SourceFamily.WIX

    def _sitemap_urls(self, sitemap_url: str) -> list[str]:
        urls, children = parse_sitemap(self._fetch_html(sitemap_url))
        for child in children[:_MAX_CHILD_SITEMAPS]:
            child_xml = self._try_fetch_html(child)
            if child_xml:
                urls.extend(parse_sitemap(child_xml)[0])
        # De-duplicate, keeping sitemap order
        return list(dict.fromkeys(urls))

    def _fetch_event(self, url: str) -> Optional[tuple[str, dict]]:
        html = self._try_fetch_html(url)
        if not html:
            return None
        events = [e for e in structured.parse_jsonld_events(html) if iso_date(e.get("startDate"))]
        if not events:
            return None
        return url, events[0]

    def _fetch_all(self, urls: list[str], on_complete=None) -> list[tuple[str, dict]]:
        results = run_bounded(
            urls,
            self._fetch_event,
            limit=self.settings.detail_concurrency,
            on_complete=on_complete,
        )
        return [r for r in results if r is not None]

    def preview(self, venue_slug: str) -> list[PreviewEvent]:
        venue = self.venue(venue_slug)
        logger.info("[wix] Previewing events from %s via sitemap", venue.name)

        urls = self._sitemap_urls(venue.sitemap)
        logger.info("[wix] Found %d event URLs in sitemap", len(urls))
        pages = self._fetch_all(urls)
        logger.info("[wix] Fetched JSON-LD from %d pages", len(pages))

        today = date.today().isoformat()
        events = [
            PreviewEvent(
                id=slug_from_url(url),
                title=e.get("name") or UNKNOWN_TITLE,
                date=iso_date(e.get("startDate")),
                venue=structured.location_name(e) or venue.name,
            )
            for url, e in pages
            if iso_date(e.get("startDate")) >= today
        ]
        events.sort(key=lambda p: p.date)
        logger.info("[wix] %d upcoming events", len(events))
        return events

    def scrape(
        self,
        venue_slug: str,
        event_ids: list[str],
        on_progress: Optional[OnProgress] = None,
    ) -> list[DiscoveredEvent]:
        venue = self.venue(venue_slug)
        logger.info("[wix] Scraping %d events from %s", len(event_ids), venue.name)

        wanted = set(event_ids)
        urls = [u for u in self._sitemap_urls(venue.sitemap) if slug_from_url(u) in wanted]

        def report(done: int, url: str) -> None:
            self._notify(on_progress, done, len(urls), slug_from_url(url), "assembling")

        events: list[DiscoveredEvent] = []
        for url, e in self._fetch_all(urls, on_complete=report):
            title = e.get("name") or UNKNOWN_TITLE
            events.append(DiscoveredEvent(
                id=slug_from_url(url),
                title=title,
                date=iso_date(e.get("startDate")),
                venue=structured.location_name(e) or venue.name,
                venue_slug=venue_slug,
                artists=tuple(structured.artists(e, title)),
                scraped_at=scrape_timestamp(),
                image_url=structured.image_url(e.get("image")),
                show_time=time_from_iso(e.get("startDate")),
                ticket_url=structured.offer_url(e) or e.get("url") or None,
                price=structured.offer_price(e),
                is_sold_out=structured.is_sold_out(e),
                is_cancelled=structured.is_cancelled(e),
            ))

        logger.info("[wix] Scraped %d events", len(events))
        return events
