"""
TicketWeb calendar widget scraper (Stateside Presents venues).

Calendar page, e.g. https://www.valleybarphx.com/calendar/
  - The widget script defines `window.all_events` once it has loaded:
      [{id, title, start, venue, imageUrl, doors, displayTime}, ...]
    title is HTML-escaped and usually upper case; venue and imageUrl are HTML
    fragments; start is "YYYY-MM-DD" (sometimes with a time).
  - One hidden dialog per event, div#tw-event-dialog-<id>, holding
      .tw-name a[href]           event detail page on the venue site
      a[href*="ticketweb"]       ticket purchase link

Detail pages list every act under `.artist-list .row h4 a` and carry the
long description. Detail pages are fetched concurrently over HTTP; one that
fails or times out leaves the event with its title as the only artist.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from venuediscovery.errors import PartialExtractionFailure
from venuediscovery.models import DiscoveredEvent, PreviewEvent, SourceFamily
from venuediscovery.normalize import (
    artists_from_title,
    clean_artist_name,
    decode_entities,
    format_clock,
    iso_date,
    scrape_timestamp,
    strip_html,
    strip_status_markers,
    strip_tour_suffix,
    supporting_acts_from_text,
    title_case,
)
from venuediscovery.pool import run_bounded
from venuediscovery.scrapers.base import UNKNOWN_TITLE, BaseScraper, OnProgress

logger = logging.getLogger(__name__)

_READY = "() => typeof window.all_events !== 'undefined'"
_READ_EVENTS = """() => (window.all_events || []).map(e => ({
    id: e.id, title: e.title, start: e.start, venue: e.venue,
    imageUrl: e.imageUrl, doors: e.doors, displayTime: e.displayTime,
}))"""

_DIALOG_PREFIX = "tw-event-dialog-"
_DESCRIPTION_SELECTORS = (".tw-description", ".event-description", ".tw-event-description", ".entry-content")


@dataclass
class _Detail:
    artists: list[str]
    description: Optional[str]


def parse_detail_page(html: str) -> _Detail:
    soup = BeautifulSoup(html, "lxml")
    artists = [a.get_text(strip=True) for a in soup.select(".artist-list .row h4 a")]
    description = None
    for selector in _DESCRIPTION_SELECTORS:
        el = soup.select_one(selector)
        if el:
            description = el.get_text(" ", strip=True) or None
            break
    return _Detail(artists=[a for a in artists if a], description=description)


def _display_title(raw_title) -> tuple[str, bool, bool]:
    title, sold_out, cancelled = strip_status_markers(decode_entities(str(raw_title or "")))
    return title_case(title) or UNKNOWN_TITLE, sold_out, cancelled


def _image_src(fragment) -> Optional[str]:
    if not fragment:
        return None
    fragment = str(fragment)
    if fragment.startswith("http"):
        return fragment
    m = re.search(r"src=[\"']([^\"']+)", fragment)
    return m.group(1) if m else None


def _dialog_links(html: str, base_url: str) -> tuple[dict[str, str], dict[str, str]]:
    """Return ({id: ticket_url}, {id: detail_url}) from the hidden event dialogs."""
    soup = BeautifulSoup(html, "lxml")
    tickets: dict[str, str] = {}
    details: dict[str, str] = {}
    for dialog in soup.select(f'[id^="{_DIALOG_PREFIX}"]'):
        event_id = dialog["id"][len(_DIALOG_PREFIX):]
        ticket = dialog.select_one('a[href*="ticketweb"]')
        if ticket and ticket.get("href"):
            tickets[event_id] = urljoin(base_url, ticket["href"])
        name = dialog.select_one(".tw-name a")
        if name and name.get("href"):
            details[event_id] = urljoin(base_url, name["href"])
    return tickets, details


class TicketWebScraper(BaseScraper):
    source_family = SourceFamily.TICKETWEB

    def _load_calendar(self, url: str):
        with self.renderer.session() as browser:
            return browser.load(url, ready_function=_READY, evaluate=_READ_EVENTS)

    def preview(self, venue_slug: str) -> list[PreviewEvent]:
        venue = self.venue(venue_slug)
        logger.info("[ticketweb] Previewing events from %s", venue.name)

        page = self._load_calendar(venue.url)
        events: list[PreviewEvent] = []
        for raw in page.data or []:
            event_date = iso_date(raw.get("start"))
            if raw.get("id") is None or not event_date:
                continue
            title, _, _ = _display_title(raw.get("title"))
            events.append(PreviewEvent(
                id=str(raw["id"]),
                title=title,
                date=event_date,
                venue=strip_html(raw.get("venue")) or venue.name,
            ))

        logger.info("[ticketweb] Found %d events", len(events))
        return events

    def scrape(
        self,
        venue_slug: str,
        event_ids: list[str],
        on_progress: Optional[OnProgress] = None,
    ) -> list[DiscoveredEvent]:
        venue = self.venue(venue_slug)
        logger.info("[ticketweb] Scraping %d events from %s", len(event_ids), venue.name)

        page = self._load_calendar(venue.url)
        wanted = set(event_ids)
        selected = [
            raw for raw in page.data or []
            if raw.get("id") is not None and str(raw["id"]) in wanted and iso_date(raw.get("start"))
        ]
        if not selected:
            return []

        tickets, detail_urls = _dialog_links(page.html, venue.url)
        failures: list[PartialExtractionFailure] = []

        def fetch_detail(raw: dict) -> Optional[_Detail]:
            url = detail_urls.get(str(raw["id"]))
            if not url:
                return None
            return parse_detail_page(self._get_text(url, self.settings.detail_timeout))

        def record_failure(raw: dict, exc: Exception) -> None:
            failure = PartialExtractionFailure(str(raw["id"]), exc)
            failures.append(failure)
            logger.warning("[ticketweb] Detail page failed for event %s: %s", raw["id"], exc)

        def report(done: int, raw: dict) -> None:
            label = decode_entities(str(raw.get("title") or ""))
            self._notify(on_progress, done, len(selected), label, "fetching")

        details = run_bounded(
            selected,
            fetch_detail,
            limit=self.settings.detail_concurrency,
            on_error=record_failure,
            on_complete=report,
        )

        events = [
            self._build_event(raw, detail, venue_slug, venue.name, tickets)
            for raw, detail in zip(selected, details)
        ]
        logger.info("[ticketweb] Scraped %d events (%d detail pages failed)", len(events), len(failures))
        return events

    def _build_event(
        self,
        raw: dict,
        detail: Optional[_Detail],
        venue_slug: str,
        venue_name: str,
        tickets: dict[str, str],
    ) -> DiscoveredEvent:
        event_id = str(raw["id"])
        title, sold_out, cancelled = _display_title(raw.get("title"))

        artists: list[str] = []
        if detail is not None:
            artists = [clean_artist_name(title_case(name, force=True)) for name in detail.artists]
            artists = [a for a in artists if a]
            if not artists:
                # No structured list: fall back to "with X, Y" in the title and description
                artists = artists_from_title(title)
                seen = {a.lower() for a in artists}
                for name in supporting_acts_from_text(detail.description):
                    if name.lower() not in seen:
                        artists.append(name)
                        seen.add(name.lower())
        if not artists:
            artists = [clean_artist_name(strip_tour_suffix(title)) or title]

        return DiscoveredEvent(
            id=event_id,
            title=title,
            date=iso_date(raw.get("start")),
            venue=strip_html(raw.get("venue")) or venue_name,
            venue_slug=venue_slug,
            artists=tuple(artists),
            scraped_at=scrape_timestamp(),
            image_url=_image_src(raw.get("imageUrl")),
            doors_time=format_clock(raw.get("doors")),
            show_time=format_clock(raw.get("displayTime")),
            ticket_url=tickets.get(event_id),
            is_sold_out=sold_out,
            is_cancelled=cancelled,
            description=detail.description if detail else None,
        )
