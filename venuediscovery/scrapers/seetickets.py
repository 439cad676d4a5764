"""
SeeTickets list widget scraper, rendered with Playwright (headless Chromium).

Listing page, e.g. https://therebellounge.com/events/
  - Event containers: .seetickets-list-event-container (rendered by the widget)
  - Title + ticket link: p.title a[href]
    (https://wl.seetickets.us/event/<slug>/<numeric id>?afflky=...)
  - Headliner:   p.headliners  (already in presentable case; co-headliners comma separated)
  - Openers:     p.supporting-talent  ("with X, Y and Z")
  - Date:        p.date  ("Thu Feb 19", no year)
  - Times:       p.doortime-showtime  ("Doors at 7:00 PM | Show at 8:00 PM")
  - Ages/price:  span.ages, span.price
  - Sold out:    "Sold Out" text in .buy-and-share-block
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from venuediscovery.models import DiscoveredEvent, PreviewEvent, SourceFamily
from venuediscovery.normalize import (
    clean_artist_name,
    format_clock,
    normalize_age_restriction,
    parse_month_day,
    scrape_timestamp,
    split_artist_list,
    strip_status_markers,
    trailing_numeric_id,
)
from venuediscovery.scrapers.base import UNKNOWN_TITLE, BaseScraper, OnProgress

logger = logging.getLogger(__name__)

_CONTAINER = ".seetickets-list-event-container"
_DOORS = re.compile(r"Doors\s+at\s+(\d{1,2}:\d{2}\s*[AP]M)", re.IGNORECASE)
_SHOW = re.compile(r"Show\s+at\s+(\d{1,2}:\d{2}\s*[AP]M)", re.IGNORECASE)


@dataclass
class _Listing:
    title: str
    headliner: str
    ticket_url: str
    date_text: str
    supporting: str = ""
    time_text: str = ""
    ages: str = ""
    price: str = ""
    image_url: str = ""
    sold_out: bool = False


def _text(container, selector: str) -> str:
    el = container.select_one(selector)
    return el.get_text(" ", strip=True) if el else ""


def parse_listing(html: str, base_url: str) -> list[_Listing]:
    soup = BeautifulSoup(html, "lxml")
    listings: list[_Listing] = []
    for container in soup.select(_CONTAINER):
        link = container.select_one("p.title a[href]")
        img = container.select_one("img[src]")
        listings.append(_Listing(
            title=link.get_text(" ", strip=True) if link else "",
            headliner=_text(container, "p.headliners"),
            ticket_url=urljoin(base_url, link["href"]) if link else "",
            date_text=_text(container, "p.date"),
            supporting=_text(container, "p.supporting-talent"),
            time_text=_text(container, "p.doortime-showtime"),
            ages=_text(container, "span.ages"),
            price=_text(container, "span.price"),
            image_url=urljoin(base_url, img["src"]) if img else "",
            sold_out=bool(re.search(r"sold\s*out", _text(container, ".buy-and-share-block"), re.IGNORECASE)),
        ))
    return listings


def parse_artists(headliner: str, supporting: str = "") -> list[str]:
    """Headliner(s) first, then openers from the "with ..." line."""
    artists = [clean_artist_name(h) for h in re.split(r"\s*,\s*", headliner or "")]
    artists = [a for a in artists if a]
    if supporting:
        artists.extend(split_artist_list(supporting))
    return artists


def _format_price(raw: str) -> Optional[str]:
    raw = raw.strip()
    if not raw:
        return None
    return raw if raw.startswith("$") else f"${raw}"


class SeeTicketsScraper(BaseScraper):
    source_family = SourceFamily.SEETICKETS

    def _load_listing(self, url: str) -> list[_Listing]:
        with self.renderer.session() as browser:
            page = browser.load(url, wait_until="networkidle", ready_selector=_CONTAINER)
        return [item for item in parse_listing(page.html, url) if item.ticket_url]

    def preview(self, venue_slug: str) -> list[PreviewEvent]:
        venue = self.venue(venue_slug)
        logger.info("[seetickets] Previewing events from %s", venue.name)

        events: list[PreviewEvent] = []
        for item in self._load_listing(venue.url):
            event_date = parse_month_day(item.date_text)
            if not event_date:
                continue
            title, _, _ = strip_status_markers(item.headliner or item.title)
            events.append(PreviewEvent(
                id=trailing_numeric_id(item.ticket_url),
                title=title or UNKNOWN_TITLE,
                date=event_date,
                venue=venue.name,
            ))

        logger.info("[seetickets] Found %d events", len(events))
        return events

    def scrape(
        self,
        venue_slug: str,
        event_ids: list[str],
        on_progress: Optional[OnProgress] = None,
    ) -> list[DiscoveredEvent]:
        venue = self.venue(venue_slug)
        logger.info("[seetickets] Scraping %d events from %s", len(event_ids), venue.name)

        wanted = set(event_ids)
        selected = [
            item for item in self._load_listing(venue.url)
            if trailing_numeric_id(item.ticket_url) in wanted
        ]

        events: list[DiscoveredEvent] = []
        for count, item in enumerate(selected, start=1):
            event_date = parse_month_day(item.date_text)
            if event_date:
                events.append(self._build_event(item, event_date, venue_slug, venue.name))
            self._notify(on_progress, count, len(selected), item.headliner or item.title, "processing")

        logger.info("[seetickets] Scraped %d events", len(events))
        return events

    def _build_event(self, item: _Listing, event_date: str, venue_slug: str, venue_name: str) -> DiscoveredEvent:
        title, marked_sold_out, cancelled = strip_status_markers(item.headliner or item.title)
        title = title or UNKNOWN_TITLE
        artists = parse_artists(title, item.supporting)
        doors = _DOORS.search(item.time_text)
        show = _SHOW.search(item.time_text)

        return DiscoveredEvent(
            id=trailing_numeric_id(item.ticket_url),
            title=title,
            date=event_date,
            venue=venue_name,
            venue_slug=venue_slug,
            artists=tuple(artists or [title]),
            scraped_at=scrape_timestamp(),
            image_url=item.image_url or None,
            doors_time=format_clock(doors.group(1)) if doors else None,
            show_time=format_clock(show.group(1)) if show else None,
            ticket_url=item.ticket_url,
            price=_format_price(item.price),
            age_restriction=normalize_age_restriction(item.ages),
            is_sold_out=item.sold_out or marked_sold_out,
            is_cancelled=cancelled,
        )
