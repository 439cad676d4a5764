"""
Empty Bottle scraper, rendered with Playwright (headless Chromium).

Listing page: https://www.emptybottle.com/
  - Event items: .eb-item (TicketWeb widget, populated after page load)
  - Title:       .title   (may carry "*SOLD OUT*" / "*CANCELLED*" and
                           "FREE MONDAY w/ ..." series prefixes)
  - Date:        .date    ("Thu February 19", no year)
  - Start time:  .start-time ("9:00PM"); the widget shows no doors time
  - Acts:        .performing li  (first item often polluted, see
                 normalize.clean_performing_list)
  - Ages:        .restrictions
  - Buy link:    a.buy-button[href] ending in the numeric TicketWeb event ID
  - Image:       .item-image-inner style="background-image: url(...)"
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from venuediscovery.models import DiscoveredEvent, PreviewEvent, SourceFamily
from venuediscovery.normalize import (
    clean_performing_list,
    format_clock,
    normalize_age_restriction,
    parse_month_day,
    scrape_timestamp,
    strip_series_prefix,
    strip_status_markers,
    trailing_numeric_id,
)
from venuediscovery.scrapers.base import UNKNOWN_TITLE, BaseScraper, OnProgress

logger = logging.getLogger(__name__)

_ITEM = ".eb-item"
_BACKGROUND_URL = re.compile(r"url\(([^)]+)\)")


@dataclass
class _Item:
    title: str
    date_text: str
    buy_link: str
    start_time: str = ""
    performing: list[str] = field(default_factory=list)
    restrictions: str = ""
    image_url: str = ""


@dataclass
class _Title:
    text: str
    sold_out: bool
    cancelled: bool
    free: bool


def clean_title(raw: str) -> _Title:
    """Strip status markers and series prefixes for display."""
    text, sold_out, cancelled = strip_status_markers(raw)
    text, free = strip_series_prefix(text)
    return _Title(text=text, sold_out=sold_out, cancelled=cancelled, free=free)


def _text(item, selector: str) -> str:
    el = item.select_one(selector)
    return el.get_text(" ", strip=True) if el else ""


def parse_items(html: str, base_url: str) -> list[_Item]:
    soup = BeautifulSoup(html, "lxml")
    items: list[_Item] = []
    for el in soup.select(_ITEM):
        buy = el.select_one("a.buy-button[href]")
        image_div = el.select_one(".item-image-inner")
        image_match = _BACKGROUND_URL.search(image_div.get("style", "")) if image_div else None
        items.append(_Item(
            title=_text(el, ".title"),
            date_text=_text(el, ".date"),
            buy_link=urljoin(base_url, buy["href"]) if buy else "",
            start_time=_text(el, ".start-time"),
            performing=[li.get_text(" ", strip=True) for li in el.select(".performing li")],
            restrictions=_text(el, ".restrictions"),
            image_url=image_match.group(1).strip("'\" ") if image_match else "",
        ))
    return items


class EmptyBottleScraper(BaseScraper):
    source_family = SourceFamily.EMPTYBOTTLE

    def _load_items(self, url: str) -> list[_Item]:
        with self.renderer.session() as browser:
            page = browser.load(url, ready_selector=_ITEM)
        return [item for item in parse_items(page.html, url) if item.buy_link]

    def preview(self, venue_slug: str) -> list[PreviewEvent]:
        venue = self.venue(venue_slug)
        logger.info("[emptybottle] Previewing events from %s", venue.name)

        events: list[PreviewEvent] = []
        for item in self._load_items(venue.url):
            event_date = parse_month_day(item.date_text)
            if not event_date:
                continue
            events.append(PreviewEvent(
                id=trailing_numeric_id(item.buy_link),
                title=clean_title(item.title).text or UNKNOWN_TITLE,
                date=event_date,
                venue=venue.name,
            ))

        logger.info("[emptybottle] Found %d events", len(events))
        return events

    def scrape(
        self,
        venue_slug: str,
        event_ids: list[str],
        on_progress: Optional[OnProgress] = None,
    ) -> list[DiscoveredEvent]:
        venue = self.venue(venue_slug)
        logger.info("[emptybottle] Scraping %d events from %s", len(event_ids), venue.name)

        wanted = set(event_ids)
        selected = [
            item for item in self._load_items(venue.url)
            if trailing_numeric_id(item.buy_link) in wanted
        ]

        events: list[DiscoveredEvent] = []
        for count, item in enumerate(selected, start=1):
            event_date = parse_month_day(item.date_text)
            if event_date:
                events.append(self._build_event(item, event_date, venue_slug, venue.name))
            self._notify(on_progress, count, len(selected), item.title, "processing")

        logger.info("[emptybottle] Scraped %d events", len(events))
        return events

    def _build_event(self, item: _Item, event_date: str, venue_slug: str, venue_name: str) -> DiscoveredEvent:
        title = clean_title(item.title)
        artists = clean_performing_list(item.performing)
        # Fall back to the first act when the title was nothing but a series prefix
        display_title = title.text or (artists[0] if artists else "") or item.title or UNKNOWN_TITLE

        return DiscoveredEvent(
            id=trailing_numeric_id(item.buy_link),
            title=display_title,
            date=event_date,
            venue=venue_name,
            venue_slug=venue_slug,
            artists=tuple(artists or [display_title]),
            scraped_at=scrape_timestamp(),
            image_url=item.image_url or None,
            show_time=format_clock(item.start_time),
            ticket_url=item.buy_link,
            price="Free" if title.free else None,
            age_restriction=normalize_age_restriction(item.restrictions),
            is_sold_out=title.sold_out,
            is_cancelled=title.cancelled,
        )
