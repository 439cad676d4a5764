"""
schema.org Event extraction from <script type="application/ld+json"> blocks.

Shared by the listing-page (jsonld) and sitemap (wix) scrapers. Blocks may
hold a single object, an array, or an "@graph" container; malformed blocks
are skipped.
"""

import json
from typing import Iterator, Optional

from bs4 import BeautifulSoup

from venuediscovery.normalize import clean_artist_name, format_offer_price, strip_tour_suffix

EVENT_TYPES = frozenset({"Event", "MusicEvent"})


def _iter_items(data) -> Iterator[dict]:
    if isinstance(data, list):
        for item in data:
            yield from _iter_items(item)
    elif isinstance(data, dict):
        if isinstance(data.get("@graph"), list):
            yield from _iter_items(data["@graph"])
        else:
            yield data


def _has_type(item: dict, types: frozenset) -> bool:
    t = item.get("@type")
    if isinstance(t, list):
        return any(x in types for x in t)
    return t in types


def parse_jsonld_events(html: str, types: frozenset = EVENT_TYPES) -> list[dict]:
    soup = BeautifulSoup(html, "lxml")
    events: list[dict] = []
    for script in soup.find_all("script", type="application/ld+json"):
        try:
            data = json.loads(script.string or script.get_text() or "")
        except (json.JSONDecodeError, TypeError):
            continue
        events.extend(item for item in _iter_items(data) if _has_type(item, types))
    return events


def _offers(event: dict) -> list[dict]:
    offers = event.get("offers")
    if isinstance(offers, dict):
        return [offers]
    if isinstance(offers, list):
        return [o for o in offers if isinstance(o, dict)]
    return []


def offer_url(event: dict) -> Optional[str]:
    offers = _offers(event)
    if not offers:
        return None
    return offers[0].get("url") or None


def offer_price(event: dict) -> Optional[str]:
    offers = _offers(event)
    if not offers:
        return None
    first = offers[0]
    return format_offer_price(first.get("price", first.get("lowPrice")))


def is_sold_out(event: dict) -> bool:
    return any("SoldOut" in str(o.get("availability", "")) for o in _offers(event))


def is_cancelled(event: dict) -> bool:
    return "EventCancelled" in str(event.get("eventStatus", ""))


def image_url(image) -> Optional[str]:
    """Handles a URL string, an ImageObject with .url, or a list of either."""
    if not image:
        return None
    if isinstance(image, str):
        return image
    if isinstance(image, list):
        for item in image:
            url = image_url(item)
            if url:
                return url
        return None
    if isinstance(image, dict):
        return image.get("url") or None
    return None


def location_name(event: dict) -> Optional[str]:
    location = event.get("location")
    if isinstance(location, list):
        location = location[0] if location else None
    if isinstance(location, dict):
        return location.get("name") or None
    return None


def artists(event: dict, title: str) -> list[str]:
    """Performer names, else the title minus any tour suffix."""
    performers = event.get("performer") or []
    if not isinstance(performers, list):
        performers = [performers]
    names = []
    for p in performers:
        name = p.get("name") if isinstance(p, dict) else p
        if isinstance(name, str) and name.strip():
            names.append(clean_artist_name(name))
    names = [n for n in names if n]
    if names:
        return names
    cleaned = clean_artist_name(strip_tour_suffix(title))
    return [cleaned or title]
