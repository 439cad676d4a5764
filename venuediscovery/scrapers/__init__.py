"""
Scraper registry.

One scraper class per source family. To support a new family of venue pages:
1. Add the family to models.SourceFamily
2. Implement a BaseScraper subclass with source_family set
3. Add it to SCRAPER_TYPES below

Venues only need a [venues.<slug>] section in config.toml naming their source.
"""

from typing import Optional

import requests

from venuediscovery.config import DiscoverySettings
from venuediscovery.models import SourceFamily, VenueConfig
from venuediscovery.scrapers.base import BaseScraper, make_session
from venuediscovery.scrapers.browser import PageRenderer
from venuediscovery.scrapers.emptybottle import EmptyBottleScraper
from venuediscovery.scrapers.jsonld import JsonLdScraper
from venuediscovery.scrapers.seetickets import SeeTicketsScraper
from venuediscovery.scrapers.ticketweb import TicketWebScraper
from venuediscovery.scrapers.wix import WixScraper

SCRAPER_TYPES: dict[SourceFamily, type[BaseScraper]] = {
    SourceFamily.TICKETWEB: TicketWebScraper,
    SourceFamily.JSONLD: JsonLdScraper,
    SourceFamily.WIX: WixScraper,
    SourceFamily.SEETICKETS: SeeTicketsScraper,
    SourceFamily.EMPTYBOTTLE: EmptyBottleScraper,
}


class ScraperRegistry:
    """Read-only map from source family to a ready scraper instance."""

    def __init__(self, scrapers: dict[SourceFamily, BaseScraper]):
        self._scrapers = dict(scrapers)

    def get(self, source_family) -> Optional[BaseScraper]:
        try:
            family = SourceFamily(source_family)
        except ValueError:
            return None
        return self._scrapers.get(family)

    def families(self) -> list[SourceFamily]:
        return list(self._scrapers)

    def __contains__(self, source_family) -> bool:
        return self.get(source_family) is not None


def build_registry(
    venues: dict[str, VenueConfig],
    http: Optional[requests.Session] = None,
    renderer: Optional[PageRenderer] = None,
    settings: Optional[DiscoverySettings] = None,
) -> ScraperRegistry:
    settings = settings or DiscoverySettings()
    http = http or make_session(settings.user_agent)
    renderer = renderer or PageRenderer(
        page_timeout=settings.page_timeout,
        ready_timeout=settings.ready_timeout,
        headless=settings.headless,
    )
    return ScraperRegistry({
        family: cls(venues, http=http, renderer=renderer, settings=settings)
        for family, cls in SCRAPER_TYPES.items()
    })


__all__ = ["SCRAPER_TYPES", "BaseScraper", "ScraperRegistry", "build_registry"]
