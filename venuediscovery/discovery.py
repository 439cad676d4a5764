import logging
from collections import Counter
from typing import Optional

import venuediscovery.config as cfg_module
from venuediscovery.config import DiscoverySettings
from venuediscovery.errors import ConfigurationError
from venuediscovery.models import BatchPreviewResult, DiscoveredEvent, PreviewEvent, VenueConfig
from venuediscovery.pool import run_bounded
from venuediscovery.scrapers import ScraperRegistry, build_registry
from venuediscovery.scrapers.base import BaseScraper, OnProgress

logger = logging.getLogger(__name__)


class Discovery:
    """Venue-level entry point: resolves a venue to its scraper and runs it."""

    def __init__(
        self,
        venues: dict[str, VenueConfig],
        registry: ScraperRegistry,
        settings: Optional[DiscoverySettings] = None,
    ):
        self.venues = venues
        self.registry = registry
        self.settings = settings or DiscoverySettings()

    @classmethod
    def from_config(cls, cfg: dict) -> "Discovery":
        venues = cfg_module.get_venues(cfg)
        settings = cfg_module.get_settings(cfg)
        return cls(venues, build_registry(venues, settings=settings), settings)

    def venue(self, venue_slug: str) -> VenueConfig:
        try:
            return self.venues[venue_slug]
        except KeyError:
            raise ConfigurationError(f"Unknown venue: {venue_slug}") from None

    def scraper_for(self, venue_slug: str) -> BaseScraper:
        venue = self.venue(venue_slug)
        scraper = self.registry.get(venue.source_family)
        if scraper is None:
            raise ConfigurationError(f"No scraper for source: {venue.source_family.value}")
        return scraper

    def preview(self, venue_slug: str) -> list[PreviewEvent]:
        return self.scraper_for(venue_slug).preview(venue_slug)

    def scrape(
        self,
        venue_slug: str,
        event_ids: list[str],
        on_progress: Optional[OnProgress] = None,
    ) -> list[DiscoveredEvent]:
        if not event_ids:
            return []
        return self.scraper_for(venue_slug).scrape(venue_slug, list(event_ids), on_progress)

    def preview_batch(
        self,
        venue_slugs: list[str],
        concurrency: Optional[int] = None,
    ) -> list[BatchPreviewResult]:
        """
        Preview several venues at once, one result per slug in input order.

        A venue that fails (unknown slug, unreachable page, scraper bug) gets
        its error recorded on its own result; the other venues are unaffected.
        """
        def preview_one(slug: str) -> BatchPreviewResult:
            try:
                logger.info("Previewing %s", slug)
                events = self.preview(slug)
            except Exception as exc:
                logger.error("Error previewing %s: %s", slug, exc)
                return BatchPreviewResult(venue_slug=slug, error=str(exc) or type(exc).__name__)
            logger.info("%s: %d events found", slug, len(events))
            return BatchPreviewResult(venue_slug=slug, events=events)

        results = run_bounded(
            venue_slugs,
            preview_one,
            limit=concurrency or self.settings.venue_concurrency,
        )
        return [
            r if r is not None else BatchPreviewResult(venue_slug=slug, error="Preview did not run")
            for slug, r in zip(venue_slugs, results)
        ]

    def cities(self) -> list[tuple[str, str, int]]:
        """(city, state, venue count) sorted by city."""
        counts = Counter((v.city, v.state) for v in self.venues.values())
        return sorted(((city, state, n) for (city, state), n in counts.items()), key=lambda c: c[0])
