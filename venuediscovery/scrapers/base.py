import logging
from abc import ABC, abstractmethod
from time import monotonic
from typing import Callable, Optional

import requests

from venuediscovery.config import DiscoverySettings
from venuediscovery.errors import ConfigurationError, SourceUnavailableError
from venuediscovery.models import (
    DiscoveredEvent,
    PreviewEvent,
    ScrapeProgress,
    SourceFamily,
    VenueConfig,
)
from venuediscovery.scrapers.browser import PageRenderer

logger = logging.getLogger(__name__)

OnProgress = Callable[[ScrapeProgress], None]

UNKNOWN_TITLE = "Unknown Event"

_CHUNK_SIZE = 64 * 1024


def make_session(user_agent: str) -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": user_agent})
    return session


class BaseScraper(ABC):
    # Subclasses must set this class attribute
    source_family: SourceFamily

    def __init__(
        self,
        venues: dict[str, VenueConfig],
        http: Optional[requests.Session] = None,
        renderer: Optional[PageRenderer] = None,
        settings: Optional[DiscoverySettings] = None,
    ):
        """
        Args:
            venues:   All configured venues; the scraper keeps the ones of its family.
            http:     Shared requests session (one is created when omitted).
            renderer: Headless browser used by script-rendered listings.
            settings: Concurrency limits and timeouts from [discovery].
        """
        self.settings = settings or DiscoverySettings()
        self.venues = {
            slug: v for slug, v in venues.items() if v.source_family == self.source_family
        }
        self.http = http or make_session(self.settings.user_agent)
        self.renderer = renderer or PageRenderer(
            page_timeout=self.settings.page_timeout,
            ready_timeout=self.settings.ready_timeout,
            headless=self.settings.headless,
        )

    def venue(self, venue_slug: str) -> VenueConfig:
        try:
            return self.venues[venue_slug]
        except KeyError:
            raise ConfigurationError(f"Unknown venue: {venue_slug}") from None

    @abstractmethod
    def preview(self, venue_slug: str) -> list[PreviewEvent]:
        """Cheap listing scan: id, title, date and venue for each upcoming event."""
        ...

    @abstractmethod
    def scrape(
        self,
        venue_slug: str,
        event_ids: list[str],
        on_progress: Optional[OnProgress] = None,
    ) -> list[DiscoveredEvent]:
        """Full records for the requested IDs that are still listed upstream."""
        ...

    # --- helpers shared by subclasses ---

    def _get_text(self, url: str, timeout: float) -> str:
        """
        GET `url` and return the decoded body.

        requests applies `timeout` to each socket read only. The body is
        streamed and the whole fetch must finish within `timeout` seconds,
        otherwise requests.Timeout is raised.
        """
        deadline = monotonic() + timeout
        with self.http.get(url, timeout=timeout, stream=True) as r:
            r.raise_for_status()
            chunks = []
            for chunk in r.iter_content(chunk_size=_CHUNK_SIZE):
                if monotonic() > deadline:
                    raise requests.Timeout(f"Reading {url} took longer than {timeout:g}s")
                chunks.append(chunk)
            return b"".join(chunks).decode(r.encoding or "utf-8", errors="replace")

    def _fetch_html(self, url: str) -> str:
        """GET a listing page; any failure means the venue is unavailable."""
        try:
            return self._get_text(url, self.settings.http_timeout)
        except requests.RequestException as exc:
            raise SourceUnavailableError(f"Failed to fetch {url}: {exc}", url=url) from exc

    def _try_fetch_html(self, url: str) -> Optional[str]:
        """GET a secondary page; failures are logged and yield None."""
        try:
            return self._get_text(url, self.settings.detail_timeout)
        except requests.RequestException as exc:
            logger.debug("Skipping %s: %s", url, exc)
            return None

    @staticmethod
    def _notify(on_progress: Optional[OnProgress], current: int, total: int, label: str, phase: str) -> None:
        if on_progress is None:
            return
        try:
            on_progress(ScrapeProgress(current=current, total=total, item_label=label[:60], phase=phase))
        except Exception:
            logger.exception("Progress callback failed")
