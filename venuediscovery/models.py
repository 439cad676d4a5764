import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from urllib.parse import urlparse


class SourceFamily(str, Enum):
    TICKETWEB = "ticketweb"       # calendar widget with window.all_events
    JSONLD = "jsonld"             # schema.org events embedded in the listing page
    WIX = "wix"                   # sitemap of detail pages, each with JSON-LD
    SEETICKETS = "seetickets"     # SeeTickets list widget
    EMPTYBOTTLE = "emptybottle"   # TicketWeb "eb-item" widget


@dataclass(frozen=True)
class VenueConfig:
    slug: str          # Unique identifier, matches the [venues.<slug>] section in config.toml
    name: str
    source_family: SourceFamily
    url: str
    city: str = ""
    state: str = ""
    sitemap_url: Optional[str] = None

    @property
    def base_url(self) -> str:
        parsed = urlparse(self.url)
        return f"{parsed.scheme}://{parsed.netloc}"

    @property
    def sitemap(self) -> str:
        return self.sitemap_url or f"{self.base_url}/event-pages-sitemap.xml"


def _check_iso_date(value: str) -> None:
    if not re.fullmatch(r"\d{4}-\d{2}-\d{2}", value or ""):
        raise ValueError(f"date must be YYYY-MM-DD, got {value!r}")
    date.fromisoformat(value)


@dataclass(frozen=True)
class PreviewEvent:
    id: str
    title: str
    date: str          # YYYY-MM-DD
    venue: str

    def __post_init__(self):
        _check_iso_date(self.date)

    def to_payload(self) -> dict:
        return {"id": self.id, "title": self.title, "date": self.date, "venue": self.venue}


@dataclass(frozen=True)
class DiscoveredEvent:
    id: str            # Same value the preview phase returned for this event
    title: str
    date: str          # YYYY-MM-DD
    venue: str
    venue_slug: str
    artists: tuple[str, ...]   # Headliner first
    scraped_at: datetime
    image_url: Optional[str] = None
    doors_time: Optional[str] = None   # "7:00 PM"
    show_time: Optional[str] = None
    ticket_url: Optional[str] = None
    price: Optional[str] = None        # e.g. "$25", "Free"
    age_restriction: Optional[str] = None
    is_sold_out: bool = False
    is_cancelled: bool = False
    description: Optional[str] = None

    def __post_init__(self):
        _check_iso_date(self.date)
        if isinstance(self.artists, list):
            object.__setattr__(self, "artists", tuple(self.artists))
        if not self.artists or not all(self.artists):
            raise ValueError(f"event {self.id!r} needs at least one artist name")

    @property
    def headliner(self) -> str:
        return self.artists[0]

    def to_payload(self) -> dict:
        """Serialise to the JSON shape the import backend accepts."""
        payload: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "date": self.date,
            "venue": self.venue,
            "venueSlug": self.venue_slug,
            "artists": list(self.artists),
            "scrapedAt": self.scraped_at.isoformat(timespec="microseconds").replace("+00:00", "Z"),
        }
        optional = {
            "imageUrl": self.image_url,
            "doorsTime": self.doors_time,
            "showTime": self.show_time,
            "ticketUrl": self.ticket_url,
            "price": self.price,
            "ageRestriction": self.age_restriction,
            "description": self.description,
        }
        payload.update({k: v for k, v in optional.items() if v})
        if self.is_sold_out:
            payload["isSoldOut"] = True
        if self.is_cancelled:
            payload["isCancelled"] = True
        return payload

    @classmethod
    def from_payload(cls, data: dict) -> "DiscoveredEvent":
        scraped_raw = data.get("scrapedAt") or ""
        scraped_at = datetime.fromisoformat(scraped_raw.replace("Z", "+00:00"))
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            date=data["date"],
            venue=data.get("venue", ""),
            venue_slug=data.get("venueSlug", ""),
            artists=tuple(data.get("artists") or ()),
            scraped_at=scraped_at,
            image_url=data.get("imageUrl"),
            doors_time=data.get("doorsTime"),
            show_time=data.get("showTime"),
            ticket_url=data.get("ticketUrl"),
            price=data.get("price"),
            age_restriction=data.get("ageRestriction"),
            is_sold_out=bool(data.get("isSoldOut")),
            is_cancelled=bool(data.get("isCancelled")),
            description=data.get("description"),
        )


@dataclass
class BatchPreviewResult:
    venue_slug: str
    events: list[PreviewEvent] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_payload(self) -> dict:
        payload: dict[str, Any] = {
            "venueSlug": self.venue_slug,
            "events": [e.to_payload() for e in self.events],
        }
        if self.error:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True)
class ScrapeProgress:
    current: int
    total: int
    item_label: str
    phase: str         # "fetching" | "processing" | "assembling"


@dataclass
class ImportResult:
    total: int = 0
    imported: int = 0
    duplicates: int = 0
    rejected: int = 0
    pending_review: int = 0
    updated: int = 0
    errors: int = 0
    messages: list[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: dict) -> "ImportResult":
        return cls(
            total=int(data.get("total", 0)),
            imported=int(data.get("imported", 0)),
            duplicates=int(data.get("duplicates", 0)),
            rejected=int(data.get("rejected", 0)),
            pending_review=int(data.get("pending_review", 0)),
            updated=int(data.get("updated", 0)),
            errors=int(data.get("errors", 0)),
            messages=list(data.get("messages") or []),
        )


def _price_number(price: Optional[str]) -> Optional[float]:
    if not price:
        return None
    if price.strip().lower() == "free":
        return 0.0
    m = re.search(r"(\d+(?:\.\d+)?)", price.replace(",", ""))
    return float(m.group(1)) if m else None


@dataclass
class ImportStatus:
    exists: bool
    show_id: Optional[int] = None
    status: Optional[str] = None       # pending | approved | rejected
    current: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: dict) -> "ImportStatus":
        return cls(
            exists=bool(data.get("exists")),
            show_id=data.get("showId"),
            status=data.get("status"),
            current=dict(data.get("currentData") or {}),
        )

    def changed_fields(self, event: DiscoveredEvent) -> list[str]:
        """Names of backend fields whose stored value differs from `event`."""
        if not self.exists or not self.current:
            return []
        cur = self.current
        changed: list[str] = []

        new_price = _price_number(event.price)
        if new_price is not None and cur.get("price") is not None:
            if abs(float(cur["price"]) - new_price) > 0.001:
                changed.append("price")
        elif new_price is not None:
            changed.append("price")

        if event.age_restriction and event.age_restriction != cur.get("ageRequirement"):
            changed.append("ageRequirement")
        if event.description and event.description != cur.get("description"):
            changed.append("description")

        stored_date = (cur.get("eventDate") or "")[:10]
        if stored_date and stored_date != event.date:
            changed.append("eventDate")

        if event.is_sold_out != bool(cur.get("isSoldOut")):
            changed.append("isSoldOut")
        if event.is_cancelled != bool(cur.get("isCancelled")):
            changed.append("isCancelled")

        stored_artists = [a.lower() for a in cur.get("artists") or []]
        if stored_artists and stored_artists != [a.lower() for a in event.artists]:
            changed.append("artists")
        return changed
