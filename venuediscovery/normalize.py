"""
Text and value normalization shared by every scraper.

Mostly pure functions. Each source family feeds them differently shaped strings;
when a venue changes its markup, add a regression case to test_normalize.py.
"""

import html
import re
import threading
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from bs4 import BeautifulSoup
from dateutil import parser as dateparser

# --- Dates and times ---

_WEEKDAY_PREFIX = re.compile(r"^(?:mon|tue|wed|thu|fri|sat|sun)[a-z]*\.?,?\s*", re.IGNORECASE)
_ORDINAL = re.compile(r"(\d)(?:st|nd|rd|th)\b", re.IGNORECASE)
_EXPLICIT_YEAR = re.compile(r"\b(19|20)\d{2}\b")
_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


def _two_months_back(today: date) -> date:
    month = today.month - 2
    year = today.year
    if month < 1:
        month += 12
        year -= 1
    return date(year, month, 1)


def _clean_date_text(text: str) -> str:
    cleaned = _WEEKDAY_PREFIX.sub("", text.strip())
    cleaned = _ORDINAL.sub(r"\1", cleaned)
    # "21Feb" / "Feb21" -> "21 Feb" / "Feb 21"
    cleaned = re.sub(r"(\d)([A-Za-z])", r"\1 \2", cleaned)
    cleaned = re.sub(r"([A-Za-z])(\d)", r"\1 \2", cleaned)
    return re.sub(r"\s+", " ", cleaned).strip(" ,")


def parse_month_day(text: str, today: Optional[date] = None) -> Optional[str]:
    """
    Resolve listing text like "Thu Feb 19" or "Sat 21 Feb" to YYYY-MM-DD.

    Listings rarely print the year. The current year is tried first and is
    rejected when it lands before the first day of the month two months ago
    (a January listing showing a "Dec 30" show means next December, a listing
    still showing last week's show does not). Returns None if unparseable.
    """
    if not text:
        return None
    today = today or date.today()
    cleaned = _clean_date_text(text)
    if not cleaned:
        return None

    if _EXPLICIT_YEAR.search(cleaned):
        try:
            return dateparser.parse(cleaned).date().isoformat()
        except (ValueError, OverflowError):
            return None

    cutoff = _two_months_back(today)
    for year in (today.year, today.year + 1):
        try:
            parsed = dateparser.parse(f"{cleaned} {year}", default=datetime(year, 1, 1))
        except (ValueError, OverflowError):
            # e.g. "Feb 29" outside a leap year
            continue
        candidate = parsed.date()
        if year == today.year and candidate < cutoff:
            continue
        return candidate.isoformat()
    return None


def iso_date(value) -> Optional[str]:
    """YYYY-MM-DD prefix of an ISO 8601 date or timestamp, or None."""
    if not value:
        return None
    prefix = str(value).strip()[:10]
    if not _ISO_DATE.fullmatch(prefix):
        return None
    try:
        date.fromisoformat(prefix)
    except ValueError:
        return None
    return prefix


def _clock(hour: int, minute: int) -> str:
    meridiem = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}:{minute:02d} {meridiem}"


_CLOCK_12H = re.compile(r"(?<!\d)(\d{1,2})(?::(\d{2}))?\s*([ap])\.?\s*m\b\.?", re.IGNORECASE)
_CLOCK_24H = re.compile(r"(?<!\d)(\d{1,2}):(\d{2})(?!\d)")


def format_clock(text: Optional[str]) -> Optional[str]:
    """Normalize "9:00PM", "9pm", "9:00 p.m." or "21:00" to "9:00 PM"."""
    if not text:
        return None
    text = str(text)
    m = _CLOCK_12H.search(text)
    if m:
        hour = int(m.group(1))
        minute = int(m.group(2) or 0)
        if not 1 <= hour <= 12 or minute > 59:
            return None
        return f"{hour}:{minute:02d} {m.group(3).upper()}M"
    m = _CLOCK_24H.search(text)
    if m:
        hour, minute = int(m.group(1)), int(m.group(2))
        if hour > 23 or minute > 59:
            return None
        return _clock(hour, minute)
    return None


_ISO_TIME = re.compile(r"(?:T|^)(\d{2}):(\d{2})")


def time_from_iso(value: Optional[str]) -> Optional[str]:
    """Clock time of an ISO timestamp, read from the string itself (no TZ conversion)."""
    if not value:
        return None
    m = _ISO_TIME.search(value.strip())
    if not m:
        return None
    return _clock(int(m.group(1)), int(m.group(2)))


# --- Markup ---

def decode_entities(text: Optional[str]) -> str:
    if not text:
        return ""
    return html.unescape(text)


def strip_html(text: Optional[str]) -> str:
    if not text:
        return ""
    if "<" not in text:
        return decode_entities(text).strip()
    return BeautifulSoup(text, "lxml").get_text(" ", strip=True)


# --- Titles and artist names ---

_LOWERCASE_WORDS = frozenset({
    "a", "an", "the", "and", "but", "or", "for", "nor", "on", "at", "to", "by", "with", "of", "in",
})
_UPPERCASE_WORDS = re.compile(r"^(?:dj|mc|vs\.?|ft\.?|feat\.?)$", re.IGNORECASE)


def title_case(text: str, force: bool = False) -> str:
    """
    Title-case shouting text from calendar feeds ("THE BLACK KEYS").

    Text that is already mostly lowercase is assumed to be intentionally
    styled ("of Montreal", "black midi") and returned unchanged unless
    `force` is set.
    """
    if not text:
        return text
    if not force:
        upper = len(re.findall(r"[A-Z]", text))
        lower = len(re.findall(r"[a-z]", text))
        if lower > upper:
            return text

    words = []
    for index, word in enumerate(text.lower().split(" ")):
        if _UPPERCASE_WORDS.match(word):
            words.append(word.upper())
        elif index > 0 and word in _LOWERCASE_WORDS:
            words.append(word)
        else:
            words.append("-".join(part[:1].upper() + part[1:] for part in word.split("-")))
    return " ".join(words)


_EVENT_CONTEXT_SUFFIX = re.compile(
    r"\s*[(\[][^)\]]*?(?:\b(?:releases?|farewell|reunion|anniversary|tour|show|matinee|"
    r"residency|celebration|tribute|sold\s*out|cancell?ed|postponed|rescheduled|"
    r"all\s+ages|acoustic|set|performing|presents?|night\s+(?:one|two|\d))\b|\d{2}\s*\+)"
    r"[^)\]]*[)\]]\s*$",
    re.IGNORECASE,
)


def clean_artist_name(name: str) -> str:
    """Strip event-context suffixes: "Band (Album Release)" -> "Band"."""
    cleaned = re.sub(r"\s+", " ", name or "").strip()
    while True:
        stripped = _EVENT_CONTEXT_SUFFIX.sub("", cleaned).strip()
        if stripped == cleaned or not stripped:
            break
        cleaned = stripped
    return cleaned


_TOUR_SUFFIX = re.compile(r"\s*[-–—]\s*(?:the\s+)?[^-–—]*tour.*$", re.IGNORECASE)


def strip_tour_suffix(title: str) -> str:
    """ "Band - The Big Tour 2026" -> "Band"; unchanged when nothing would remain."""
    cleaned = _TOUR_SUFFIX.sub("", title or "").strip()
    return cleaned or (title or "").strip()


_LEAD_IN = re.compile(r"^(?:with|w/|featuring|feat\.?|ft\.?)\s*", re.IGNORECASE)
_BOILERPLATE_NAME = re.compile(
    r"^(?:and\s+|plus\s+)?(?:very\s+)?special\s+guests?$|^(?:more\s+)?tba$|^more$|^and\s+more$|^friends$",
    re.IGNORECASE,
)


def split_artist_list(text: str) -> list[str]:
    """Split "with X, Y and Z" into ["X", "Y", "Z"], dropping "special guests"."""
    cleaned = _LEAD_IN.sub("", (text or "").strip()).strip()
    names: list[str] = []
    for part in re.split(r"\s*,\s*", cleaned):
        for piece in re.split(r"\s+and\s+", part, flags=re.IGNORECASE):
            piece = re.sub(r"^(?:and|&)\s+", "", piece.strip(" .;"), flags=re.IGNORECASE)
            name = clean_artist_name(piece)
            if name and not _BOILERPLATE_NAME.match(name):
                names.append(name)
    return names


_SUPPORT_CLAUSE = re.compile(
    r"(?:^|\s)(?:with|featuring|feat\.|ft\.|w/)\s+(?:special\s+guests?:?\s+)?([^.\n;!|]+)",
    re.IGNORECASE,
)


def supporting_acts_from_text(text: Optional[str]) -> list[str]:
    """Pull supporting acts out of free text ("... with X, Y and Z.")."""
    if not text:
        return []
    m = _SUPPORT_CLAUSE.search(text)
    if not m:
        return []
    return split_artist_list(m.group(1))


_TITLE_SUPPORT_SPLIT = re.compile(r"\s+(?:with|w/|featuring|feat\.|ft\.)\s+", re.IGNORECASE)
_TITLE_LEAD_IN = re.compile(
    r"^(?:an?\s+(?:evening|night|afternoon)\s+with|celebrating|.+?\s+presents:?)\s+",
    re.IGNORECASE,
)


def _strip_title_lead_in(title: str) -> str:
    """ "An Evening with the Mountain Goats" -> "The Mountain Goats"."""
    m = _TITLE_LEAD_IN.match(title)
    if not m or m.end() >= len(title):
        return title
    rest = title[m.end():]
    # title_case lowercases a leading article once it is mid-title
    if rest.split(" ", 1)[0] in ("a", "an", "the"):
        rest = rest[:1].upper() + rest[1:]
    return rest


def artists_from_title(title: str) -> list[str]:
    """ "Headliner with X and Y - Some Tour" -> ["Headliner", "X", "Y"]."""
    parts = _TITLE_SUPPORT_SPLIT.split(_strip_title_lead_in(strip_tour_suffix(title)), maxsplit=1)
    headliner = clean_artist_name(parts[0])
    names = [headliner] if headliner else []
    if len(parts) > 1:
        names.extend(split_artist_list(parts[1]))
    return names or [(title or "").strip()]


_SOLD_OUT_MARKER = re.compile(
    r"\*\s*sold\s*out\s*\*|[(\[]\s*sold\s*out\s*[)\]]|^sold\s*out\s*[:!-]\s*", re.IGNORECASE
)
_CANCELLED_MARKER = re.compile(
    r"\*\s*cancell?ed\s*\*|[(\[]\s*cancell?ed\s*[)\]]|^cancell?ed\s*[:!-]\s*", re.IGNORECASE
)


def strip_status_markers(title: str) -> tuple[str, bool, bool]:
    """Remove inline "*SOLD OUT*" / "*CANCELLED*" markers. Returns (title, sold_out, cancelled)."""
    text = title or ""
    sold_out = bool(_SOLD_OUT_MARKER.search(text))
    text = _SOLD_OUT_MARKER.sub(" ", text)
    cancelled = bool(_CANCELLED_MARKER.search(text.strip()))
    text = _CANCELLED_MARKER.sub(" ", text.strip())
    return re.sub(r"\s+", " ", text).strip(), sold_out, cancelled


_FREE_SERIES_PREFIX = re.compile(r"^FREE\s+\w+\s+w/\s*", re.IGNORECASE)
_TRUNCATED_SERIES_LABEL = re.compile(r"^FREE\s+\w+\s+w$", re.IGNORECASE)
_SERIES_WITH_ARTIST = re.compile(r"^.+?\swith\s+(.+)$", re.IGNORECASE)


def strip_series_prefix(title: str) -> tuple[str, bool]:
    """ "FREE MONDAY w/ Band" -> ("Band", True). The flag marks a free show."""
    if re.match(r"^FREE\b", title or "", re.IGNORECASE):
        return _FREE_SERIES_PREFIX.sub("", title).strip(), True
    return (title or "").strip(), False


def clean_performing_list(raw_names: list[str]) -> list[str]:
    """
    Clean a widget's "performing" list.

    The first entry is often polluted by the event series: a truncated label
    ("FREE MONDAY w", cut at the " / " of "w/"), or "Series Name with Artist".
    Entries starting with "FREE " are series labels, not acts.
    """
    artists: list[str] = []
    for index, raw in enumerate(raw_names):
        name = (raw or "").strip()
        if not name:
            continue
        name, _, _ = strip_status_markers(name)

        if index == 0:
            if _TRUNCATED_SERIES_LABEL.match(name):
                continue
            m = _SERIES_WITH_ARTIST.match(name)
            if m:
                name = m.group(1).strip()

        if not name or re.match(r"^FREE\s", name, re.IGNORECASE):
            continue
        name = clean_artist_name(name)
        if name:
            artists.append(name)
    return artists


# --- Tickets ---

def normalize_age_restriction(text: Optional[str]) -> Optional[str]:
    if not text or not text.strip():
        return None
    if re.search(r"all\s*ages?", text, re.IGNORECASE):
        return "All Ages"
    m = re.search(r"(\d{1,2})\s*\+", text) or re.search(
        r"(\d{1,2})\s*(?:and|&)\s*(?:over|up)", text, re.IGNORECASE
    )
    if m:
        return f"{m.group(1)}+"
    return text.strip()


def format_offer_price(value) -> Optional[str]:
    """schema.org offer price -> "$25" / "$25.5" / "Free"."""
    if value is None or value == "":
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if price == 0:
        return "Free"
    if price.is_integer():
        return f"${int(price)}"
    return f"${price}"


# --- Identifiers ---

_TRAILING_NUMERIC_ID = re.compile(r"/(\d+)(?:/?\?|/?$)")


def trailing_numeric_id(url: str) -> str:
    """Ticket vendor ID at the end of a URL path: ".../event/foo/670245?aff=1" -> "670245"."""
    m = _TRAILING_NUMERIC_ID.search(url or "")
    return m.group(1) if m else url


def _base36(n: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if n == 0:
        return "0"
    out = []
    while n:
        n, rem = divmod(n, 36)
        out.append(digits[rem])
    return "".join(reversed(out))


def stable_event_id(title: Optional[str], when: Optional[str], prefix: str = "jsonld") -> str:
    """
    Synthetic ID for events without a vendor ID in their URL.

    A signed 32-bit 31-multiplier hash over the UTF-16 code units of
    "<title>|<when>", rendered in base 36. The backend already holds IDs in
    this format, so the scheme must not change; two unrelated events can
    collide in the 32-bit space.
    """
    raw = f"{title or ''}|{when or ''}".encode("utf-16-le")
    h = 0
    for i in range(0, len(raw), 2):
        h = (h * 31 + (raw[i] | raw[i + 1] << 8)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return f"{prefix}-{_base36(abs(h))}"


# --- Timestamps ---

_stamp_lock = threading.Lock()
_last_stamp: Optional[datetime] = None


def scrape_timestamp() -> datetime:
    """Current UTC time, strictly increasing across calls in this process."""
    global _last_stamp
    with _stamp_lock:
        now = datetime.now(timezone.utc)
        if _last_stamp is not None and now <= _last_stamp:
            now = _last_stamp + timedelta(microseconds=1)
        _last_stamp = now
        return now
