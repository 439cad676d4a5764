from datetime import date

import pytest

from venuediscovery.normalize import (
    artists_from_title,
    clean_artist_name,
    clean_performing_list,
    format_clock,
    format_offer_price,
    iso_date,
    normalize_age_restriction,
    parse_month_day,
    split_artist_list,
    stable_event_id,
    strip_html,
    strip_series_prefix,
    strip_status_markers,
    strip_tour_suffix,
    supporting_acts_from_text,
    time_from_iso,
    title_case,
    trailing_numeric_id,
)


# --- dates ---

@pytest.mark.parametrize("text, today, expected", [
    ("Thu Feb 19", date(2026, 1, 10), "2026-02-19"),
    ("Sat 21 Feb", date(2026, 1, 10), "2026-02-21"),
    ("21Feb", date(2026, 1, 10), "2026-02-21"),
    ("Friday, March 6th", date(2026, 1, 10), "2026-03-06"),
    # Shows listed late in the year for early next year
    ("Jan 3", date(2026, 12, 20), "2027-01-03"),
    # Recent shows still on the listing keep the current year
    ("Jan 5", date(2026, 3, 15), "2026-01-05"),
    ("Dec 30", date(2026, 12, 20), "2026-12-30"),
    ("March 3, 2027", date(2026, 1, 10), "2027-03-03"),
])
def test_parse_month_day(text, today, expected):
    assert parse_month_day(text, today=today) == expected


@pytest.mark.parametrize("text", ["", "TBA"])
def test_parse_month_day_unparseable(text):
    assert parse_month_day(text, today=date(2026, 1, 10)) is None


def test_iso_date():
    assert iso_date("2026-02-07T20:00:00-07:00") == "2026-02-07"
    assert iso_date("2026-02-30") is None
    assert iso_date("Feb 7") is None
    assert iso_date(None) is None


@pytest.mark.parametrize("text, expected", [
    ("9:00PM", "9:00 PM"),
    ("9pm", "9:00 PM"),
    ("Doors: 7:30 p.m.", "7:30 PM"),
    ("21:00", "9:00 PM"),
    ("00:15", "12:15 AM"),
    ("TBA", None),
    (None, None),
])
def test_format_clock(text, expected):
    assert format_clock(text) == expected


def test_time_from_iso_ignores_timezone():
    assert time_from_iso("2026-03-01T19:30:00-07:00") == "7:30 PM"
    assert time_from_iso("2026-03-01") is None


# --- titles and artists ---

def test_title_case_shouting_text():
    assert title_case("THE BLACK KEYS") == "The Black Keys"
    assert title_case("DJ SHADOW AND CUT CHEMIST") == "DJ Shadow and Cut Chemist"
    assert title_case("JAPANESE BREAKFAST - JUBILEE TOUR") == "Japanese Breakfast - Jubilee Tour"


def test_title_case_keeps_styled_names():
    assert title_case("of Montreal") == "of Montreal"
    assert title_case("black midi") == "black midi"
    assert title_case("black midi", force=True) == "Black Midi"


@pytest.mark.parametrize("raw, expected", [
    ("Band (Album Release)", "Band"),
    ("Band (21+)", "Band"),
    ("Band [10th Anniversary Show] (Sold Out)", "Band"),
    ("  Band   Name  ", "Band Name"),
    ("(Sandy) Alex G", "(Sandy) Alex G"),
])
def test_clean_artist_name(raw, expected):
    assert clean_artist_name(raw) == expected


def test_strip_tour_suffix():
    assert strip_tour_suffix("Band - The Big Tour 2026") == "Band"
    assert strip_tour_suffix("Tour") == "Tour"
    assert strip_tour_suffix("Band") == "Band"


def test_split_artist_list_drops_boilerplate():
    assert split_artist_list("with Sweet Pill, Jivebomb and Special Guests") == ["Sweet Pill", "Jivebomb"]
    assert split_artist_list("w/ A, B, and C") == ["A", "B", "C"]


def test_supporting_acts_from_text():
    text = "Calpurnia return to Phoenix with Hana Vu and Remi Wolf. All ages."
    assert supporting_acts_from_text(text) == ["Hana Vu", "Remi Wolf"]
    assert supporting_acts_from_text("No openers announced.") == []


def test_artists_from_title():
    assert artists_from_title("Headliner with X and Y - Some Tour") == ["Headliner", "X", "Y"]
    assert artists_from_title("Solo Act") == ["Solo Act"]


@pytest.mark.parametrize("title, expected", [
    ("An Evening with the Mountain Goats", ["The Mountain Goats"]),
    ("A Night with Calpurnia with Hana Vu", ["Calpurnia", "Hana Vu"]),
    ("Celebrating Prince with Purple Reign", ["Prince", "Purple Reign"]),
    ("KEXP Presents: Deeper with Lifeguard", ["Deeper", "Lifeguard"]),
])
def test_artists_from_title_skips_lead_in_phrases(title, expected):
    assert artists_from_title(title) == expected


# --- status and series markers ---

def test_strip_status_markers():
    assert strip_status_markers("*SOLD OUT* Deeper") == ("Deeper", True, False)
    assert strip_status_markers("Band (Cancelled)") == ("Band", False, True)
    assert strip_status_markers("Plain Title") == ("Plain Title", False, False)


def test_strip_series_prefix():
    assert strip_series_prefix("FREE MONDAY w/ Daytrotter Sessions") == ("Daytrotter Sessions", True)
    assert strip_series_prefix("Deeper") == ("Deeper", False)


def test_clean_performing_list_drops_truncated_series_label():
    assert clean_performing_list(["FREE MONDAY w", "Daytrotter Sessions"]) == ["Daytrotter Sessions"]


def test_clean_performing_list_strips_status_markers():
    assert clean_performing_list(["*SOLD OUT* Deeper", "Lifeguard"]) == ["Deeper", "Lifeguard"]
    assert clean_performing_list(["Ganser (Cancelled)"]) == ["Ganser"]


def test_clean_performing_list_extracts_artist_from_series_entry():
    assert clean_performing_list(["Late Night Series with Deeper", "Lifeguard"]) == ["Deeper", "Lifeguard"]


def test_strip_html():
    assert strip_html("<span>Valley Bar</span>") == "Valley Bar"
    assert strip_html("Rock &amp; Roll") == "Rock & Roll"
    assert strip_html(None) == ""


# --- tickets and identifiers ---

@pytest.mark.parametrize("text, expected", [
    ("21+", "21+"),
    ("Ages 21 and over", "21+"),
    ("21 & Over", "21+"),
    ("all ages", "All Ages"),
    ("Under 18 with guardian", "Under 18 with guardian"),
    ("", None),
])
def test_normalize_age_restriction(text, expected):
    assert normalize_age_restriction(text) == expected


def test_format_offer_price():
    assert format_offer_price(0) == "Free"
    assert format_offer_price("25") == "$25"
    assert format_offer_price("25.50") == "$25.5"
    assert format_offer_price("") is None
    assert format_offer_price("call box office") is None


def test_trailing_numeric_id():
    assert trailing_numeric_id("https://wl.seetickets.us/event/Hot-Mulligan/670245?afflky=X") == "670245"
    assert trailing_numeric_id("https://www.ticketweb.com/event/deeper-tickets/14200456/") == "14200456"
    assert trailing_numeric_id("https://example.com/no-id") == "https://example.com/no-id"


def test_stable_event_id_is_fixed():
    # These values are already stored by the import backend
    assert stable_event_id("a", "b") == "jsonld-22yv"
    assert stable_event_id("Local Showcase", "2099-05-01T18:00:00-07:00") == stable_event_id(
        "Local Showcase", "2099-05-01T18:00:00-07:00"
    )
    assert stable_event_id("a", "b", prefix="x") == "x-22yv"


def test_stable_event_id_handles_missing_parts():
    assert stable_event_id(None, None).startswith("jsonld-")
    assert stable_event_id("Show", None) != stable_event_id("Show", "2099-01-01")
