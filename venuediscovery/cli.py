import argparse
import json
import logging
import sys
from collections import Counter
from datetime import datetime
from pathlib import Path

from venuediscovery import __version__
import venuediscovery.config as cfg_module
from venuediscovery.discovery import Discovery
from venuediscovery.errors import DiscoveryError
from venuediscovery.importer import ImportClient, classify_message
from venuediscovery.models import DiscoveredEvent, ScrapeProgress


def _write_json(payload, output: Path) -> None:
    with open(output, "w") as f:
        json.dump(payload, f, indent=2)
        f.write("\n")


def _read_events(path: Path) -> list[DiscoveredEvent]:
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError:
        raise DiscoveryError(f"File not found: {path}") from None
    except json.JSONDecodeError as exc:
        raise DiscoveryError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, list):
        raise DiscoveryError(f"{path} must contain a JSON array of events")
    try:
        return [DiscoveredEvent.from_payload(item) for item in data]
    except (KeyError, TypeError, ValueError) as exc:
        raise DiscoveryError(f"Invalid event in {path}: {exc}") from exc


def _print_progress(progress: ScrapeProgress) -> None:
    print(
        f"\r  [{progress.current}/{progress.total}] {progress.phase}: {progress.item_label:<60}",
        end="",
        flush=True,
    )


def _venues(args, cfg):
    discovery = Discovery.from_config(cfg)
    if not discovery.venues:
        print("No enabled venues found. Check your config.toml [venues] section.")
        return

    for city, state, count in discovery.cities():
        label = f"{city}, {state}" if state else (city or "(no city)")
        print(f"{label} ({count})")
        for slug, venue in sorted(discovery.venues.items()):
            if (venue.city, venue.state) == (city, state):
                print(f"  {slug:<28} {venue.source_family.value:<12} {venue.name}")


def _preview(args, cfg):
    discovery = Discovery.from_config(cfg)
    slugs = args.venue or sorted(discovery.venues)
    if not slugs:
        print("No enabled venues found. Check your config.toml [venues] section.")
        return

    print(f"Previewing {len(slugs)} venue(s) ...")
    results = discovery.preview_batch(slugs)
    for result in results:
        if result.ok:
            print(f"{result.venue_slug}: {len(result.events)} events")
            for event in result.events:
                print(f"  {event.date}  {event.id:<24} {event.title}")
        else:
            print(f"{result.venue_slug}: FAILED ({result.error})")

    if args.output:
        _write_json([r.to_payload() for r in results], Path(args.output))
        print(f"Preview written to '{args.output}'.")


def _scrape(args, cfg):
    discovery = Discovery.from_config(cfg)
    venue = discovery.venue(args.venue)

    event_ids = args.ids
    if not event_ids:
        print(f"Previewing {venue.name} ...", end=" ", flush=True)
        event_ids = [e.id for e in discovery.preview(args.venue)]
        print(f"{len(event_ids)} events found.")
    if not event_ids:
        return

    print(f"Scraping {len(event_ids)} events from {venue.name} ...")
    events = discovery.scrape(args.venue, event_ids, on_progress=_print_progress)
    print()

    missing = set(event_ids) - {e.id for e in events}
    if missing:
        print(f"Warning: {len(missing)} requested event(s) not found: {', '.join(sorted(missing))}")

    output = Path(args.output or f"discovered-{args.venue}-{datetime.now():%Y%m%d-%H%M%S}.json")
    _write_json([e.to_payload() for e in events], output)
    print(f"{len(events)} events written to '{output}'.")


def _client(args, cfg) -> ImportClient:
    url, token = cfg_module.get_backend(cfg, args.target)
    return ImportClient(url, token)


def _check(args, cfg):
    events = _read_events(Path(args.file))
    statuses = _client(args, cfg).check_status((e.id, e.venue_slug) for e in events)

    for event in events:
        status = statuses.get(event.id)
        if status is None or not status.exists:
            badge = "NEW"
        else:
            changed = status.changed_fields(event)
            badge = (status.status or "exists").upper()
            if changed:
                badge += f" (changed: {', '.join(changed)})"
        print(f"{event.date}  {event.title:<50} {badge}")


def _import(args, cfg):
    events = _read_events(Path(args.file))
    if not events:
        print("No events to import.")
        return

    result = _client(args, cfg).import_events(events, dry_run=args.dry_run)
    prefix = "[dry run] " if args.dry_run else ""
    print(
        f"{prefix}{result.total} total: {result.imported} imported, {result.updated} updated, "
        f"{result.duplicates} duplicates, {result.pending_review} pending review, "
        f"{result.rejected} rejected, {result.errors} errors"
    )

    kinds = Counter()
    for message in result.messages:
        kind = classify_message(message)
        kinds[kind] += 1
        if args.verbose or kind in ("review", "rejected", "error"):
            print(f"  [{kind}] {message}")
    if kinds and not args.verbose:
        print("  " + ", ".join(f"{k}: {n}" for k, n in sorted(kinds.items())))


def main():
    parser = argparse.ArgumentParser(
        prog="vd",
        description="Discover upcoming events from venue websites and import them",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config", default="config.toml", metavar="PATH",
        help="Path to config.toml (default: config.toml)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log scraper activity")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # venues
    subparsers.add_parser("venues", help="List configured venues by city")

    # preview
    sp_preview = subparsers.add_parser("preview", help="List upcoming events for one or more venues")
    sp_preview.add_argument(
        "--venue", metavar="SLUG", action="append",
        help="Only preview this venue (repeatable; default: all enabled venues)",
    )
    sp_preview.add_argument("--output", metavar="PATH", help="Also write the preview as JSON")

    # scrape
    sp_scrape = subparsers.add_parser("scrape", help="Extract full event records for a venue")
    sp_scrape.add_argument("--venue", metavar="SLUG", required=True, help="Venue slug from config.toml")
    sp_scrape.add_argument(
        "--ids", metavar="ID", nargs="+",
        help="Event IDs from a preview (default: every previewed event)",
    )
    sp_scrape.add_argument("--output", metavar="PATH", help="Output file (default: discovered-<slug>-<time>.json)")

    # check
    sp_check = subparsers.add_parser("check", help="Show import status for scraped events")
    sp_check.add_argument("file", help="JSON file written by 'vd scrape'")
    sp_check.add_argument("--target", choices=["stage", "production", "local"], help="Backend to query")

    # import
    sp_import = subparsers.add_parser("import", help="Send scraped events to the backend")
    sp_import.add_argument("file", help="JSON file written by 'vd scrape'")
    sp_import.add_argument("--dry-run", action="store_true", help="Report what would change without importing")
    sp_import.add_argument("--target", choices=["stage", "production", "local"], help="Backend to import into")

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "venues": _venues,
        "preview": _preview,
        "scrape": _scrape,
        "check": _check,
        "import": _import,
    }
    try:
        cfg = cfg_module.load(Path(args.config))
        commands[args.command](args, cfg)
    except DiscoveryError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
