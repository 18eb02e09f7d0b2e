"""Command-line entry point: file one saved item into a trip from JSON inputs."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence

from .errors import PayloadError, TripGatewayError
from .models import CandidateItem, HomeProfile, RejectionRecord, Trip
from .payloads import (
    candidate_from_payload,
    home_profile_from_payload,
    rejection_from_payload,
    rejection_to_payload,
    trip_to_payload,
    trips_from_payload,
)
from .prompts import Chooser, ConsoleChooser
from .services import ResolverConfig, TripMatchResolver
from .stores import (
    CachedHomeProfileStore,
    InMemoryRejectionStore,
    InMemoryTripStore,
    StaticHomeProfileStore,
)
from .utils import parse_iso_datetime, utc_now
from .visualization import create_decision_map

LOGGER = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Decide which trip a newly saved activity or spot belongs to"
    )
    parser.add_argument("--trips", required=True, help="JSON file with the user's trips")
    parser.add_argument("--item", required=True, help="JSON file with the saved item")
    parser.add_argument(
        "--type",
        dest="item_type",
        choices=("activity", "spot"),
        default="activity",
        help="Kind of item (default: activity)",
    )
    parser.add_argument("--name", help="Display name used in prompts")
    parser.add_argument("--profile", help="JSON file with home_location/home_radius")
    parser.add_argument("--rejections", help="JSON file with prior rejection records")
    parser.add_argument("--user-id", default="local", help="Acting user id")
    parser.add_argument("--now", help="Reference time (ISO-8601); defaults to now")
    parser.add_argument(
        "--no-prompt",
        action="store_true",
        help="Add silently to the best trip instead of asking",
    )
    parser.add_argument(
        "--write",
        action="store_true",
        help="Write updated trips (and rejections) back to their files",
    )
    parser.add_argument("--map", dest="map_path", help="Write a decision map (HTML)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def _load_json(path: str | Path) -> Any:
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _write_json(path: str | Path, payload: Any) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)
        handle.write("\n")


def _load_rejections(path: Optional[str]) -> List[RejectionRecord]:
    if not path or not Path(path).exists():
        return []
    return [rejection_from_payload(row) for row in _load_json(path)]


def _load_profile(path: Optional[str]) -> Optional[HomeProfile]:
    if not path:
        return None
    return home_profile_from_payload(_load_json(path))


def run(args: argparse.Namespace, chooser: Optional[Chooser] = None) -> int:
    """Execute one matching decision; returns a process exit code."""

    now = parse_iso_datetime(args.now) if args.now else utc_now()
    if now is None:
        LOGGER.error("Invalid --now value: %s", args.now)
        return 2
    try:
        trips = trips_from_payload(_load_json(args.trips))
        item_data = _load_json(args.item)
        item = candidate_from_payload(item_data, args.item_type, fallback_date=now)
        profile = _load_profile(args.profile)
        prior = _load_rejections(args.rejections)
    except (OSError, json.JSONDecodeError, PayloadError) as exc:
        LOGGER.error("Failed to load inputs: %s", exc)
        return 2

    trip_store = InMemoryTripStore(trips)
    rejection_store = InMemoryRejectionStore(prior)
    profiles = {args.user_id: profile} if profile is not None else {}
    prompt_user = not args.no_prompt
    resolver = TripMatchResolver(
        ResolverConfig(
            gateway=trip_store,
            chooser=(chooser or ConsoleChooser()) if prompt_user else None,
            rejection_store=rejection_store,
            profile_store=CachedHomeProfileStore(StaticHomeProfileStore(profiles)),
            user_id=args.user_id,
            clock=lambda: now,
        )
    )
    candidates = resolver.candidates_for(item, trips, profile, now)
    item_name = args.name or str(item_data.get("name") or item.id)

    try:
        chosen = asyncio.run(
            resolver.resolve(item, item_name, trip_store.trips, prompt_user=prompt_user)
        )
    except TripGatewayError as exc:
        LOGGER.error("Could not add %s to trip: %s", item_name, exc)
        return 1

    if chosen is None:
        LOGGER.info("%s was not added to any trip", item_name)
    else:
        LOGGER.info("%s belongs to trip %s (%s)", item_name, chosen.name, chosen.id)

    if args.write:
        _write_json(args.trips, [trip_to_payload(trip) for trip in trip_store.trips])
        if args.rejections:
            _write_json(
                args.rejections,
                [rejection_to_payload(r) for r in rejection_store.records],
            )
        LOGGER.info("Updated %s", args.trips)

    if args.map_path:
        _write_map(args.map_path, item, trips, candidates, profile, chosen)
    return 0


def _write_map(
    path: str,
    item: CandidateItem,
    trips: List[Trip],
    candidates: List[Trip],
    profile: Optional[HomeProfile],
    chosen: Optional[Trip],
) -> None:
    try:
        create_decision_map(
            item,
            trips,
            candidates,
            home_profile=profile,
            chosen=chosen,
            output_html_path=path,
        )
    except ValueError as exc:
        LOGGER.warning("Skipping decision map: %s", exc)
        return
    LOGGER.info("Decision map written to %s", path)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    _setup_logging(args.verbose)
    return run(args)
