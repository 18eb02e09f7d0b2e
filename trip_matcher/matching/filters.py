"""Candidate trip filter.

Decides which of a user's trips could plausibly own a newly saved item. The
rules are stricter near home, where saved spots are common and rarely trip
related, and looser while travelling, where items are often logged late or
just outside the nominal trip dates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence

from .. import config
from ..geo import distances_km, mean_distance_km
from ..models import CandidateItem, LatLon, Trip
from ..utils import as_date

_LOG = logging.getLogger(__name__)


@dataclass(slots=True)
class MatchingRules:
    """Thresholds applied by :func:`filter_candidates`."""

    home_max_trip_age_days: int = config.HOME_MAX_TRIP_AGE_DAYS
    travel_max_trip_age_days: int = config.TRAVEL_MAX_TRIP_AGE_DAYS
    home_date_tolerance_days: int = config.HOME_DATE_TOLERANCE_DAYS
    travel_date_tolerance_days: int = config.TRAVEL_DATE_TOLERANCE_DAYS
    travel_max_distance_km: float = config.TRAVEL_MAX_DISTANCE_KM
    local_trip_max_distance_km: float = config.LOCAL_TRIP_MAX_DISTANCE_KM
    away_trip_max_distance_km: float = config.AWAY_TRIP_MAX_DISTANCE_KM
    travel_trip_mean_home_distance_km: float = config.TRAVEL_TRIP_MEAN_HOME_DISTANCE_KM


def filter_candidates(
    item: CandidateItem,
    trips: Sequence[Trip],
    now: datetime,
    is_near_home: bool,
    *,
    home_location: Optional[LatLon] = None,
    rules: Optional[MatchingRules] = None,
) -> List[Trip]:
    """Return the trips that pass the recency, date and proximity checks.

    Args:
        item: The activity or saved location being filed.
        trips: Every trip owned by the user.
        now: Reference time; trip activity and age are measured against it.
        is_near_home: Whether ``item`` lies within the user's home radius.
        home_location: The user's home coordinate, used near home to tell
            local trips (strict distance cap) from away trips.
        rules: Threshold overrides; defaults come from ``config``.

    Returns:
        The passing trips in input order. Ordering is applied by
        :func:`trip_matcher.matching.ranking.rank`.
    """

    rules = rules or MatchingRules()
    today = as_date(now)
    item_day = as_date(item.date)
    candidates: List[Trip] = []
    for trip in trips:
        reason = _exclusion_reason(
            item, item_day, trip, today, is_near_home, home_location, rules
        )
        if reason is not None:
            if config.LOG_EXCLUSION_REASONS:
                _LOG.debug(
                    "Trip %s (%s) excluded for item=%s/%s: %s",
                    trip.id,
                    trip.name,
                    item.type,
                    item.id,
                    reason,
                )
            continue
        candidates.append(trip)
    return candidates


def _exclusion_reason(
    item: CandidateItem,
    item_day: date,
    trip: Trip,
    today: date,
    near_home: bool,
    home_location: Optional[LatLon],
    rules: MatchingRules,
) -> str | None:
    max_age = rules.home_max_trip_age_days if near_home else rules.travel_max_trip_age_days
    days_since_end = (today - trip.end_date).days
    if days_since_end > max_age:
        return f"ended {days_since_end} days ago (limit {max_age})"

    if near_home:
        if not (
            _within_window(item_day, trip, rules.home_date_tolerance_days)
            or trip.is_active(today)
        ):
            return "item date outside home window and trip not active"
    elif not _within_window(item_day, trip, rules.travel_date_tolerance_days):
        return "item date outside travel window"

    if not trip.items or item.location is None:
        # Nothing to anchor a distance check against.
        return None
    max_km = _max_distance_km(trip, near_home, home_location, rules)
    if not _has_nearby_item(item.location, trip, max_km):
        return f"no trip item within {max_km:g} km"
    return None


def _within_window(item_day: date, trip: Trip, tolerance_days: int) -> bool:
    slack = timedelta(days=tolerance_days)
    return trip.start_date - slack <= item_day <= trip.end_date + slack


def _max_distance_km(
    trip: Trip,
    near_home: bool,
    home_location: Optional[LatLon],
    rules: MatchingRules,
) -> float:
    if not near_home or home_location is None:
        return rules.travel_max_distance_km
    located = [ti.location for ti in trip.items if ti.location is not None]
    mean_from_home = mean_distance_km(home_location, located)
    if (
        mean_from_home is not None
        and mean_from_home > rules.travel_trip_mean_home_distance_km
    ):
        return rules.away_trip_max_distance_km
    return rules.local_trip_max_distance_km


def _has_nearby_item(location: LatLon, trip: Trip, max_km: float) -> bool:
    located: List[LatLon] = []
    for trip_item in trip.items:
        if trip_item.location is None:
            # Unlocated trip items never disqualify a trip.
            return True
        located.append(trip_item.location)
    return bool((distances_km(location, located) <= max_km).any())


__all__ = ["MatchingRules", "filter_candidates"]
