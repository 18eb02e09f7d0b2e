"""Global pytest fixtures & helpers.

Adds project root to path and provides reusable factories for trips, items
and resolvers so scenario tests stay short.
"""
from __future__ import annotations

import math
import os
import sys
from datetime import date, datetime, timedelta, timezone

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from trip_matcher.config import EARTH_RADIUS_KM
from trip_matcher.models import CandidateItem, HomeProfile, Trip, TripItem
from trip_matcher.prompts import ScriptedChooser
from trip_matcher.services import ResolverConfig, TripMatchResolver
from trip_matcher.stores import (
    InMemoryRejectionStore,
    InMemoryTripStore,
    StaticHomeProfileStore,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()
HOME = (51.0, 0.0)
USER = "user-1"

# Kilometres per degree of latitude under the haversine model.
KM_PER_DEG_LAT = EARTH_RADIUS_KM * math.pi / 180.0


# --- Factory helpers -------------------------------------------------
def north_of(point, km):
    """Return the point ``km`` kilometres due north of ``point``."""
    return (point[0] + km / KM_PER_DEG_LAT, point[1])


def days(n):
    return timedelta(days=n)


def make_trip(trip_id, start, end, locations=(), name=None, item_type="spot"):
    items = [
        TripItem(item_id=f"{trip_id}-item-{i}", type=item_type, location=loc, data={})
        for i, loc in enumerate(locations)
    ]
    return Trip(
        id=trip_id,
        name=name or f"Trip {trip_id}",
        start_date=start,
        end_date=end,
        items=items,
    )


def make_item(location, when=NOW, item_id="item-1", item_type="activity"):
    return CandidateItem(id=item_id, type=item_type, date=when, location=location)


def make_resolver(
    trips,
    *,
    responses=(),
    home_profile=None,
    rejections=(),
    user_id=USER,
    rejection_store=None,
    profile_store=None,
    with_chooser=True,
):
    trip_store = InMemoryTripStore(trips)
    chooser = ScriptedChooser(responses) if with_chooser else None
    rejection_store = rejection_store or InMemoryRejectionStore(rejections)
    if profile_store is None:
        profiles = {user_id: home_profile} if home_profile is not None else {}
        profile_store = StaticHomeProfileStore(profiles)
    resolver = TripMatchResolver(
        ResolverConfig(
            gateway=trip_store,
            chooser=chooser,
            rejection_store=rejection_store,
            profile_store=profile_store,
            user_id=user_id,
            clock=lambda: NOW,
        )
    )
    return resolver, trip_store, rejection_store, chooser


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def home_profile() -> HomeProfile:
    return HomeProfile(home_location=HOME, home_radius=2.0)


@pytest.fixture
def today() -> date:
    return TODAY
