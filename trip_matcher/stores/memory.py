"""In-memory store implementations.

Used by the CLI (trips loaded from JSON) and throughout the tests.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from ..errors import TripNotFoundError
from ..models import CandidateItem, HomeProfile, RejectionRecord, Trip
from ..payloads import trip_item_from_candidate
from ..utils import as_date

_LOG = logging.getLogger(__name__)


class InMemoryTripStore:
    """Trip gateway over a list of :class:`Trip` objects held in memory.

    Appending mirrors the backend behaviour: an item already in the trip is
    left alone, and the trip's date range grows to cover the item's date.
    """

    def __init__(self, trips: Iterable[Trip] = ()) -> None:
        self._trips: Dict[str, Trip] = {trip.id: trip for trip in trips}
        self.add_calls: List[tuple[str, str, str]] = []

    @property
    def trips(self) -> List[Trip]:
        return list(self._trips.values())

    def get(self, trip_id: str) -> Trip | None:
        return self._trips.get(trip_id)

    def remove(self, trip_id: str) -> None:
        self._trips.pop(trip_id, None)

    async def add_to_trip(
        self, trip_id: str, item: CandidateItem, item_type: str
    ) -> None:
        self.add_calls.append((trip_id, item.id, item_type))
        trip = self._trips.get(trip_id)
        if trip is None:
            raise TripNotFoundError(f"Trip {trip_id!r} does not exist")
        if trip.contains(item.id, item_type):
            _LOG.info("Item %s/%s already in trip %s", item_type, item.id, trip_id)
            return
        trip.items.append(trip_item_from_candidate(item, item_type))
        item_day = as_date(item.date)
        if item_day < trip.start_date:
            trip.start_date = item_day
        if item_day > trip.end_date:
            trip.end_date = item_day
        _LOG.debug(
            "Added %s/%s to trip %s (now %s -> %s, %d items)",
            item_type,
            item.id,
            trip_id,
            trip.start_date,
            trip.end_date,
            len(trip.items),
        )


class InMemoryRejectionStore:
    def __init__(self, records: Iterable[RejectionRecord] = ()) -> None:
        self.records: List[RejectionRecord] = list(records)

    async def find(
        self, user_id: str, item_id: str, item_type: str
    ) -> List[RejectionRecord]:
        return [
            r
            for r in self.records
            if r.user_id == user_id and r.item_id == item_id and r.item_type == item_type
        ]

    async def insert(self, records: Sequence[RejectionRecord]) -> None:
        self.records.extend(records)

    async def delete(self, user_id: str, item_id: str, item_type: str) -> None:
        self.records = [
            r
            for r in self.records
            if not (
                r.user_id == user_id and r.item_id == item_id and r.item_type == item_type
            )
        ]


class StaticHomeProfileStore:
    """Profile store returning fixed profiles keyed by user id."""

    def __init__(self, profiles: Optional[Dict[str, HomeProfile]] = None) -> None:
        self._profiles = dict(profiles or {})

    async def get_home_profile(self, user_id: str) -> Optional[HomeProfile]:
        return self._profiles.get(user_id)


__all__ = ["InMemoryRejectionStore", "InMemoryTripStore", "StaticHomeProfileStore"]
