"""Interfaces of the stores the resolver depends on."""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence

from ..models import CandidateItem, HomeProfile, RejectionRecord


class TripGateway(Protocol):
    """Appends an item to a trip's member list."""

    async def add_to_trip(
        self, trip_id: str, item: CandidateItem, item_type: str
    ) -> None: ...


class RejectionStore(Protocol):
    async def find(
        self, user_id: str, item_id: str, item_type: str
    ) -> List[RejectionRecord]: ...

    async def insert(self, records: Sequence[RejectionRecord]) -> None: ...

    async def delete(self, user_id: str, item_id: str, item_type: str) -> None: ...


class HomeProfileStore(Protocol):
    async def get_home_profile(self, user_id: str) -> Optional[HomeProfile]: ...


__all__ = ["HomeProfileStore", "RejectionStore", "TripGateway"]
