from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional, Tuple

from .config import DEFAULT_HOME_RADIUS_KM

LatLon = Tuple[float, float]
ItemType = Literal["activity", "spot"]
ITEM_TYPES: Tuple[str, ...] = ("activity", "spot")


@dataclass
class TripItem:
    item_id: str
    type: ItemType
    # Point location, or the first point of a recorded route
    location: Optional[LatLon] = None
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Trip:
    id: str
    name: str
    start_date: date
    end_date: date
    items: List[TripItem] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.start_date > self.end_date:
            raise ValueError(
                f"Trip {self.id!r} starts after it ends "
                f"({self.start_date} > {self.end_date})"
            )

    def is_active(self, on: date) -> bool:
        return self.start_date <= on <= self.end_date

    def contains(self, item_id: str, item_type: str) -> bool:
        return any(
            ti.item_id == item_id and ti.type == item_type for ti in self.items
        )


@dataclass
class CandidateItem:
    """An activity or saved location being evaluated for trip membership."""

    id: str
    type: ItemType
    date: datetime
    location: Optional[LatLon] = None
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class HomeProfile:
    home_location: Optional[LatLon] = None
    home_radius: Optional[float] = None

    @property
    def radius_km(self) -> float:
        # Unset and zero radii both fall back to the default
        return self.home_radius or DEFAULT_HOME_RADIUS_KM


@dataclass(frozen=True)
class RejectionRecord:
    user_id: str
    item_id: str
    item_type: str
    trip_id: str
