"""Conversion between backend row payloads and engine models.

Trip rows, item payloads and profile rows arrive as loosely-typed JSON from
the app backend. Activities carry either a point ``location`` or a recorded
``route`` (a list of points or an encoded polyline); saved spots carry a
``location``. Both camelCase (client) and snake_case (database) keys occur.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

import polyline

from .errors import PayloadError
from .models import (
    ITEM_TYPES,
    CandidateItem,
    HomeProfile,
    LatLon,
    RejectionRecord,
    Trip,
    TripItem,
)
from .utils import as_date, parse_iso_datetime, to_json_value

# Preference order for the representative date of an item.
_ITEM_DATE_KEYS = (
    "activityDate",
    "activity_date",
    "locationDate",
    "location_date",
    "timestamp",
    "created_at",
)


def coerce_lat_lon(value: Any) -> Optional[LatLon]:
    """Return ``(lat, lon)`` from a mapping or pair, or ``None`` when invalid."""

    if value is None:
        return None
    if isinstance(value, Mapping):
        lat = value.get("latitude", value.get("lat"))
        lon = value.get("longitude", value.get("lng", value.get("lon")))
    elif isinstance(value, (list, tuple)) and len(value) >= 2:
        lat, lon = value[0], value[1]
    else:
        return None
    try:
        return float(lat), float(lon)
    except (TypeError, ValueError):
        return None


def first_route_point(route: Any) -> Optional[LatLon]:
    if not route:
        return None
    if isinstance(route, str):
        try:
            points = polyline.decode(route)
        except (ValueError, IndexError, TypeError):
            return None
        return coerce_lat_lon(points[0]) if points else None
    if isinstance(route, (list, tuple)):
        return coerce_lat_lon(route[0])
    return None


def extract_location(data: Mapping[str, Any]) -> Optional[LatLon]:
    """Return the point location of an item, else the first route point."""

    location = coerce_lat_lon(data.get("location"))
    if location is not None:
        return location
    return first_route_point(data.get("route"))


def extract_item_date(data: Mapping[str, Any]) -> Optional[datetime]:
    for key in _ITEM_DATE_KEYS:
        parsed = parse_iso_datetime(data.get(key))
        if parsed is not None:
            return parsed
    return None


def _item_type(value: Any) -> str:
    item_type = str(value or "").strip().lower()
    if item_type not in ITEM_TYPES:
        raise PayloadError(f"Unsupported item type: {value!r}")
    return item_type


def candidate_from_payload(
    data: Mapping[str, Any],
    item_type: str,
    *,
    fallback_date: Optional[datetime] = None,
) -> CandidateItem:
    """Build a :class:`CandidateItem` from an activity or saved-spot payload.

    ``fallback_date`` is used when the payload carries none of the known date
    fields (typically the save time).
    """

    if not isinstance(data, Mapping):
        raise PayloadError("Item payload must be a JSON object")
    item_id = data.get("id")
    if item_id is None or item_id == "":
        raise PayloadError("Item payload is missing 'id'")
    item_date = extract_item_date(data) or fallback_date
    if item_date is None:
        raise PayloadError(f"Item {item_id!r} has no usable date")
    return CandidateItem(
        id=str(item_id),
        type=_item_type(item_type),  # type: ignore[arg-type]
        date=item_date,
        location=extract_location(data),
        data=dict(data),
    )


def trip_item_from_payload(row: Mapping[str, Any]) -> TripItem:
    data = row.get("data")
    if not isinstance(data, Mapping):
        data = {}
    item_id = data.get("id", row.get("item_id"))
    if item_id is None:
        raise PayloadError("Trip item payload is missing the item id")
    return TripItem(
        item_id=str(item_id),
        type=_item_type(row.get("type")),  # type: ignore[arg-type]
        location=extract_location(data),
        data=dict(data),
    )


def trip_item_from_candidate(
    item: CandidateItem, item_type: Optional[str] = None
) -> TripItem:
    data = dict(item.data)
    data.setdefault("id", item.id)
    return TripItem(
        item_id=item.id,
        type=_item_type(item_type or item.type),  # type: ignore[arg-type]
        location=item.location,
        data=data,
    )


def trip_from_payload(row: Mapping[str, Any]) -> Trip:
    """Build a :class:`Trip` from a trip row with embedded ``items``.

    PostgREST embeds related rows under the table name, so ``trip_items`` is
    accepted as an alias for ``items``.
    """

    trip_id = row.get("id")
    if trip_id is None:
        raise PayloadError("Trip payload is missing 'id'")
    start = parse_iso_datetime(row.get("start_date"))
    end = parse_iso_datetime(row.get("end_date"))
    if start is None or end is None:
        raise PayloadError(f"Trip {trip_id!r} has an invalid date range")
    raw_items = row.get("items")
    if raw_items is None:
        raw_items = row.get("trip_items") or []
    try:
        return Trip(
            id=str(trip_id),
            name=str(row.get("name") or ""),
            start_date=as_date(start),
            end_date=as_date(end),
            items=[trip_item_from_payload(item) for item in raw_items],
        )
    except ValueError as exc:
        if isinstance(exc, PayloadError):
            raise
        raise PayloadError(str(exc)) from exc


def trip_to_payload(trip: Trip) -> Dict[str, Any]:
    return {
        "id": trip.id,
        "name": trip.name,
        "start_date": trip.start_date.isoformat(),
        "end_date": trip.end_date.isoformat(),
        "items": [
            {"type": ti.type, "data": to_json_value(ti.data)} for ti in trip.items
        ],
    }


def trips_from_payload(rows: List[Mapping[str, Any]]) -> List[Trip]:
    return [trip_from_payload(row) for row in rows]


def home_profile_from_payload(row: Optional[Mapping[str, Any]]) -> HomeProfile:
    if not row:
        return HomeProfile()
    radius = row.get("home_radius")
    try:
        home_radius = float(radius) if radius is not None else None
    except (TypeError, ValueError):
        home_radius = None
    return HomeProfile(
        home_location=coerce_lat_lon(row.get("home_location")),
        home_radius=home_radius,
    )


def rejection_to_payload(record: RejectionRecord) -> Dict[str, str]:
    return {
        "user_id": record.user_id,
        "item_id": record.item_id,
        "item_type": record.item_type,
        "trip_id": record.trip_id,
    }


def rejection_from_payload(row: Mapping[str, Any]) -> RejectionRecord:
    return RejectionRecord(
        user_id=str(row.get("user_id", "")),
        item_id=str(row.get("item_id", "")),
        item_type=str(row.get("item_type", "")),
        trip_id=str(row.get("trip_id", "")),
    )


__all__ = [
    "coerce_lat_lon",
    "first_route_point",
    "extract_location",
    "extract_item_date",
    "candidate_from_payload",
    "trip_item_from_payload",
    "trip_item_from_candidate",
    "trip_from_payload",
    "trip_to_payload",
    "trips_from_payload",
    "home_profile_from_payload",
    "rejection_to_payload",
    "rejection_from_payload",
]
