"""Render a trip-matching decision on an interactive map."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Union

import folium  # Using folium to build an interactive Leaflet map.

from .models import CandidateItem, HomeProfile, LatLon, Trip

PathLike = Union[str, Path]

_HOME_COLOR = "#1a9641"
_CANDIDATE_COLOR = "#2c7bb6"
_OTHER_TRIP_COLOR = "#999999"


def _map_center(
    item: CandidateItem, home_profile: Optional[HomeProfile], trips: Sequence[Trip]
) -> LatLon:
    if item.location is not None:
        return item.location
    if home_profile is not None and home_profile.home_location is not None:
        return home_profile.home_location
    for trip in trips:
        for trip_item in trip.items:
            if trip_item.location is not None:
                return trip_item.location
    raise ValueError("Nothing to plot: the item, home and trips have no coordinates")


def create_decision_map(
    item: CandidateItem,
    trips: Sequence[Trip],
    candidates: Sequence[Trip],
    *,
    home_profile: Optional[HomeProfile] = None,
    chosen: Optional[Trip] = None,
    output_html_path: Optional[PathLike] = None,
) -> folium.Map:
    """Plot the item, the home radius and every trip item.

    Candidate trips are drawn in blue (the chosen one with a heavier marker),
    other trips in grey.

    Raises:
        ValueError: When no coordinate is available to centre the map.
    """

    folium_map = folium.Map(
        location=_map_center(item, home_profile, trips), zoom_start=9, control_scale=True
    )

    if home_profile is not None and home_profile.home_location is not None:
        folium.Circle(
            location=home_profile.home_location,
            radius=home_profile.radius_km * 1000.0,
            color=_HOME_COLOR,
            fill=True,
            fill_opacity=0.15,
            tooltip=f"Home ({home_profile.radius_km:g} km)",
        ).add_to(folium_map)

    candidate_ids = {trip.id for trip in candidates}
    for trip in trips:
        is_candidate = trip.id in candidate_ids
        is_chosen = chosen is not None and trip.id == chosen.id
        color = _CANDIDATE_COLOR if is_candidate else _OTHER_TRIP_COLOR
        for trip_item in trip.items:
            if trip_item.location is None:
                continue
            folium.CircleMarker(
                location=trip_item.location,
                radius=8 if is_chosen else 5,
                color=color,
                fill=True,
                fill_color=color,
                tooltip=f"{trip.name} ({trip.start_date} -> {trip.end_date})",
            ).add_to(folium_map)

    if item.location is not None:
        folium.Marker(
            location=item.location,
            tooltip=f"New {item.type} {item.id} ({item.date:%Y-%m-%d})",
            icon=folium.Icon(color="red"),
        ).add_to(folium_map)

    if output_html_path is not None:
        output_path = Path(output_html_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        folium_map.save(str(output_path))

    return folium_map


__all__ = ["create_decision_map"]
