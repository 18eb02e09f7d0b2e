"""Ordering of candidate trips."""

from __future__ import annotations

from datetime import datetime
from typing import List, Sequence

from ..models import Trip
from ..utils import as_date


def rank(candidates: Sequence[Trip], now: datetime) -> List[Trip]:
    """Return candidates with active trips first, then most recently ended.

    The sort is stable, so trips that tie on both keys keep their input order.
    """

    today = as_date(now)
    return sorted(
        candidates,
        key=lambda trip: (not trip.is_active(today), -trip.end_date.toordinal()),
    )


__all__ = ["rank"]
