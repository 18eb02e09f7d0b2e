"""PostgREST-backed stores (the app's hosted database).

Requests are synchronous ``requests`` calls pushed onto a worker thread with
``asyncio.to_thread`` so the resolver's event loop is never blocked.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import requests
from requests import Session

from .. import config
from ..errors import StoreError, TripGatewayError, TripNotFoundError
from ..models import CandidateItem, HomeProfile, RejectionRecord, Trip
from ..payloads import (
    home_profile_from_payload,
    rejection_from_payload,
    rejection_to_payload,
    trip_from_payload,
    trip_item_from_candidate,
)
from ..utils import as_date, parse_iso_datetime, to_json_value
from .session import create_rest_session

LOGGER = logging.getLogger(__name__)

Params = Dict[str, str]


def _eq(value: str) -> str:
    return f"eq.{value}"


class RestClient:
    """Minimal PostgREST client: select, insert, update and delete on a table."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        *,
        access_token: Optional[str] = None,
        session: Optional[Session] = None,
        timeout: Optional[float] = None,
    ) -> None:
        base_url = base_url if base_url is not None else config.REST_BASE_URL
        if not base_url:
            raise StoreError("REST backend URL is not configured")
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key if api_key is not None else config.REST_API_KEY
        self._access_token = access_token or self._api_key
        self._session = session or create_rest_session(self._base_url)
        self._timeout = timeout or config.REQUEST_TIMEOUT

    def _url(self, table: str) -> str:
        return f"{self._base_url}/rest/v1/{table}"

    def _headers(self, extra: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._access_token}",
        }
        if extra:
            headers.update(extra)
        return headers

    def select(self, table: str, params: Params) -> List[Dict[str, Any]]:
        LOGGER.debug("GET %s params=%s", table, params)
        try:
            response = self._session.get(
                self._url(table),
                headers=self._headers(),
                params=params,
                timeout=self._timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise StoreError(f"Select on {table} failed: {exc}") from exc
        if not isinstance(payload, list):
            raise StoreError(f"Unexpected payload from {table}: {type(payload).__name__}")
        return payload

    def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> None:
        LOGGER.debug("POST %s rows=%d", table, len(rows))
        try:
            response = self._session.post(
                self._url(table),
                headers=self._headers({"Prefer": "return=minimal"}),
                json=list(rows),
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise StoreError(f"Insert into {table} failed: {exc}") from exc

    def update(self, table: str, params: Params, values: Mapping[str, Any]) -> None:
        LOGGER.debug("PATCH %s params=%s fields=%s", table, params, sorted(values))
        try:
            response = self._session.patch(
                self._url(table),
                headers=self._headers({"Prefer": "return=minimal"}),
                params=params,
                json=dict(values),
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise StoreError(f"Update of {table} failed: {exc}") from exc

    def delete(self, table: str, params: Params) -> None:
        LOGGER.debug("DELETE %s params=%s", table, params)
        try:
            response = self._session.delete(
                self._url(table),
                headers=self._headers(),
                params=params,
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise StoreError(f"Delete from {table} failed: {exc}") from exc

    def load_trips(self, user_id: str) -> List[Trip]:
        """Return the user's trips with their items embedded."""

        rows = self.select(
            config.TRIPS_TABLE,
            {
                "select": f"*,{config.TRIP_ITEMS_TABLE}(*)",
                "created_by": _eq(user_id),
                "order": "created_at.desc",
            },
        )
        return [trip_from_payload(row) for row in rows]


class RestRejectionStore:
    def __init__(self, client: RestClient) -> None:
        self._client = client

    @staticmethod
    def _params(user_id: str, item_id: str, item_type: str) -> Params:
        return {
            "user_id": _eq(user_id),
            "item_id": _eq(item_id),
            "item_type": _eq(item_type),
        }

    async def find(
        self, user_id: str, item_id: str, item_type: str
    ) -> List[RejectionRecord]:
        rows = await asyncio.to_thread(
            self._client.select,
            config.REJECTIONS_TABLE,
            self._params(user_id, item_id, item_type),
        )
        return [rejection_from_payload(row) for row in rows]

    async def insert(self, records: Sequence[RejectionRecord]) -> None:
        if not records:
            return
        rows = [rejection_to_payload(record) for record in records]
        await asyncio.to_thread(self._client.insert, config.REJECTIONS_TABLE, rows)

    async def delete(self, user_id: str, item_id: str, item_type: str) -> None:
        await asyncio.to_thread(
            self._client.delete,
            config.REJECTIONS_TABLE,
            self._params(user_id, item_id, item_type),
        )


class RestHomeProfileStore:
    def __init__(self, client: RestClient) -> None:
        self._client = client

    async def get_home_profile(self, user_id: str) -> Optional[HomeProfile]:
        rows = await asyncio.to_thread(
            self._client.select,
            config.PROFILES_TABLE,
            {"select": "home_location,home_radius", "id": _eq(user_id)},
        )
        if not rows:
            return None
        return home_profile_from_payload(rows[0])


def _widened_dates(trip_row: Mapping[str, Any], item: CandidateItem) -> Dict[str, str]:
    """Return the ``start_date``/``end_date`` changes needed to cover the item."""

    start = parse_iso_datetime(trip_row.get("start_date"))
    end = parse_iso_datetime(trip_row.get("end_date"))
    if start is None or end is None:
        return {}
    item_day = as_date(item.date)
    changes: Dict[str, str] = {}
    if item_day < as_date(start):
        changes["start_date"] = item_day.isoformat()
    if item_day > as_date(end):
        changes["end_date"] = item_day.isoformat()
    return changes


class RestTripGateway:
    """Trip gateway inserting ``trip_items`` rows for the acting user.

    An item already in the trip is left alone, and the trip's date range is
    widened when the new item falls outside it.
    """

    def __init__(self, client: RestClient, user_id: str) -> None:
        self._client = client
        self._user_id = user_id

    async def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args)
        except StoreError as exc:
            raise TripGatewayError(str(exc)) from exc

    async def add_to_trip(
        self, trip_id: str, item: CandidateItem, item_type: str
    ) -> None:
        trip_rows = await self._call(
            self._client.select,
            config.TRIPS_TABLE,
            {"select": "id,start_date,end_date", "id": _eq(trip_id)},
        )
        if not trip_rows:
            raise TripNotFoundError(f"Trip {trip_id!r} does not exist")
        trip_item = trip_item_from_candidate(item, item_type)

        existing = await self._call(
            self._client.select,
            config.TRIP_ITEMS_TABLE,
            {
                "select": "id",
                "trip_id": _eq(trip_id),
                "type": _eq(trip_item.type),
                "data->>id": _eq(item.id),
            },
        )
        if existing:
            LOGGER.info("Item %s/%s already in trip %s", trip_item.type, item.id, trip_id)
            return

        row = {
            "trip_id": trip_id,
            "type": trip_item.type,
            "data": to_json_value(trip_item.data),
            "added_by": self._user_id,
        }
        await self._call(self._client.insert, config.TRIP_ITEMS_TABLE, [row])

        changes = _widened_dates(trip_rows[0], item)
        if changes:
            LOGGER.debug("Widening trip %s dates: %s", trip_id, changes)
            await self._call(
                self._client.update,
                config.TRIPS_TABLE,
                {"id": _eq(trip_id)},
                changes,
            )


__all__ = [
    "RestClient",
    "RestHomeProfileStore",
    "RestRejectionStore",
    "RestTripGateway",
]
