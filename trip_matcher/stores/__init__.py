"""Rejection, home-profile and trip stores consumed by the resolver."""

from .base import HomeProfileStore, RejectionStore, TripGateway
from .cache import CachedHomeProfileStore
from .memory import InMemoryRejectionStore, InMemoryTripStore, StaticHomeProfileStore
from .rest import RestClient, RestHomeProfileStore, RestRejectionStore, RestTripGateway

__all__ = [
    "CachedHomeProfileStore",
    "HomeProfileStore",
    "InMemoryRejectionStore",
    "InMemoryTripStore",
    "RejectionStore",
    "RestClient",
    "RestHomeProfileStore",
    "RestRejectionStore",
    "RestTripGateway",
    "StaticHomeProfileStore",
    "TripGateway",
]
