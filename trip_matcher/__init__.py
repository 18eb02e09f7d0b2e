"""Trip auto-matching engine package."""

from .errors import PayloadError, TripGatewayError, TripMatcherError, TripNotFoundError
from .geo import distance_km, is_near_home
from .main import main
from .matching import MatchingRules, filter_candidates, rank
from .models import CandidateItem, HomeProfile, RejectionRecord, Trip, TripItem
from .services import ResolverConfig, TripMatchResolver

__all__ = [
    "main",
    "CandidateItem",
    "HomeProfile",
    "RejectionRecord",
    "Trip",
    "TripItem",
    "MatchingRules",
    "ResolverConfig",
    "TripMatchResolver",
    "distance_km",
    "filter_candidates",
    "is_near_home",
    "rank",
    "PayloadError",
    "TripGatewayError",
    "TripMatcherError",
    "TripNotFoundError",
]
