"""Candidate filtering and ranking for trip auto-matching."""

from .filters import MatchingRules, filter_candidates
from .ranking import rank

__all__ = ["MatchingRules", "filter_candidates", "rank"]
