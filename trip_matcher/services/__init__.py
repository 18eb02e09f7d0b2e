"""Service layer package.

Exports high-level services consumed by save flows and the CLI.
"""

from .resolver import ResolverConfig, TripMatchResolver

__all__ = ["ResolverConfig", "TripMatchResolver"]
