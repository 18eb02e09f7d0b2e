"""TTL cache in front of a home-profile store."""

from __future__ import annotations

import logging
from typing import Optional

from cachetools import TTLCache

from ..config import HOME_PROFILE_CACHE_SIZE, HOME_PROFILE_CACHE_TTL_SECONDS
from ..models import HomeProfile
from .base import HomeProfileStore

_LOG = logging.getLogger(__name__)


class CachedHomeProfileStore:
    """Reuse fetched home profiles for a short while.

    Profiles change rarely while every save flow reads one. Misses (``None``)
    are cached too. Errors from the wrapped store are not cached.
    """

    def __init__(
        self,
        inner: HomeProfileStore,
        *,
        maxsize: int = HOME_PROFILE_CACHE_SIZE,
        ttl: float = HOME_PROFILE_CACHE_TTL_SECONDS,
    ) -> None:
        self._inner = inner
        self._enabled = ttl > 0
        self._cache: TTLCache[str, Optional[HomeProfile]] = TTLCache(
            maxsize=max(1, maxsize), ttl=max(ttl, 1)
        )

    async def get_home_profile(self, user_id: str) -> Optional[HomeProfile]:
        if self._enabled and user_id in self._cache:
            return self._cache[user_id]
        profile = await self._inner.get_home_profile(user_id)
        if self._enabled:
            self._cache[user_id] = profile
            _LOG.debug("Cached home profile for user=%s", user_id)
        return profile

    def invalidate(self, user_id: Optional[str] = None) -> None:
        if user_id is None:
            self._cache.clear()
        else:
            self._cache.pop(user_id, None)


__all__ = ["CachedHomeProfileStore"]
