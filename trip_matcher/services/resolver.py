"""Trip decision resolver.

Turns a newly saved activity or spot into a trip assignment: loads the
user's prior "don't add" answers and home profile, filters and ranks the
user's trips, asks the user when needed, and hands the final choice to the
trip gateway. Failures reading the profile or rejections degrade to the most
permissive behaviour; gateway failures propagate to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from ..config import (
    MAX_PROMPT_CHOICES,
    PROMPT_CONFIRM_LABEL,
    PROMPT_DECLINE_LABEL,
    PROMPT_TITLE,
)
from ..errors import TripMatcherError
from ..geo import is_near_home
from ..matching import MatchingRules, filter_candidates, rank
from ..models import CandidateItem, HomeProfile, RejectionRecord, Trip
from ..prompts import Chooser, Prompt, PromptOption, option_pairs
from ..stores.base import HomeProfileStore, RejectionStore, TripGateway
from ..utils import utc_now

DECLINE_KEY = "decline"
CONFIRM_KEY = "confirm"
_TRIP_KEY_PREFIX = "trip:"


@dataclass(slots=True)
class ResolverConfig:
    gateway: TripGateway
    chooser: Optional[Chooser] = None
    rejection_store: Optional[RejectionStore] = None
    profile_store: Optional[HomeProfileStore] = None
    # Acting user; without one, rejections are neither read nor written
    user_id: Optional[str] = None
    rules: MatchingRules = field(default_factory=MatchingRules)
    clock: Callable[[], datetime] = utc_now
    max_prompt_choices: int = MAX_PROMPT_CHOICES
    logger: logging.Logger | None = None


class TripMatchResolver:
    def __init__(self, config: ResolverConfig) -> None:
        self.config = config
        self._log = config.logger or logging.getLogger(self.__class__.__name__)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    async def resolve(
        self,
        item: CandidateItem,
        item_name: str,
        trips: Sequence[Trip],
        *,
        home_profile: Optional[HomeProfile] = None,
        rejections: Optional[Sequence[RejectionRecord]] = None,
        prompt_user: bool = True,
        now: Optional[datetime] = None,
    ) -> Trip | None:
        """Decide which trip, if any, ``item`` belongs to.

        Args:
            item: The activity or saved spot that was just saved.
            item_name: Display name used in the confirmation prompt.
            trips: Snapshot of the user's trips.
            home_profile: Home profile; fetched from the profile store when
                omitted.
            rejections: Prior rejections for the item; fetched from the
                rejection store when omitted.
            prompt_user: When False the top candidate is added silently and
                rejections are ignored.
            now: Reference time; defaults to the configured clock.

        Returns:
            The trip the item was added to (or already belonged to), or
            ``None`` when no trip was assigned.

        Raises:
            Whatever the trip gateway raises when the final append fails.
        """

        if prompt_user and self.config.chooser is None:
            raise TripMatcherError("prompt_user=True requires a chooser")
        now = now or self.config.clock()
        trips = list(trips)

        if prompt_user:
            if rejections is None:
                rejections = await self._load_rejections(item)
            if any(
                r.item_id == item.id and r.item_type == item.type for r in rejections
            ):
                self._log.info(
                    "Item %s/%s was previously rejected for trips; not prompting",
                    item.type,
                    item.id,
                )
                return None

        if home_profile is None:
            home_profile = await self._load_home_profile()
        candidates = self.candidates_for(item, trips, home_profile, now)
        if not candidates:
            self._log.debug("No candidate trips for item %s/%s", item.type, item.id)
            return None

        if len(candidates) > 1 and prompt_user:
            return await self._choose_between(item, candidates)

        target = candidates[0]
        if target.contains(item.id, item.type):
            self._log.debug("Item %s/%s already in trip %s", item.type, item.id, target.id)
            return target
        if not prompt_user:
            await self._add(target, item)
            return target
        return await self._confirm(item, item_name, target)

    def candidates_for(
        self,
        item: CandidateItem,
        trips: Sequence[Trip],
        home_profile: Optional[HomeProfile],
        now: datetime,
    ) -> List[Trip]:
        """Return the ranked candidate trips for ``item``."""

        near_home = is_near_home(item.location, home_profile)
        home_location = home_profile.home_location if home_profile else None
        candidates = rank(
            filter_candidates(
                item,
                trips,
                now,
                near_home,
                home_location=home_location,
                rules=self.config.rules,
            ),
            now,
        )
        self._log.debug(
            "Item %s/%s near_home=%s candidates=%s",
            item.type,
            item.id,
            near_home,
            [trip.id for trip in candidates],
        )
        return candidates

    async def clear_rejections(self, item_id: str, item_type: str) -> None:
        """Forget every "don't add" answer for the item so it can be proposed again."""

        store = self.config.rejection_store
        user_id = self.config.user_id
        if store is None or user_id is None:
            return
        try:
            await store.delete(user_id, item_id, item_type)
        except Exception as exc:
            self._log.error(
                "Error clearing rejections for item %s/%s: %s",
                item_type,
                item_id,
                exc,
                exc_info=True,
            )

    async def force_add_to_trip(
        self, trip_id: str, item: CandidateItem, item_type: str
    ) -> None:
        """Add the item to ``trip_id`` regardless of matching or rejections."""

        await self.clear_rejections(item.id, item_type)
        await self.config.gateway.add_to_trip(trip_id, item, item_type)
        self._log.info("Force-added %s/%s to trip %s", item_type, item.id, trip_id)

    async def smart_add(
        self,
        item: CandidateItem,
        item_name: str,
        trips: Sequence[Trip],
        *,
        now: Optional[datetime] = None,
    ) -> Trip | None:
        """Silently file the item into its best trip; never raises."""

        try:
            return await self.resolve(item, item_name, trips, prompt_user=False, now=now)
        except Exception as exc:
            self._log.error(
                "Auto-add failed for item %s/%s: %s",
                item.type,
                item.id,
                exc,
                exc_info=True,
            )
            return None

    # ------------------------------------------------------------------
    # Prompt flows
    # ------------------------------------------------------------------
    async def _choose_between(
        self, item: CandidateItem, candidates: List[Trip]
    ) -> Trip | None:
        shown = candidates[: max(1, self.config.max_prompt_choices)]
        options = [
            PromptOption(key=f"{_TRIP_KEY_PREFIX}{trip.id}", label=trip.name)
            for trip in shown
        ]
        options.append(PromptOption(DECLINE_KEY, PROMPT_DECLINE_LABEL, "cancel"))
        if len(candidates) > len(shown):
            message = f"Found {len(candidates)} matching trips. Choose one:"
        else:
            message = "Multiple trips match this location:"
        choice = await self._ask(Prompt(PROMPT_TITLE, message, options))

        selected = next(
            (trip for trip in shown if choice == f"{_TRIP_KEY_PREFIX}{trip.id}"),
            None,
        )
        if selected is None:
            # Declined or dismissed: remember the answer for every candidate.
            await self._record_rejections(item, candidates)
            return None
        await self._add(selected, item)
        return selected

    async def _confirm(
        self, item: CandidateItem, item_name: str, target: Trip
    ) -> Trip | None:
        prompt = Prompt(
            PROMPT_TITLE,
            f'Would you like to add "{item_name}" to your trip "{target.name}"?',
            [
                PromptOption(DECLINE_KEY, PROMPT_DECLINE_LABEL),
                PromptOption(CONFIRM_KEY, PROMPT_CONFIRM_LABEL),
            ],
        )
        if await self._ask(prompt) == CONFIRM_KEY:
            await self._add(target, item)
            return target
        await self._record_rejections(item, [target])
        return None

    async def _ask(self, prompt: Prompt) -> Optional[str]:
        chooser = self.config.chooser
        if chooser is None:
            raise TripMatcherError(f"No chooser configured to answer {prompt.title!r}")
        self._log.debug("Prompting %r with options %s", prompt.title, option_pairs(prompt))
        choice = await chooser(prompt)
        if choice is None:
            self._log.debug("Prompt %r dismissed", prompt.title)
        return choice

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------
    async def _add(self, trip: Trip, item: CandidateItem) -> None:
        await self.config.gateway.add_to_trip(trip.id, item, item.type)
        self._log.info("Added %s/%s to trip %s (%s)", item.type, item.id, trip.id, trip.name)

    async def _load_rejections(self, item: CandidateItem) -> List[RejectionRecord]:
        store = self.config.rejection_store
        user_id = self.config.user_id
        if store is None or user_id is None:
            return []
        try:
            return list(await store.find(user_id, item.id, item.type))
        except Exception as exc:
            self._log.warning(
                "Error checking rejections for item %s/%s: %s", item.type, item.id, exc
            )
            return []

    async def _load_home_profile(self) -> Optional[HomeProfile]:
        store = self.config.profile_store
        user_id = self.config.user_id
        if store is None or user_id is None:
            return None
        try:
            return await store.get_home_profile(user_id)
        except Exception as exc:
            self._log.warning("Error loading home profile for user=%s: %s", user_id, exc)
            return None

    async def _record_rejections(
        self, item: CandidateItem, trips: Sequence[Trip]
    ) -> None:
        store = self.config.rejection_store
        user_id = self.config.user_id
        if store is None or user_id is None:
            self._log.debug("No rejection store/user; not recording rejection")
            return
        records = [
            RejectionRecord(
                user_id=user_id, item_id=item.id, item_type=item.type, trip_id=trip.id
            )
            for trip in trips
        ]
        try:
            await store.insert(records)
        except Exception as exc:
            self._log.error(
                "Error storing rejection for item %s/%s: %s",
                item.type,
                item.id,
                exc,
                exc_info=True,
            )
            return
        self._log.info(
            "Recorded %d rejection(s) for item %s/%s", len(records), item.type, item.id
        )


__all__ = ["ResolverConfig", "TripMatchResolver", "DECLINE_KEY", "CONFIRM_KEY"]
