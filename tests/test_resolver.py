"""Scenario tests for the trip decision resolver."""

from __future__ import annotations

import asyncio
import logging
from typing import List

import pytest

from trip_matcher.errors import TripMatcherError, TripNotFoundError
from trip_matcher.models import HomeProfile, RejectionRecord, TripItem
from trip_matcher.prompts import Prompt, PromptOption, option_pairs
from trip_matcher.services.resolver import CONFIRM_KEY, DECLINE_KEY
from trip_matcher.stores import InMemoryRejectionStore

from conftest import (
    HOME,
    NOW,
    TODAY,
    USER,
    days,
    make_item,
    make_resolver,
    make_trip,
    north_of,
)

AWAY = (45.0, 7.0)


class FailingRejectionStore(InMemoryRejectionStore):
    def __init__(self, *, fail_find=False, fail_insert=False, fail_delete=False):
        super().__init__()
        self.fail_find = fail_find
        self.fail_insert = fail_insert
        self.fail_delete = fail_delete

    async def find(self, user_id, item_id, item_type):
        if self.fail_find:
            raise RuntimeError("rejections unavailable")
        return await super().find(user_id, item_id, item_type)

    async def insert(self, records):
        if self.fail_insert:
            raise RuntimeError("insert failed")
        await super().insert(records)

    async def delete(self, user_id, item_id, item_type):
        if self.fail_delete:
            raise RuntimeError("delete failed")
        await super().delete(user_id, item_id, item_type)


class FailingProfileStore:
    async def get_home_profile(self, user_id):
        raise RuntimeError("profile unavailable")


def _three_matching_trips():
    return [
        make_trip("older", TODAY - days(10), TODAY - days(6), [north_of(AWAY, 5.0)]),
        make_trip("active", TODAY - days(1), TODAY + days(2), [north_of(AWAY, 8.0)]),
        make_trip("recent", TODAY - days(5), TODAY - days(2), [north_of(AWAY, 3.0)]),
    ]


# --- Single candidate -----------------------------------------------
def test_single_match_confirmed_adds_to_trip(home_profile: HomeProfile) -> None:
    item = make_item(north_of(HOME, 10.0))
    trip = make_trip("active", TODAY - days(1), TODAY + days(2), [north_of(HOME, 15.0)])
    resolver, store, rejections, chooser = make_resolver(
        [trip], responses=[CONFIRM_KEY], home_profile=home_profile
    )

    result = asyncio.run(resolver.resolve(item, "Morning Run", [trip]))

    assert result is trip
    assert store.add_calls == [("active", "item-1", "activity")]
    assert len(chooser.prompts) == 1
    prompt = chooser.prompts[0]
    assert "Morning Run" in prompt.message and trip.name in prompt.message
    assert prompt.keys() == [DECLINE_KEY, CONFIRM_KEY]
    assert rejections.records == []


def test_single_match_declined_records_one_rejection() -> None:
    trip = make_trip("t", TODAY - days(1), TODAY, [north_of(AWAY, 5.0)])
    resolver, store, rejections, _ = make_resolver([trip], responses=[DECLINE_KEY])

    result = asyncio.run(resolver.resolve(make_item(AWAY), "Spot", [trip]))

    assert result is None
    assert store.add_calls == []
    assert rejections.records == [
        RejectionRecord(user_id=USER, item_id="item-1", item_type="activity", trip_id="t")
    ]


def test_dismissed_prompt_is_treated_as_decline() -> None:
    trip = make_trip("t", TODAY - days(1), TODAY)
    resolver, store, rejections, _ = make_resolver([trip], responses=[None])

    assert asyncio.run(resolver.resolve(make_item(AWAY), "Spot", [trip])) is None
    assert store.add_calls == []
    assert [r.trip_id for r in rejections.records] == ["t"]


def test_silent_mode_adds_without_prompting() -> None:
    trip = make_trip("t", TODAY - days(1), TODAY)
    resolver, store, _, chooser = make_resolver([trip], with_chooser=False)

    result = asyncio.run(resolver.resolve(make_item(AWAY), "x", [trip], prompt_user=False))

    assert result is trip
    assert store.add_calls == [("t", "item-1", "activity")]
    assert chooser is None


def test_item_already_in_trip_is_idempotent() -> None:
    trip = make_trip("t", TODAY - days(1), TODAY)
    trip.items.append(TripItem(item_id="item-1", type="activity", location=AWAY))
    resolver, store, _, chooser = make_resolver([trip])

    first = asyncio.run(resolver.resolve(make_item(AWAY), "x", [trip], prompt_user=False))
    second = asyncio.run(resolver.resolve(make_item(AWAY), "x", [trip]))

    assert first is trip and second is trip
    assert store.add_calls == []
    assert chooser.prompts == []


def test_same_id_with_other_type_is_not_a_duplicate() -> None:
    trip = make_trip("t", TODAY - days(1), TODAY)
    trip.items.append(TripItem(item_id="item-1", type="spot", location=AWAY))
    resolver, store, _, _ = make_resolver([trip])

    asyncio.run(resolver.resolve(make_item(AWAY), "x", [trip], prompt_user=False))

    assert store.add_calls == [("t", "item-1", "activity")]


# --- Multiple candidates --------------------------------------------
def test_multiple_matches_offer_top_two_and_decline_records_all() -> None:
    trips = _three_matching_trips()
    resolver, store, rejections, chooser = make_resolver(trips, responses=[DECLINE_KEY])

    result = asyncio.run(resolver.resolve(make_item(AWAY), "Lunch", trips))

    assert result is None
    assert store.add_calls == []
    prompt = chooser.prompts[0]
    labels = [label for _, label in option_pairs(prompt)]
    assert labels == ["Trip active", "Trip recent", "Don't add to trips"]
    assert prompt.options[-1].style == "cancel"
    assert prompt.message == "Found 3 matching trips. Choose one:"
    assert sorted(r.trip_id for r in rejections.records) == ["active", "older", "recent"]


def test_multiple_matches_choosing_a_trip_adds_to_it() -> None:
    trips = _three_matching_trips()
    resolver, store, rejections, _ = make_resolver(trips, responses=[1])

    result = asyncio.run(resolver.resolve(make_item(AWAY), "Lunch", trips))

    assert result is not None and result.id == "recent"
    assert store.add_calls == [("recent", "item-1", "activity")]
    assert rejections.records == []


def test_two_matches_use_short_message() -> None:
    trips = _three_matching_trips()[1:]
    resolver, _, _, chooser = make_resolver(trips, responses=[None])

    asyncio.run(resolver.resolve(make_item(AWAY), "Lunch", trips))

    assert chooser.prompts[0].message == "Multiple trips match this location:"


def test_multiple_matches_silent_mode_picks_best_ranked() -> None:
    trips = _three_matching_trips()
    resolver, store, _, _ = make_resolver(trips, with_chooser=False)

    result = asyncio.run(resolver.resolve(make_item(AWAY), "x", trips, prompt_user=False))

    assert result is not None and result.id == "active"
    assert store.add_calls == [("active", "item-1", "activity")]


# --- Rejections -----------------------------------------------------
def test_prior_rejection_for_any_trip_suppresses_prompt() -> None:
    trip = make_trip("t", TODAY - days(1), TODAY)
    prior = [RejectionRecord(USER, "item-1", "activity", "some-other-trip")]
    resolver, store, _, chooser = make_resolver([trip], rejections=prior)

    assert asyncio.run(resolver.resolve(make_item(AWAY), "x", [trip])) is None
    assert chooser.prompts == []
    assert store.add_calls == []


def test_explicit_rejections_argument_is_used() -> None:
    trip = make_trip("t", TODAY - days(1), TODAY)
    resolver, _, _, chooser = make_resolver([trip])
    prior = [RejectionRecord(USER, "item-1", "activity", "t")]

    assert asyncio.run(resolver.resolve(make_item(AWAY), "x", [trip], rejections=prior)) is None
    assert chooser.prompts == []


def test_rejection_for_other_item_type_does_not_suppress() -> None:
    trip = make_trip("t", TODAY - days(1), TODAY)
    prior = [RejectionRecord(USER, "item-1", "spot", "t")]
    resolver, store, _, _ = make_resolver([trip], rejections=prior, responses=[CONFIRM_KEY])

    assert asyncio.run(resolver.resolve(make_item(AWAY), "x", [trip])) is trip
    assert store.add_calls == [("t", "item-1", "activity")]


def test_silent_mode_ignores_rejections() -> None:
    trip = make_trip("t", TODAY - days(1), TODAY)
    prior = [RejectionRecord(USER, "item-1", "activity", "t")]
    resolver, store, _, _ = make_resolver([trip], rejections=prior)

    assert asyncio.run(resolver.resolve(make_item(AWAY), "x", [trip], prompt_user=False)) is trip
    assert store.add_calls == [("t", "item-1", "activity")]


def test_rejection_lookup_failure_is_treated_as_none(
    caplog: pytest.LogCaptureFixture,
) -> None:
    trip = make_trip("t", TODAY - days(1), TODAY)
    resolver, store, _, _ = make_resolver(
        [trip],
        responses=[CONFIRM_KEY],
        rejection_store=FailingRejectionStore(fail_find=True),
    )

    with caplog.at_level(logging.WARNING, logger="TripMatchResolver"):
        result = asyncio.run(resolver.resolve(make_item(AWAY), "x", [trip]))

    assert result is trip
    assert "error checking rejections" in caplog.text.lower()


def test_rejection_insert_failure_is_logged_and_swallowed(
    caplog: pytest.LogCaptureFixture,
) -> None:
    trip = make_trip("t", TODAY - days(1), TODAY)
    resolver, store, _, _ = make_resolver(
        [trip],
        responses=[DECLINE_KEY],
        rejection_store=FailingRejectionStore(fail_insert=True),
    )

    with caplog.at_level(logging.ERROR, logger="TripMatchResolver"):
        result = asyncio.run(resolver.resolve(make_item(AWAY), "x", [trip]))

    assert result is None
    assert store.add_calls == []
    assert "error storing rejection" in caplog.text.lower()


def test_without_user_rejections_are_not_recorded() -> None:
    trip = make_trip("t", TODAY - days(1), TODAY)
    resolver, _, rejections, _ = make_resolver([trip], responses=[DECLINE_KEY], user_id=None)

    assert asyncio.run(resolver.resolve(make_item(AWAY), "x", [trip])) is None
    assert rejections.records == []


# --- Home profile ---------------------------------------------------
def test_no_home_configured_uses_travel_rules() -> None:
    # 20 days old: too old for home rules (14), fine for travel rules (30)
    end = TODAY - days(20)
    trip = make_trip("t", end - days(2), end, [north_of(HOME, 60.0)])
    item = make_item(HOME, when=NOW - days(20))
    resolver, _, _, _ = make_resolver([trip], home_profile=HomeProfile())

    result = asyncio.run(resolver.resolve(item, "x", [trip], prompt_user=False))

    assert result is trip


def test_home_rules_apply_when_home_configured(home_profile: HomeProfile) -> None:
    end = TODAY - days(20)
    trip = make_trip("t", end - days(2), end, [north_of(HOME, 60.0)])
    item = make_item(HOME, when=NOW - days(20))
    resolver, store, _, _ = make_resolver([trip], home_profile=home_profile)

    assert asyncio.run(resolver.resolve(item, "x", [trip], prompt_user=False)) is None
    assert store.add_calls == []


def test_home_profile_failure_degrades_to_no_home(
    caplog: pytest.LogCaptureFixture,
) -> None:
    end = TODAY - days(20)
    trip = make_trip("t", end - days(2), end)
    item = make_item(HOME, when=NOW - days(20))
    resolver, _, _, _ = make_resolver([trip], profile_store=FailingProfileStore())

    with caplog.at_level(logging.WARNING, logger="TripMatchResolver"):
        result = asyncio.run(resolver.resolve(item, "x", [trip], prompt_user=False))

    assert result is trip
    assert "error loading home profile" in caplog.text.lower()


def test_explicit_home_profile_overrides_store(home_profile: HomeProfile) -> None:
    item = make_item(north_of(HOME, 0.5))
    local = make_trip("local", TODAY - days(1), TODAY, [north_of(HOME, 25.5)])
    with_profile, store, _, _ = make_resolver([local])

    result = asyncio.run(
        with_profile.resolve(
            item, "x", [local], prompt_user=False, home_profile=home_profile
        )
    )

    # Near home the local trip is held to the 20 km cap
    assert result is None
    assert store.add_calls == []

    other = make_trip("local", TODAY - days(1), TODAY, [north_of(HOME, 25.5)])
    without_profile, _, _, _ = make_resolver([other])
    assert asyncio.run(without_profile.resolve(item, "x", [other], prompt_user=False)) is other


# --- Edge cases -----------------------------------------------------
def test_no_candidates_returns_none_without_prompt() -> None:
    trip = make_trip("old", TODAY - days(90), TODAY - days(80))
    resolver, store, _, chooser = make_resolver([trip])

    assert asyncio.run(resolver.resolve(make_item(AWAY), "x", [trip])) is None
    assert chooser.prompts == []
    assert store.add_calls == []


def test_prompting_without_chooser_is_a_configuration_error() -> None:
    resolver, _, _, _ = make_resolver([], with_chooser=False)
    with pytest.raises(TripMatcherError):
        asyncio.run(resolver.resolve(make_item(AWAY), "x", []))


def test_prompt_without_chooser_raises_matcher_error() -> None:
    resolver, _, _, _ = make_resolver([], with_chooser=False)
    prompt = Prompt("Add to Trip?", "Pick one", [PromptOption(DECLINE_KEY, "No")])
    with pytest.raises(TripMatcherError, match="No chooser configured"):
        asyncio.run(resolver._ask(prompt))


def test_gateway_failure_propagates_and_keeps_no_rejection() -> None:
    trip = make_trip("t", TODAY - days(1), TODAY)
    resolver, store, rejections, _ = make_resolver([trip], responses=[CONFIRM_KEY])
    store.remove("t")  # deleted while the user was being asked

    with pytest.raises(TripNotFoundError):
        asyncio.run(resolver.resolve(make_item(AWAY), "x", [trip]))
    assert store.add_calls == [("t", "item-1", "activity")]
    assert rejections.records == []


def test_candidates_for_and_configured_clock() -> None:
    trip = make_trip("t", TODAY - days(1), TODAY)
    resolver, _, _, _ = make_resolver([trip])
    candidates = resolver.candidates_for(make_item(AWAY), [trip], None, NOW)
    assert [t.id for t in candidates] == ["t"]
    assert resolver.config.clock() == NOW


# --- Auxiliary operations -------------------------------------------
def test_clear_rejections_removes_only_this_item() -> None:
    prior: List[RejectionRecord] = [
        RejectionRecord(USER, "item-1", "activity", "a"),
        RejectionRecord(USER, "item-1", "activity", "b"),
        RejectionRecord(USER, "item-2", "activity", "a"),
        RejectionRecord("someone-else", "item-1", "activity", "a"),
    ]
    resolver, _, rejections, _ = make_resolver([], rejections=prior)

    asyncio.run(resolver.clear_rejections("item-1", "activity"))

    assert rejections.records == prior[2:]


def test_clear_rejections_failure_is_swallowed(caplog: pytest.LogCaptureFixture) -> None:
    resolver, _, _, _ = make_resolver(
        [], rejection_store=FailingRejectionStore(fail_delete=True)
    )
    with caplog.at_level(logging.ERROR, logger="TripMatchResolver"):
        asyncio.run(resolver.clear_rejections("item-1", "activity"))
    assert "error clearing rejections" in caplog.text.lower()


def test_force_add_clears_rejections_then_adds() -> None:
    trip = make_trip("t", TODAY - days(200), TODAY - days(190))
    prior = [RejectionRecord(USER, "item-1", "activity", "t")]
    resolver, store, rejections, chooser = make_resolver([trip], rejections=prior)

    asyncio.run(resolver.force_add_to_trip("t", make_item(AWAY), "activity"))

    assert rejections.records == []
    assert store.add_calls == [("t", "item-1", "activity")]
    assert chooser.prompts == []
    assert trip.contains("item-1", "activity")


def test_force_add_propagates_gateway_errors() -> None:
    resolver, _, _, _ = make_resolver([])
    with pytest.raises(TripNotFoundError):
        asyncio.run(resolver.force_add_to_trip("missing", make_item(AWAY), "activity"))


def test_smart_add_reports_gateway_failure_as_none(
    caplog: pytest.LogCaptureFixture,
) -> None:
    trip = make_trip("t", TODAY - days(1), TODAY)
    resolver, store, _, _ = make_resolver([trip])
    store.remove("t")

    with caplog.at_level(logging.ERROR, logger="TripMatchResolver"):
        result = asyncio.run(resolver.smart_add(make_item(AWAY), "x", [trip]))

    assert result is None
    assert "auto-add failed" in caplog.text.lower()


def test_smart_add_files_item_silently() -> None:
    trip = make_trip("t", TODAY - days(1), TODAY)
    resolver, store, _, chooser = make_resolver([trip])

    assert asyncio.run(resolver.smart_add(make_item(AWAY), "x", [trip])) is trip
    assert chooser.prompts == []
    assert store.add_calls == [("t", "item-1", "activity")]
