"""
Tests for the idempotent pack-open service.

Each simulated request gets its own engine and store instance over the
shared in-memory database, the way the HTTP layer builds one per request.
"""

import asyncio
from dataclasses import asdict

import pytest

from game.constants import STARTER_PACK_REQUEST_ID
from game.errors import GameError, PackNotReadyError, RateLimitedError
from game.pack_service import build_open_result_replay, open_pack_payload, pulls_from_result
from game.types import OpenResult, PackOpenPull, Rarity
from tests.helpers import BASE_TIME, FakeThrottle

PACK = "free_daily_v1"


async def open_once(make_engine, throttle, key, user_id="u1", **kwargs):
    return await open_pack_payload(
        make_engine(), throttle, True, user_id, PACK, key, now=BASE_TIME, **kwargs
    )


# =============================================================================
# IDEMPOTENCY
# =============================================================================


class TestIdempotency:
    @pytest.mark.asyncio
    async def test_replay_returns_identical_result(self, make_engine, seed_user, read_store):
        await seed_user(units=10)
        throttle = FakeThrottle()

        first = await open_once(make_engine, throttle, "req-1")
        throttle.advance(5000)
        second = await open_once(make_engine, throttle, "req-1")

        assert asdict(first) == asdict(second)
        progress = await read_store.get_user_pack_progress("u1", PACK)
        assert progress.fractional_units == 5
        assert len(read_store.events_for("u1", "pack_open")) == 1

    @pytest.mark.asyncio
    async def test_replay_is_not_rate_limited(self, make_engine, seed_user):
        await seed_user(units=10)
        throttle = FakeThrottle()

        first = await open_once(make_engine, throttle, "req-1")
        # still inside the throttle window
        second = await open_once(make_engine, throttle, "req-1")

        assert asdict(first) == asdict(second)

    @pytest.mark.asyncio
    async def test_new_key_opens_new_pack(self, make_engine, seed_user, read_store):
        await seed_user(units=10)
        throttle = FakeThrottle()

        await open_once(make_engine, throttle, "req-1")
        throttle.advance(1000)
        await open_once(make_engine, throttle, "req-2")

        progress = await read_store.get_user_pack_progress("u1", PACK)
        assert progress.fractional_units == 0

    @pytest.mark.asyncio
    async def test_concurrent_same_key_opens_once(self, make_engine, seed_user, read_store):
        await seed_user(units=15)
        throttle = FakeThrottle()

        results = await asyncio.gather(*[open_once(make_engine, throttle, "same-key") for _ in range(5)])

        dumped = [asdict(r) for r in results]
        assert all(d == dumped[0] for d in dumped)
        progress = await read_store.get_user_pack_progress("u1", PACK)
        assert progress.fractional_units == 10

    @pytest.mark.asyncio
    async def test_concurrent_distinct_keys_deduct_once_each(self, make_engine, seed_user, read_store):
        await seed_user(units=15)

        results = await asyncio.gather(
            *[open_once(make_engine, None, f"key-{i}") for i in range(3)]
        )

        assert len(results) == 3
        progress = await read_store.get_user_pack_progress("u1", PACK)
        assert progress.fractional_units == 0

    @pytest.mark.asyncio
    async def test_failed_open_releases_key(self, make_engine, seed_user, read_store):
        await seed_user(units=0)

        with pytest.raises(PackNotReadyError):
            await open_once(make_engine, None, "req-1")

        assert await read_store.get_pack_open("u1", "req-1") is None

    @pytest.mark.asyncio
    async def test_starter_key_is_reserved(self, make_engine, seed_user, read_store):
        await seed_user(units=5)

        with pytest.raises(GameError):
            await open_once(make_engine, None, STARTER_PACK_REQUEST_ID)

        assert await read_store.get_pack_open("u1", STARTER_PACK_REQUEST_ID) is None


# =============================================================================
# RATE LIMIT
# =============================================================================


class TestRateLimit:
    @pytest.mark.asyncio
    async def test_burst_rejected(self, make_engine, seed_user, read_store):
        await seed_user(units=10)
        throttle = FakeThrottle(window_ms=1000)

        await open_once(make_engine, throttle, "req-1")
        throttle.advance(200)
        with pytest.raises(RateLimitedError) as exc_info:
            await open_once(make_engine, throttle, "req-2")

        assert exc_info.value.status_code == 429
        assert exc_info.value.extra["retry_after_ms"] == 1000
        progress = await read_store.get_user_pack_progress("u1", PACK)
        assert progress.fractional_units == 5

    @pytest.mark.asyncio
    async def test_allowed_after_window(self, make_engine, seed_user):
        await seed_user(units=10)
        throttle = FakeThrottle(window_ms=1000)

        await open_once(make_engine, throttle, "req-1")
        throttle.advance(1000)
        result = await open_once(make_engine, throttle, "req-2")

        assert len(result.masks) == 2

    @pytest.mark.asyncio
    async def test_failed_open_does_not_hold_window(self, make_engine, seed_user):
        await seed_user(units=0)
        throttle = FakeThrottle(window_ms=1000)

        with pytest.raises(PackNotReadyError):
            await open_once(make_engine, throttle, "req-1")
        await seed_user(units=5)
        # same instant: only committed opens count against the window
        result = await open_once(make_engine, throttle, "req-2")

        assert len(result.masks) == 2


# =============================================================================
# REPLAY BUILDING
# =============================================================================


class TestReplay:
    def _pull(self, idx, mask_id):
        return PackOpenPull(
            pack_open_id="po-1",
            idx=idx,
            mask_id=mask_id,
            rarity=Rarity.COMMON,
            color="standard",
            is_new=True,
            was_color_new=True,
            essence_awarded=0,
            essence_remaining=0,
            final_essence_remaining=0,
            level_before=1,
            level_after=1,
            final_level_after=1,
            unlocked_colors=["standard"],
        )

    def test_sorted_by_idx_with_catalog_names(self, catalog):
        replay = build_open_result_replay([self._pull(1, "12"), self._pull(0, "7")], 3, catalog)

        assert [m.mask_id for m in replay.masks] == ["7", "12"]
        assert replay.masks[0].name == "Noble Hau"
        assert replay.masks[1].transparent is True
        assert replay.pity_counter == 3

    def test_unknown_mask_falls_back_to_id(self, catalog):
        replay = build_open_result_replay([self._pull(0, "999")], None, catalog)

        assert replay.masks[0].name == "999"
        assert replay.pity_counter == 0

    def test_pulls_round_trip_through_replay(self, catalog):
        original = build_open_result_replay([self._pull(0, "7"), self._pull(1, "14")], 2, catalog)
        pulls = pulls_from_result("po-2", original)

        assert [p.idx for p in pulls] == [0, 1]
        assert build_open_result_replay(pulls, 2, catalog) == OpenResult(
            masks=original.masks, pity_counter=2
        )
