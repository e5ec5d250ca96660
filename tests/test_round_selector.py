"""
Antakshari Round Shuffler - Round Selector Tests

Tests for antakshari/services/round_selector.py. Validates:
- Host rounds follow the rotation table in order and wrap around
- The cursor is created on first use and persisted after each advance
- Rotation codes missing from the catalog are skipped
- Players are refused while locked, with no catalog change
- Player draws never touch the shared selection or the cursor
- Player draws respect the per-language sample bound
- Concurrent host advances do not repeat a slot
"""

import asyncio
import random

import pytest

from antakshari.config import STATE_SHUFFLE_INDEX, STATE_SHUFFLE_LOCKED
from antakshari.errors import LockedError
from antakshari.rotation import FIXED_ROTATION, build_rotation
from antakshari.services.round_selector import (
    MODE_RANDOM,
    MODE_RIGGED,
    advance_round,
    draw_random_round,
)
from tests.conftest import (
    add_songs,
    codes_for,
    codes_of,
    run,
    selected_codes,
    selection_snapshot,
    set_state,
    state_rows,
)

# ===========================================================================
# Host (rigged) rounds
# ===========================================================================


class TestHostRotation:
    """The host walks the fixed rotation."""

    def test_first_advance_uses_slot_zero(self, host, full_catalog):
        result = run(advance_round(host))
        assert result.mode == MODE_RIGGED
        assert result.slot == 0
        assert codes_of(result.songs) == set(FIXED_ROTATION[0])
        assert selected_codes() == set(FIXED_ROTATION[0])

    def test_cursor_created_on_first_read(self, host, full_catalog):
        assert STATE_SHUFFLE_INDEX not in state_rows()
        run(advance_round(host))
        assert state_rows()[STATE_SHUFFLE_INDEX] == 1

    def test_consecutive_advances_follow_table(self, host, full_catalog):
        length = len(FIXED_ROTATION)
        for n in range(length * 2 + 1):
            result = run(advance_round(host))
            assert result.slot == n % length
            assert codes_of(result.songs) == set(FIXED_ROTATION[n % length])

    def test_full_cycle_returns_cursor_to_start(self, host, full_catalog):
        first = run(advance_round(host))
        for _ in range(len(FIXED_ROTATION) - 1):
            run(advance_round(host))
        assert state_rows()[STATE_SHUFFLE_INDEX] == 0

        repeat = run(advance_round(host))
        assert repeat.slot == first.slot
        assert codes_of(repeat.songs) == codes_of(first.songs)

    def test_cursor_at_last_slot_wraps_to_zero(self, host, full_catalog):
        set_state(STATE_SHUFFLE_INDEX, 3)
        result = run(advance_round(host))
        assert result.slot == 3
        assert result.next_index == 0
        assert codes_of(result.songs) == set(FIXED_ROTATION[3])
        assert state_rows()[STATE_SHUFFLE_INDEX] == 0

    def test_out_of_range_cursor_is_reduced(self, host, full_catalog):
        set_state(STATE_SHUFFLE_INDEX, 9)
        result = run(advance_round(host))
        assert result.slot == 9 % len(FIXED_ROTATION)
        assert state_rows()[STATE_SHUFFLE_INDEX] == (9 + 1) % len(FIXED_ROTATION)

    def test_missing_code_is_skipped(self, host):
        add_songs(c for c in codes_for("HBE", 6) if c != "H6")
        set_state(STATE_SHUFFLE_INDEX, 2)

        result = run(advance_round(host))

        assert result.slot == 2
        assert len(result.songs) == 14
        assert "H6" not in codes_of(result.songs)
        assert codes_of(result.songs) == set(FIXED_ROTATION[2]) - {"H6"}

    def test_previous_selection_is_cleared(self, host, full_catalog):
        add_songs(["H7", "E9"])
        run(advance_round(host))
        run(advance_round(host))
        assert selected_codes() == set(FIXED_ROTATION[1])
        snapshot = selection_snapshot()
        assert snapshot["H7"] is False
        assert snapshot["E9"] is False

    def test_host_ignores_lock(self, host, full_catalog):
        set_state(STATE_SHUFFLE_LOCKED, 1)
        result = run(advance_round(host))
        assert result.persisted
        assert selected_codes() == set(FIXED_ROTATION[0])

    def test_custom_rotation_is_used(self, host, full_catalog):
        rotation = build_rotation([["H1", "B1"], ["E2"]])
        first = run(advance_round(host, rotation=rotation))
        second = run(advance_round(host, rotation=rotation))
        third = run(advance_round(host, rotation=rotation))
        assert codes_of(first.songs) == {"H1", "B1"}
        assert codes_of(second.songs) == {"E2"}
        assert codes_of(third.songs) == {"H1", "B1"}

    def test_songs_returned_are_flagged_selected(self, host, full_catalog):
        result = run(advance_round(host))
        assert all(song["is_selected"] is True for song in result.songs)

    def test_concurrent_advances_take_distinct_slots(self, host, full_catalog):
        async def _both():
            return await asyncio.gather(advance_round(host), advance_round(host))

        first, second = run(_both())
        assert {first.slot, second.slot} == {0, 1}
        assert state_rows()[STATE_SHUFFLE_INDEX] == 2


# ===========================================================================
# Player (random) rounds
# ===========================================================================


class TestPlayerRounds:
    """Players get private random draws."""

    def test_locked_round_refuses_player(self, player, full_catalog):
        set_state(STATE_SHUFFLE_LOCKED, 1)
        before = selection_snapshot()
        with pytest.raises(LockedError):
            run(advance_round(player))
        assert selection_snapshot() == before

    def test_unlocked_round_gives_random_mode(self, player, full_catalog):
        result = run(advance_round(player))
        assert result.mode == MODE_RANDOM
        assert not result.persisted
        assert result.slot is None

    def test_draw_does_not_touch_selection(self, host, player, full_catalog):
        run(advance_round(host))
        before = selection_snapshot()
        cursor_before = state_rows()[STATE_SHUFFLE_INDEX]

        for _ in range(5):
            run(advance_round(player))

        assert selection_snapshot() == before
        assert state_rows()[STATE_SHUFFLE_INDEX] == cursor_before

    def test_draw_does_not_create_cursor(self, player, full_catalog):
        run(advance_round(player))
        assert STATE_SHUFFLE_INDEX not in state_rows()

    def test_at_most_five_per_language(self, player):
        add_songs(codes_for("HBE", 8))
        result = run(advance_round(player, rng=random.Random(7)))
        by_language = {}
        for song in result.songs:
            by_language.setdefault(song["language"], []).append(song)
        assert set(by_language) == {"Hindi", "Bengali", "English"}
        assert all(len(songs) == 5 for songs in by_language.values())

    def test_small_language_is_taken_whole(self, player):
        add_songs(codes_for("H", 8) + ["B1", "B2"])
        result = run(advance_round(player))
        bengali = [s for s in result.songs if s["language"] == "Bengali"]
        hindi = [s for s in result.songs if s["language"] == "Hindi"]
        assert codes_of(bengali) == {"B1", "B2"}
        assert len(hindi) == 5

    def test_no_duplicates_in_draw(self, player):
        add_songs(codes_for("HBE", 7))
        result = run(draw_random_round(rng=random.Random(1)))
        ids = [s["id"] for s in result.songs]
        assert len(ids) == len(set(ids))

    def test_seeded_rng_is_reproducible(self):
        add_songs(codes_for("HBE", 9))
        a = run(draw_random_round(rng=random.Random(42)))
        b = run(draw_random_round(rng=random.Random(42)))
        assert [s["id"] for s in a.songs] == [s["id"] for s in b.songs]

    def test_empty_catalog_gives_empty_draw(self, player):
        result = run(advance_round(player))
        assert result.songs == []

    def test_custom_sample_size(self):
        add_songs(codes_for("HBE", 6))
        result = run(draw_random_round(sample_size=2))
        assert len(result.songs) == 6
