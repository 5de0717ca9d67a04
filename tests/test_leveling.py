"""Tests for the per-draw essence and leveling ledger."""

from game.duplicate_system import essence_for_duplicate, new_user_mask, process_drop
from game.types import Rarity
from game.upgrade_calculator import apply_leveling, essence_to_next_level, get_level_cost
from tests.helpers import BASE_TIME, owned_mask


class TestLevelCosts:
    def test_cost_scales_with_level(self):
        assert get_level_cost(Rarity.COMMON, 1) == 5
        assert get_level_cost(Rarity.RARE, 3) == 75
        assert get_level_cost(Rarity.MYTHIC, 2) == 400

    def test_multiple_levels_in_one_pass(self):
        mask = owned_mask("u1", "7", essence=15)
        apply_leveling(mask, Rarity.COMMON)
        # 5 (1->2) + 10 (2->3)
        assert mask.level == 3
        assert mask.essence == 0

    def test_leftover_essence_kept(self):
        mask = owned_mask("u1", "1", essence=24)
        apply_leveling(mask, Rarity.RARE)
        assert mask.level == 1
        assert mask.essence == 24
        assert essence_to_next_level(mask, Rarity.RARE) == 1

    def test_never_exceeds_max_level(self):
        mask = owned_mask("u1", "13", level=1, essence=100000)
        apply_leveling(mask, Rarity.MYTHIC)
        assert mask.level == 3
        assert mask.essence == 100000 - 200 - 400
        assert essence_to_next_level(mask, Rarity.MYTHIC) == 0


class TestDuplicateEssence:
    def test_base_values(self):
        assert essence_for_duplicate(Rarity.COMMON, 0.0) == 5
        assert essence_for_duplicate(Rarity.RARE, 0.0) == 20
        assert essence_for_duplicate(Rarity.MYTHIC, 0.0) == 100

    def test_half_rounds_up(self):
        assert essence_for_duplicate(Rarity.COMMON, 0.3) == 7
        assert essence_for_duplicate(Rarity.COMMON, 0.1) == 6


class TestProcessDrop:
    def test_first_copy(self):
        mask = new_user_mask("u1", "7")
        outcome = process_drop(mask, Rarity.COMMON, "orange", 0.0, BASE_TIME)
        assert outcome == {
            "is_new": True,
            "was_color_new": True,
            "essence_awarded": 0,
            "essence_remaining": 0,
            "level_before": 1,
            "level_after": 1,
        }
        assert mask.owned_count == 1
        assert mask.unlocked_colors == ["orange"]
        assert mask.equipped_color == "orange"
        assert mask.last_acquired_at == BASE_TIME

    def test_duplicate_awards_and_levels(self):
        mask = owned_mask("u1", "7", colors=("standard",))
        outcome = process_drop(mask, Rarity.COMMON, "standard", 0.0, BASE_TIME)
        assert outcome["is_new"] is False
        assert outcome["was_color_new"] is False
        assert outcome["essence_awarded"] == 5
        assert outcome["level_before"] == 1
        assert outcome["level_after"] == 2
        assert mask.essence == 0
        assert mask.owned_count == 2

    def test_new_color_on_duplicate(self):
        mask = owned_mask("u1", "7", colors=("standard",))
        outcome = process_drop(mask, Rarity.COMMON, "lime", 0.0, BASE_TIME)
        assert outcome["was_color_new"] is True
        assert mask.unlocked_colors == ["standard", "lime"]
        # equipped color is not switched automatically
        assert mask.equipped_color == "standard"

    def test_level_never_decreases_and_essence_non_negative(self):
        mask = owned_mask("u1", "13", level=3, essence=0)
        for _ in range(5):
            outcome = process_drop(mask, Rarity.MYTHIC, "gold", 0.0, BASE_TIME)
            assert outcome["level_after"] >= outcome["level_before"]
            assert mask.essence >= 0
        assert mask.level == 3
