"""Tests for rarity, mask and color selection plus the discovery reroll."""

import pytest

from game.catalog import build_catalog
from game.errors import InvariantViolation
from game.pack_system import (
    discovery_reroll,
    sample_color,
    sample_mask_by_rarity,
    sample_rarity,
    sample_rarity_force_rare_plus,
    try_sample_mask_by_rarity,
)
from game.rng import seeded_random
from game.types import Rarity


def scripted(*values):
    """RNG that replays the given values in order."""
    it = iter(values)
    return lambda: next(it)


# =============================================================================
# RARITY
# =============================================================================


class TestSampleRarity:
    def test_low_roll_is_mythic(self):
        assert sample_rarity(0.0, lambda: 0.0) == Rarity.MYTHIC

    def test_mid_roll_is_rare(self):
        # mythic 0.005, rare 0.05 -> [0.005, 0.055) is RARE
        assert sample_rarity(0.0, lambda: 0.01) == Rarity.RARE

    def test_high_roll_is_common(self):
        assert sample_rarity(0.0, lambda: 0.5) == Rarity.COMMON

    def test_pack_luck_widens_rare_band(self):
        # 0.058 is COMMON without luck, RARE with +20%
        assert sample_rarity(0.0, lambda: 0.058) == Rarity.COMMON
        assert sample_rarity(0.2, lambda: 0.058) == Rarity.RARE

    def test_force_rare_plus_never_common(self):
        rand = seeded_random("pity")
        for _ in range(500):
            assert sample_rarity_force_rare_plus(0.0, rand) in (Rarity.RARE, Rarity.MYTHIC)


# =============================================================================
# MASK SELECTION
# =============================================================================


class TestMaskSelection:
    def test_only_masks_of_requested_rarity(self, catalog):
        rand = seeded_random("rarity-pool")
        for _ in range(200):
            mask = sample_mask_by_rarity(catalog, Rarity.RARE, rand, set(), set())
            assert mask.base_rarity == Rarity.RARE

    def test_single_mythic_always_selected(self, catalog):
        rand = seeded_random("mythic")
        for _ in range(50):
            assert sample_mask_by_rarity(catalog, Rarity.MYTHIC, rand, set(), {"13"}).mask_id == "13"

    def test_empty_pool_returns_none_from_try(self, catalog):
        assert try_sample_mask_by_rarity(catalog, Rarity.MYTHIC, lambda: 0.1, {"13"}, set()) is None

    def test_empty_pool_is_invariant_violation(self):
        catalog = build_catalog(mask_rows=[])
        with pytest.raises(InvariantViolation):
            sample_mask_by_rarity(catalog, Rarity.COMMON, lambda: 0.1, set(), set())

    def test_owned_masks_are_down_weighted(self, catalog):
        rares = [m.mask_id for m in catalog.masks_of_rarity(Rarity.RARE)]
        owned = set(rares[1:])
        # total = 1 + 5 * 0.2 = 2.0; the unowned first mask covers [0, 0.5)
        mask = sample_mask_by_rarity(catalog, Rarity.RARE, lambda: 0.49, set(), owned)
        assert mask.mask_id == rares[0]


# =============================================================================
# DISCOVERY REROLL
# =============================================================================


class TestDiscoveryReroll:
    def test_no_bonus_keeps_current(self, catalog):
        current = catalog.get_mask("1")
        assert discovery_reroll(catalog, Rarity.RARE, lambda: 0.0, 0.0, current, set()) is current

    def test_failed_chance_roll_keeps_current(self, catalog):
        current = catalog.get_mask("1")
        result = discovery_reroll(catalog, Rarity.RARE, lambda: 0.9, 0.1, current, {"1"})
        assert result is current

    def test_stops_on_unowned_candidate(self, catalog):
        current = catalog.get_mask("1")
        owned = {"1", "2", "3", "4", "5"}
        # candidates exclude "1": [2, 3, 4, 5, 6] weights [.2, .2, .2, .2, 1] total 1.8
        rand = scripted(0.0, 0.99)
        result = discovery_reroll(catalog, Rarity.RARE, rand, 0.5, current, owned)
        assert result.mask_id == "6"

    def test_owned_candidate_still_replaces_selection(self, catalog):
        """A successful roll swaps the selection even when the new mask is owned."""
        current = catalog.get_mask("1")
        owned = {"1", "2", "3", "4", "5", "6"}
        # each attempt: chance roll, then pick the first candidate excluding the current one
        rand = scripted(0.0, 0.0, 0.0, 0.0, 0.0, 0.0)
        result = discovery_reroll(catalog, Rarity.RARE, rand, 0.5, current, owned)
        # 1 -> 2 -> 1 -> 2 after three attempts
        assert result.mask_id == "2"
        assert result.mask_id in owned

    def test_chance_is_capped(self, catalog):
        current = catalog.get_mask("1")
        # bonus 0.9 is capped at 0.5, so a 0.6 roll fails
        result = discovery_reroll(catalog, Rarity.RARE, lambda: 0.6, 0.9, current, {"1"})
        assert result is current

    def test_single_mask_pool_keeps_current(self, catalog):
        current = catalog.get_mask("13")
        result = discovery_reroll(catalog, Rarity.MYTHIC, lambda: 0.0, 0.5, current, {"13"})
        assert result is current


# =============================================================================
# COLOR
# =============================================================================


class TestSampleColor:
    def test_mythic_has_single_color(self, catalog):
        vahi = catalog.get_mask("13")
        rand = seeded_random("gold")
        for _ in range(20):
            assert sample_color(vahi, [], 0.0, rand) == "gold"

    def test_color_comes_from_distribution(self, catalog):
        hau = catalog.get_mask("1")
        rand = seeded_random("colors")
        for _ in range(100):
            assert sample_color(hau, [], 0.0, rand) in hau.base_color_distribution

    def test_low_roll_is_standard(self, catalog):
        assert sample_color(catalog.get_mask("1"), [], 0.0, lambda: 0.0) == "standard"

    def test_color_variants_boosts_locked_colors(self, catalog):
        hau = catalog.get_mask("1")
        # standard unlocked (0.6), everything else boosted x2.5 -> total 0.6 + 1.0 = 1.6
        # 0.5 * 1.6 = 0.8 lands past the standard bucket
        assert sample_color(hau, [], 0.0, lambda: 0.5) == "standard"
        assert sample_color(hau, ["standard"], 1.5, lambda: 0.5) != "standard"
