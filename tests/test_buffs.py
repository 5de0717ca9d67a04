"""Tests for buff aggregation over equipped masks."""

import pytest

from game.buff_system import compute_buffs, mask_buff_value, with_slot
from game.pack_charge import pack_storage_cap
from game.types import BuffTotals, EquipSlot
from tests.helpers import owned_mask


class TestMaskBuffValue:
    def test_toa_slot_full_value(self, catalog):
        miru = owned_mask("u1", "3", level=2, slot=EquipSlot.TOA)
        bucket, value = mask_buff_value(miru, catalog.get_mask("3"))
        assert bucket == "discovery"
        assert value == pytest.approx(0.2)

    def test_turaga_slot_half_value(self, catalog):
        miru = owned_mask("u1", "3", level=2, slot=EquipSlot.TURAGA)
        _, value = mask_buff_value(miru, catalog.get_mask("3"))
        assert value == pytest.approx(0.1)

    def test_visual_has_no_bucket(self, catalog):
        mahiki = owned_mask("u1", "16", slot=EquipSlot.TURAGA)
        bucket, _ = mask_buff_value(mahiki, catalog.get_mask("16"))
        assert bucket is None


class TestComputeBuffs:
    def test_nothing_equipped_is_zero(self, catalog):
        masks = [owned_mask("u1", "3", level=5), owned_mask("u1", "5", level=5)]
        assert compute_buffs(masks, catalog) == BuffTotals()

    def test_discovery_from_toa(self, catalog):
        masks = [owned_mask("u1", "3", level=2, slot=EquipSlot.TOA)]
        assert compute_buffs(masks, catalog).discovery == pytest.approx(0.2)

    def test_pack_luck_sums_across_slots(self, catalog):
        # 0.02 * 5 + 0.005 * 10 * 0.5
        masks = [
            owned_mask("u1", "5", level=5, slot=EquipSlot.TOA),
            owned_mask("u1", "11", level=10, slot=EquipSlot.TURAGA),
        ]
        assert compute_buffs(masks, catalog).pack_luck == pytest.approx(0.125)

    def test_pack_luck_capped(self, catalog):
        masks = [owned_mask("u1", "5", level=20, slot=EquipSlot.TOA)]
        assert compute_buffs(masks, catalog).pack_luck == pytest.approx(0.2)

    def test_timer_speed_capped(self, catalog):
        # 0.1 * 10 = 1.0 before the cap
        masks = [owned_mask("u1", "13", level=10, slot=EquipSlot.TOA)]
        assert compute_buffs(masks, catalog).timer_speed == pytest.approx(0.6)

    def test_color_variants_capped(self, catalog):
        masks = [owned_mask("u1", "14", level=40, slot=EquipSlot.TOA)]
        assert compute_buffs(masks, catalog).color_variants == pytest.approx(1.5)

    def test_uncapped_buckets_sum(self, catalog):
        masks = [
            owned_mask("u1", "2", level=2, slot=EquipSlot.TOA),
            owned_mask("u1", "8", level=5, slot=EquipSlot.TURAGA),
        ]
        # 0.1 * 2 + 0.02 * 5 * 0.5
        assert compute_buffs(masks, catalog).duplicate_eff == pytest.approx(0.25)

    def test_friend_bonus_is_zero(self, catalog):
        masks = [owned_mask("u1", "15", level=10, slot=EquipSlot.TOA)]
        assert compute_buffs(masks, catalog).friend_bonus == 0.0

    def test_unknown_mask_ignored(self, catalog):
        masks = [owned_mask("u1", "999", level=3, slot=EquipSlot.TOA)]
        assert compute_buffs(masks, catalog) == BuffTotals()

    def test_pack_stacking_floors_into_cap(self, catalog):
        # Hau 0.5 * 3 = 1.5 -> one extra pack
        masks = [owned_mask("u1", "1", level=3, slot=EquipSlot.TOA)]
        buffs = compute_buffs(masks, catalog)
        assert buffs.pack_stacking == pytest.approx(1.5)
        assert pack_storage_cap(buffs) == 4


class TestWithSlot:
    def test_equip_clears_previous_holder(self):
        masks = [
            owned_mask("u1", "1", slot=EquipSlot.TOA),
            owned_mask("u1", "2"),
            owned_mask("u1", "14", slot=EquipSlot.TURAGA),
        ]
        after = {m.mask_id: m.equipped_slot for m in with_slot(masks, "2", EquipSlot.TOA)}
        assert after == {"1": EquipSlot.NONE, "2": EquipSlot.TOA, "14": EquipSlot.TURAGA}

    def test_unequip_leaves_others(self):
        masks = [owned_mask("u1", "1", slot=EquipSlot.TOA), owned_mask("u1", "14", slot=EquipSlot.TURAGA)]
        after = {m.mask_id: m.equipped_slot for m in with_slot(masks, "1", EquipSlot.NONE)}
        assert after == {"1": EquipSlot.NONE, "14": EquipSlot.TURAGA}

    def test_input_not_mutated(self):
        masks = [owned_mask("u1", "1", slot=EquipSlot.TOA), owned_mask("u1", "2")]
        with_slot(masks, "2", EquipSlot.TOA)
        assert masks[0].equipped_slot == EquipSlot.TOA
        assert masks[1].equipped_slot == EquipSlot.NONE
