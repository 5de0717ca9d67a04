# game/buff_system.py
"""
Суммирование баффов надетых масок.

Чистая функция от состояния экипировки: ничего не кешируем и не пишем,
считаем заново на каждый запрос.
"""
from dataclasses import replace
from typing import Dict, Iterable, Optional, Tuple

from game.catalog import MaskCatalog
from game.constants import COLOR_BUFF_CAP, PACK_CD_CAP, PACK_LUCK_CAP, SLOT_MULTIPLIER
from game.types import BuffTotals, BuffType, EquipSlot, MaskDefinition, UserMask

# Тип баффа -> поле BuffTotals. VISUAL никуда не идёт
BUFF_BUCKETS: Dict[BuffType, str] = {
    BuffType.RARITY_ODDS: "pack_luck",
    BuffType.CD_REDUCTION: "timer_speed",
    BuffType.PROTODERMIS: "duplicate_eff",
    BuffType.DISCOVERY: "discovery",
    BuffType.INSPECTION: "inspection",
    BuffType.COLOR_VARIANTS: "color_variants",
    BuffType.FRIEND_BONUS: "friend_bonus",
    BuffType.PACK_STACKING: "pack_stacking",
}


def slot_multiplier(slot: EquipSlot) -> float:
    return SLOT_MULTIPLIER[slot]


def mask_buff_value(mask: UserMask, definition: MaskDefinition) -> Tuple[Optional[str], float]:
    """Вклад одной маски: (поле BuffTotals, величина)"""
    value = definition.buff_base_value * mask.level * slot_multiplier(mask.equipped_slot)
    return BUFF_BUCKETS.get(definition.buff_type), value


def compute_buffs(user_masks: Iterable[UserMask], catalog: MaskCatalog) -> BuffTotals:
    totals = {name: 0.0 for name in BUFF_BUCKETS.values()}

    for mask in user_masks:
        if mask.equipped_slot == EquipSlot.NONE:
            continue
        definition = catalog.get_mask(mask.mask_id)
        if definition is None:
            continue
        bucket, value = mask_buff_value(mask, definition)
        if bucket is not None:
            totals[bucket] += value

    return BuffTotals(
        pack_luck=min(totals["pack_luck"], PACK_LUCK_CAP),
        timer_speed=min(totals["timer_speed"], PACK_CD_CAP),
        duplicate_eff=totals["duplicate_eff"],
        discovery=totals["discovery"],
        inspection=totals["inspection"],
        color_variants=min(totals["color_variants"], COLOR_BUFF_CAP),
        # TODO: считать friend_bonus от принятых друзей, когда появится социальный граф
        friend_bonus=0.0,
        pack_stacking=totals["pack_stacking"],
    )


def with_slot(masks: Iterable[UserMask], mask_id: str, slot: EquipSlot):
    """Копия списка масок после экипировки mask_id в slot (для расчёта баффов «после»)"""
    result = []
    for mask in masks:
        if mask.mask_id == mask_id:
            result.append(replace(mask, equipped_slot=slot))
        elif slot != EquipSlot.NONE and mask.equipped_slot == slot:
            result.append(replace(mask, equipped_slot=EquipSlot.NONE))
        else:
            result.append(mask)
    return result
