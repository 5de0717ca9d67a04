# game/duplicate_system.py
import math
from datetime import datetime
from typing import Dict, Optional

from game.constants import DUPLICATE_ESSENCE_BY_RARITY
from game.pack_charge import utcnow
from game.types import EquipSlot, Rarity, UserMask
from game.upgrade_calculator import apply_leveling


def new_user_mask(user_id: str, mask_id: str) -> UserMask:
    """Пустая запись: маска ещё ни разу не выпадала"""
    return UserMask(
        user_id=user_id,
        mask_id=mask_id,
        owned_count=0,
        essence=0,
        level=1,
        equipped_slot=EquipSlot.NONE,
        unlocked_colors=[],
        equipped_color=None,
    )


def essence_for_duplicate(rarity: Rarity, duplicate_eff: float) -> int:
    """Эссенция за дубликат с учётом баффа PROTODERMIS"""
    # округление половинок вверх, не банковское
    return int(math.floor(DUPLICATE_ESSENCE_BY_RARITY[rarity] * (1 + duplicate_eff) + 0.5))


def process_drop(
    mask: UserMask,
    rarity: Rarity,
    color: str,
    duplicate_eff: float,
    now: Optional[datetime] = None,
) -> Dict:
    """
    Применить одну выпавшую маску к прогрессу игрока.

    Дубликат даёт эссенцию, новый цвет добавляется в unlocked_colors,
    затем эссенция автоматически тратится на уровни.
    """
    is_new = mask.owned_count == 0

    essence_awarded = 0
    if not is_new:
        essence_awarded = essence_for_duplicate(rarity, duplicate_eff)
        mask.essence += essence_awarded

    level_before = mask.level
    mask.owned_count += 1

    was_color_new = color not in mask.unlocked_colors
    if was_color_new:
        mask.unlocked_colors = mask.unlocked_colors + [color]
    if mask.equipped_color is None:
        mask.equipped_color = color

    mask.last_acquired_at = now or utcnow()
    apply_leveling(mask, rarity)

    return {
        "is_new": is_new,
        "was_color_new": was_color_new,
        "essence_awarded": essence_awarded,
        "essence_remaining": mask.essence,
        "level_before": level_before,
        "level_after": mask.level,
    }


def grant_mask(mask: UserMask, color: str, now: Optional[datetime] = None) -> UserMask:
    """Подарок: +1 экземпляр и цвет без эссенции, цвет сразу надевается"""
    mask.owned_count += 1
    if color not in mask.unlocked_colors:
        mask.unlocked_colors = mask.unlocked_colors + [color]
    mask.equipped_color = color
    mask.last_acquired_at = now or utcnow()
    return mask
