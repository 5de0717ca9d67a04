# game/upgrade_calculator.py
from game.constants import LEVEL_BASE_BY_RARITY, MAX_LEVEL_BY_RARITY
from game.types import Rarity, UserMask


def get_level_cost(rarity: Rarity, level: int) -> int:
    """Сколько эссенции стоит переход с level на level + 1"""
    return LEVEL_BASE_BY_RARITY[rarity] * level


def get_max_level(rarity: Rarity) -> int:
    return MAX_LEVEL_BY_RARITY[rarity]


def apply_leveling(mask: UserMask, rarity: Rarity) -> UserMask:
    """Тратим эссенцию на уровни, пока хватает (за один дроп может быть несколько уровней)"""
    max_level = get_max_level(rarity)
    while mask.level < max_level:
        cost = get_level_cost(rarity, mask.level)
        if mask.essence < cost:
            break
        mask.essence -= cost
        mask.level += 1
    return mask


def essence_to_next_level(mask: UserMask, rarity: Rarity) -> int:
    """Сколько эссенции не хватает до следующего уровня (0 на максимуме)"""
    if mask.level >= get_max_level(rarity):
        return 0
    return max(get_level_cost(rarity, mask.level) - mask.essence, 0)
