# game/pack_system.py
from typing import TYPE_CHECKING, AbstractSet, Callable, List, Optional

from game.constants import (
    DISCOVERY_ATTEMPTS_LIMIT,
    DISCOVERY_REROLL_CAP,
    OWNED_MASK_WEIGHT,
    RARITY_BASE_PROBS,
)
from game.errors import InvariantViolation
from game.rng import weighted_sample
from game.types import MaskDefinition, Rarity

if TYPE_CHECKING:
    from game.catalog import MaskCatalog

Rand = Callable[[], float]

PACK_SETTINGS = {
    "free_daily_v1": {
        "name": "Free Daily Pack",
        "masks_per_pack": 2,
        "featured_generation": 1,
    }
}


# ===== РЕДКОСТЬ =====

def sample_rarity(pack_luck: float, rand: Rand) -> Rarity:
    """Обычный бросок редкости с учётом удачи пачки"""
    scale = 1 + pack_luck
    rare = RARITY_BASE_PROBS["RARE"] * scale
    mythic = RARITY_BASE_PROBS["MYTHIC"] * scale
    common = max(1 - (rare + mythic), 1e-6)
    return weighted_sample(
        [Rarity.MYTHIC, Rarity.RARE, Rarity.COMMON],
        [mythic, rare, common],
        rand,
    )


def sample_rarity_force_rare_plus(pack_luck: float, rand: Rand) -> Rarity:
    """Pity: COMMON исключён из выбора"""
    scale = 1 + pack_luck
    rare = RARITY_BASE_PROBS["RARE"] * scale
    mythic = RARITY_BASE_PROBS["MYTHIC"] * scale
    return weighted_sample([Rarity.MYTHIC, Rarity.RARE], [mythic, rare], rand)


# ===== ВЫБОР МАСКИ =====

def try_sample_mask_by_rarity(
    catalog: "MaskCatalog",
    rarity: Rarity,
    rand: Rand,
    exclude: AbstractSet[str],
    owned_mask_ids: AbstractSet[str],
) -> Optional[MaskDefinition]:
    candidates = [m for m in catalog.masks_of_rarity(rarity) if m.mask_id not in exclude]
    if not candidates:
        return None
    # Имеющиеся маски не исключаем: дубликаты дают эссенцию
    weights = [OWNED_MASK_WEIGHT if m.mask_id in owned_mask_ids else 1.0 for m in candidates]
    return weighted_sample(candidates, weights, rand)


def sample_mask_by_rarity(
    catalog: "MaskCatalog",
    rarity: Rarity,
    rand: Rand,
    exclude: AbstractSet[str],
    owned_mask_ids: AbstractSet[str],
) -> MaskDefinition:
    mask = try_sample_mask_by_rarity(catalog, rarity, rand, exclude, owned_mask_ids)
    if mask is None:
        raise InvariantViolation(f"No masks available for rarity {rarity.value}")
    return mask


def discovery_reroll(
    catalog: "MaskCatalog",
    rarity: Rarity,
    rand: Rand,
    discovery_bonus: float,
    current: MaskDefinition,
    owned_mask_ids: AbstractSet[str],
) -> MaskDefinition:
    """
    Реролл в сторону ещё не открытых масок.

    Успешный бросок заменяет selected даже если кандидат уже есть у игрока,
    и цикл продолжается. Останавливаемся на первой новой маске.
    """
    if not discovery_bonus:
        return current

    selected = current
    chance = min(discovery_bonus, DISCOVERY_REROLL_CAP)
    for _ in range(DISCOVERY_ATTEMPTS_LIMIT):
        if rand() >= chance:
            break
        candidate = try_sample_mask_by_rarity(catalog, rarity, rand, {selected.mask_id}, owned_mask_ids)
        if candidate is None:
            break
        selected = candidate
        if candidate.mask_id not in owned_mask_ids:
            break
    return selected


# ===== ЦВЕТ =====

def sample_color(
    mask: MaskDefinition,
    unlocked_colors: List[str],
    color_variants: float,
    rand: Rand,
) -> str:
    """Цвет по base_color_distribution; бафф COLOR_VARIANTS усиливает неоткрытые цвета"""
    colors = list(mask.base_color_distribution.keys())
    boost = 1 + color_variants
    weights = [
        mask.base_color_distribution[c] * (boost if c not in unlocked_colors else 1.0)
        for c in colors
    ]
    return weighted_sample(colors, weights, rand)
