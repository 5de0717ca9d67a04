# game/catalog.py
from functools import lru_cache
from typing import Dict, Iterable, List, Optional

from game.constants import MAX_LEVEL_BY_RARITY
from game.errors import InvariantViolation, NotFoundError
from game.mask_data import MASKS
from game.pack_system import PACK_SETTINGS
from game.types import BuffType, MaskDefinition, PackDefinition, Rarity


class MaskCatalog:
    """Неизменяемый каталог масок и пачек, грузится один раз"""

    def __init__(self, masks: Iterable[MaskDefinition], packs: Iterable[PackDefinition]):
        self._masks: Dict[str, MaskDefinition] = {}
        for mask in masks:
            if mask.mask_id in self._masks:
                raise InvariantViolation(f"Duplicate mask_id in catalog: {mask.mask_id}")
            if not mask.base_color_distribution:
                raise InvariantViolation(f"Mask {mask.mask_id} has no colors")
            self._masks[mask.mask_id] = mask
        self._packs: Dict[str, PackDefinition] = {p.pack_id: p for p in packs}

    @property
    def masks(self) -> List[MaskDefinition]:
        return list(self._masks.values())

    def get_mask(self, mask_id: str) -> Optional[MaskDefinition]:
        return self._masks.get(mask_id)

    def require_mask(self, mask_id: str) -> MaskDefinition:
        mask = self._masks.get(mask_id)
        if mask is None:
            raise InvariantViolation(f"Mask definition missing for mask_id={mask_id}")
        return mask

    def masks_of_rarity(self, rarity: Rarity) -> List[MaskDefinition]:
        return [m for m in self._masks.values() if m.base_rarity == rarity]

    def get_pack(self, pack_id: str) -> PackDefinition:
        pack = self._packs.get(pack_id)
        if pack is None:
            raise NotFoundError(f"Pack not found: {pack_id}")
        return pack


def mask_from_row(row: dict) -> MaskDefinition:
    rarity = Rarity(row["base_rarity"])
    return MaskDefinition(
        mask_id=row["mask_id"],
        generation=row.get("generation", 1),
        name=row["name"],
        base_rarity=rarity,
        base_color_distribution=dict(row["base_color_distribution"]),
        buff_type=BuffType(row["buff_type"]),
        buff_base_value=float(row["buff_base_value"]),
        max_level=row.get("max_level", MAX_LEVEL_BY_RARITY[rarity]),
        original_color=row["original_color"],
        transparent=row.get("transparent", False),
        origin=row.get("origin", ""),
        description=row.get("description", ""),
    )


def build_catalog(mask_rows: Optional[List[dict]] = None, pack_settings: Optional[dict] = None) -> MaskCatalog:
    mask_rows = MASKS if mask_rows is None else mask_rows
    pack_settings = PACK_SETTINGS if pack_settings is None else pack_settings

    packs = [
        PackDefinition(
            pack_id=pack_id,
            name=cfg.get("name", pack_id),
            masks_per_pack=cfg["masks_per_pack"],
            featured_generation=cfg.get("featured_generation"),
        )
        for pack_id, cfg in pack_settings.items()
    ]
    return MaskCatalog([mask_from_row(r) for r in mask_rows], packs)


@lru_cache()
def default_catalog() -> MaskCatalog:
    return build_catalog()
