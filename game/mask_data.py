# game/mask_data.py - статический каталог масок (поколение 1)
from typing import Dict, List

COMMON_PALETTE = ["standard", "orange", "perriwinkle", "lime", "tan", "light gray", "dark gray"]
RARE_PALETTE = ["standard", "red", "blue", "green", "brown", "white", "black"]


def _palette(original: str, palette: List[str]) -> Dict[str, float]:
    """standard 60%, родной цвет 20%, остальные делят 20%"""
    others = [c for c in palette if c not in ("standard", original)]
    weights = {"standard": 0.6, original: 0.2}
    for color in others:
        weights[color] = 0.2 / len(others)
    return weights


# Структура маски
# {
#     "mask_id": "1",
#     "name": "Hau",
#     "base_rarity": "RARE",
#     "buff_type": "PACK_STACKING",
#     "buff_base_value": 0.5,
#     "original_color": "red",
#     "base_color_distribution": {...},  # веса цветов, сумма не обязана быть 1
# }

MASKS = [
    # Великие маски Тоа
    {
        "mask_id": "1",
        "generation": 1,
        "name": "Hau",
        "base_rarity": "RARE",
        "buff_type": "PACK_STACKING",
        "buff_base_value": 0.5,
        "original_color": "red",
        "base_color_distribution": _palette("red", RARE_PALETTE),
        "origin": "Great Mask of Shielding, worn by Tahu",
        "description": "Adds storage for unopened packs",
    },
    {
        "mask_id": "2",
        "generation": 1,
        "name": "Kaukau",
        "base_rarity": "RARE",
        "buff_type": "PROTODERMIS",
        "buff_base_value": 0.1,
        "original_color": "blue",
        "base_color_distribution": _palette("blue", RARE_PALETTE),
        "origin": "Great Mask of Water Breathing, worn by Gali",
        "description": "Increases protodermis earned from duplicate masks",
    },
    {
        "mask_id": "3",
        "generation": 1,
        "name": "Miru",
        "base_rarity": "RARE",
        "buff_type": "DISCOVERY",
        "buff_base_value": 0.1,
        "original_color": "green",
        "base_color_distribution": _palette("green", RARE_PALETTE),
        "origin": "Great Mask of Levitation, worn by Lewa",
        "description": "Increases chance of discovering new masks you don't own",
    },
    {
        "mask_id": "4",
        "generation": 1,
        "name": "Kakama",
        "base_rarity": "RARE",
        "buff_type": "CD_REDUCTION",
        "buff_base_value": 0.05,
        "original_color": "brown",
        "base_color_distribution": _palette("brown", RARE_PALETTE),
        "origin": "Great Mask of Speed, worn by Pohatu",
        "description": "Reduces time required to earn pack units",
    },
    {
        "mask_id": "5",
        "generation": 1,
        "name": "Pakari",
        "base_rarity": "RARE",
        "buff_type": "RARITY_ODDS",
        "buff_base_value": 0.02,
        "original_color": "black",
        "base_color_distribution": _palette("black", RARE_PALETTE),
        "origin": "Great Mask of Strength, worn by Onua",
        "description": "Increases chance of higher rarity masks in packs",
    },
    {
        "mask_id": "6",
        "generation": 1,
        "name": "Akaku",
        "base_rarity": "RARE",
        "buff_type": "INSPECTION",
        "buff_base_value": 0.05,
        "original_color": "white",
        "base_color_distribution": _palette("white", RARE_PALETTE),
        "origin": "Great Mask of X-Ray Vision, worn by Kopaka",
        "description": "Reveals more about masks before they are opened",
        "transparent": True,
    },
    # Благородные маски
    {
        "mask_id": "7",
        "generation": 1,
        "name": "Noble Hau",
        "base_rarity": "COMMON",
        "buff_type": "PACK_STACKING",
        "buff_base_value": 0.1,
        "original_color": "orange",
        "base_color_distribution": _palette("orange", COMMON_PALETTE),
        "origin": "Noble Mask of Shielding",
        "description": "Adds storage for unopened packs",
    },
    {
        "mask_id": "8",
        "generation": 1,
        "name": "Noble Kaukau",
        "base_rarity": "COMMON",
        "buff_type": "PROTODERMIS",
        "buff_base_value": 0.02,
        "original_color": "perriwinkle",
        "base_color_distribution": _palette("perriwinkle", COMMON_PALETTE),
        "origin": "Noble Mask of Water Breathing",
        "description": "Increases protodermis earned from duplicate masks",
    },
    {
        "mask_id": "9",
        "generation": 1,
        "name": "Noble Miru",
        "base_rarity": "COMMON",
        "buff_type": "DISCOVERY",
        "buff_base_value": 0.02,
        "original_color": "lime",
        "base_color_distribution": _palette("lime", COMMON_PALETTE),
        "origin": "Noble Mask of Levitation",
        "description": "Increases chance of discovering new masks you don't own",
    },
    {
        "mask_id": "10",
        "generation": 1,
        "name": "Noble Kakama",
        "base_rarity": "COMMON",
        "buff_type": "CD_REDUCTION",
        "buff_base_value": 0.01,
        "original_color": "tan",
        "base_color_distribution": _palette("tan", COMMON_PALETTE),
        "origin": "Noble Mask of Speed",
        "description": "Reduces time required to earn pack units",
    },
    {
        "mask_id": "11",
        "generation": 1,
        "name": "Noble Pakari",
        "base_rarity": "COMMON",
        "buff_type": "RARITY_ODDS",
        "buff_base_value": 0.005,
        "original_color": "dark gray",
        "base_color_distribution": _palette("dark gray", COMMON_PALETTE),
        "origin": "Noble Mask of Strength",
        "description": "Increases chance of higher rarity masks in packs",
    },
    {
        "mask_id": "12",
        "generation": 1,
        "name": "Noble Akaku",
        "base_rarity": "COMMON",
        "buff_type": "INSPECTION",
        "buff_base_value": 0.01,
        "original_color": "light gray",
        "base_color_distribution": _palette("light gray", COMMON_PALETTE),
        "origin": "Noble Mask of X-Ray Vision",
        "description": "Reveals more about masks before they are opened",
        "transparent": True,
    },
    # Единственная мифическая маска поколения
    {
        "mask_id": "13",
        "generation": 1,
        "name": "Vahi",
        "base_rarity": "MYTHIC",
        "buff_type": "CD_REDUCTION",
        "buff_base_value": 0.1,
        "original_color": "gold",
        "base_color_distribution": {"gold": 1.0},
        "origin": "Legendary Mask of Time",
        "description": "Reduces time required to earn pack units",
    },
    # Маски Турага
    {
        "mask_id": "14",
        "generation": 1,
        "name": "Huna",
        "base_rarity": "COMMON",
        "buff_type": "COLOR_VARIANTS",
        "buff_base_value": 0.1,
        "original_color": "orange",
        "base_color_distribution": _palette("orange", COMMON_PALETTE),
        "origin": "Noble Mask of Concealment, worn by Turaga Vakama",
        "description": "Increases chance of rolling colors you haven't unlocked",
    },
    {
        "mask_id": "15",
        "generation": 1,
        "name": "Rau",
        "base_rarity": "COMMON",
        "buff_type": "FRIEND_BONUS",
        "buff_base_value": 0.01,
        "original_color": "perriwinkle",
        "base_color_distribution": _palette("perriwinkle", COMMON_PALETTE),
        "origin": "Noble Mask of Translation, worn by Turaga Nokama",
        "description": "Shares pack luck with friends",
    },
    {
        "mask_id": "16",
        "generation": 1,
        "name": "Mahiki",
        "base_rarity": "COMMON",
        "buff_type": "VISUAL",
        "buff_base_value": 0,
        "original_color": "lime",
        "base_color_distribution": _palette("lime", COMMON_PALETTE),
        "origin": "Noble Mask of Illusion, worn by Turaga Matau",
        "description": "Purely cosmetic - no gameplay buff",
    },
    {
        "mask_id": "17",
        "generation": 1,
        "name": "Komau",
        "base_rarity": "COMMON",
        "buff_type": "COLOR_VARIANTS",
        "buff_base_value": 0.05,
        "original_color": "tan",
        "base_color_distribution": _palette("tan", COMMON_PALETTE),
        "origin": "Noble Mask of Mind Control, worn by Turaga Onewa",
        "description": "Increases chance of rolling colors you haven't unlocked",
    },
    {
        "mask_id": "18",
        "generation": 1,
        "name": "Ruru",
        "base_rarity": "COMMON",
        "buff_type": "VISUAL",
        "buff_base_value": 0,
        "original_color": "dark gray",
        "base_color_distribution": _palette("dark gray", COMMON_PALETTE),
        "origin": "Noble Mask of Night Vision, worn by Turaga Whenua",
        "description": "Purely cosmetic - no gameplay buff",
    },
    {
        "mask_id": "19",
        "generation": 1,
        "name": "Matatu",
        "base_rarity": "COMMON",
        "buff_type": "DISCOVERY",
        "buff_base_value": 0.01,
        "original_color": "light gray",
        "base_color_distribution": _palette("light gray", COMMON_PALETTE),
        "origin": "Noble Mask of Telekinesis, worn by Turaga Nuju",
        "description": "Increases chance of discovering new masks you don't own",
        "transparent": True,
    },
]
