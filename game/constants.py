# game/constants.py

# Базовые шансы редкости (до бонуса удачи)
RARITY_BASE_PROBS = {
    "MYTHIC": 0.005,
    "RARE": 0.05,
    "COMMON": 0.945,
}

# Discovery: шанс реролла ограничен сверху, попыток не больше трёх
DISCOVERY_REROLL_CAP = 0.5
DISCOVERY_ATTEMPTS_LIMIT = 3

# Вес уже имеющейся маски при выборе внутри редкости
OWNED_MASK_WEIGHT = 0.2

# Капы баффов
PACK_LUCK_CAP = 0.2  # 20%
PACK_CD_CAP = 0.60  # 60%
COLOR_BUFF_CAP = 1.5  # 150%

# Pity: после 20 пачек без RARE+ первая маска гарантированно RARE+
PITY_THRESHOLD = 20

GLOBAL_SEED_SALT = "kanohi-server-salt"

# Эссенция за дубликат
DUPLICATE_ESSENCE_BY_RARITY = {
    "COMMON": 5,
    "RARE": 20,
    "MYTHIC": 100,
}

# Стоимость уровня: LEVEL_BASE * текущий уровень
LEVEL_BASE_BY_RARITY = {
    "COMMON": 5,
    "RARE": 25,
    "MYTHIC": 200,
}

MAX_LEVEL_BY_RARITY = {
    "COMMON": 10,
    "RARE": 5,
    "MYTHIC": 3,
}

# Множитель баффа по слоту
SLOT_MULTIPLIER = {
    "TOA": 1.0,
    "TURAGA": 0.5,
    "NONE": 0.0,
}

# Накопление пачек: 5 юнитов за 6 часов -> 1 пачка
PACK_UNIT_SECONDS = 21600 / 5
PACK_UNITS_PER_PACK = 5

# Сколько целых пачек можно копить без баффов PACK_STACKING
BASE_PACK_STORAGE_CAP = 3

DEFAULT_PACK_ID = "free_daily_v1"

PACK_OPEN_RATE_LIMIT_MS = 1000

STANDARD_COLOR = "standard"

# Стартовые награды: одна маска на выбор и одна пачка только из COMMON
STARTER_MASK_IDS = ("1", "2", "3", "4", "5", "6")
STARTER_PACK_ID = "tutorial_starter_pack_v1"
STARTER_PACK_REQUEST_ID = "starter-pack"
STARTER_PACK_PULLS = 2
