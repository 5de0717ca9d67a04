# game/types.py
import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional


class Rarity(str, enum.Enum):
    COMMON = "COMMON"
    RARE = "RARE"
    MYTHIC = "MYTHIC"


class BuffType(str, enum.Enum):
    RARITY_ODDS = "RARITY_ODDS"  # удача пачки
    CD_REDUCTION = "CD_REDUCTION"  # ускорение таймера
    PROTODERMIS = "PROTODERMIS"  # эссенция за дубликаты
    DISCOVERY = "DISCOVERY"
    INSPECTION = "INSPECTION"
    COLOR_VARIANTS = "COLOR_VARIANTS"
    FRIEND_BONUS = "FRIEND_BONUS"
    PACK_STACKING = "PACK_STACKING"
    VISUAL = "VISUAL"  # только косметика


class EquipSlot(str, enum.Enum):
    NONE = "NONE"
    TOA = "TOA"
    TURAGA = "TURAGA"


@dataclass(frozen=True)
class MaskDefinition:
    """Маска из статического каталога"""

    mask_id: str
    generation: int
    name: str
    base_rarity: Rarity
    base_color_distribution: Dict[str, float]
    buff_type: BuffType
    buff_base_value: float
    max_level: int
    original_color: str
    transparent: bool = False
    origin: str = ""
    description: str = ""


@dataclass(frozen=True)
class PackDefinition:
    pack_id: str
    name: str
    masks_per_pack: int
    featured_generation: Optional[int] = None


@dataclass
class User:
    id: str
    is_guest: bool
    external_id: Optional[str] = None
    created_at: Optional[datetime] = None
    last_active_at: Optional[datetime] = None


@dataclass
class UserMask:
    """Прогресс пользователя по одной маске"""

    user_id: str
    mask_id: str
    owned_count: int = 0
    essence: int = 0
    level: int = 1
    equipped_slot: EquipSlot = EquipSlot.NONE
    unlocked_colors: List[str] = field(default_factory=list)
    equipped_color: Optional[str] = None
    last_acquired_at: Optional[datetime] = None
    id: Optional[str] = None


@dataclass
class UserPackProgress:
    """Накопление юнитов пачки"""

    user_id: str
    pack_id: str
    fractional_units: int
    last_unit_ts: datetime
    pity_counter: int = 0
    last_pack_claim_ts: Optional[datetime] = None


@dataclass(frozen=True)
class BuffTotals:
    pack_luck: float = 0.0
    timer_speed: float = 0.0
    duplicate_eff: float = 0.0
    discovery: float = 0.0
    inspection: float = 0.0
    color_variants: float = 0.0
    friend_bonus: float = 0.0
    pack_stacking: float = 0.0


@dataclass
class DrawResultItem:
    mask_id: str
    name: str
    rarity: Rarity
    color: str
    is_new: bool
    was_color_new: bool
    essence_awarded: int
    essence_remaining: int
    final_essence_remaining: int
    level_before: int
    level_after: int
    final_level_after: int
    unlocked_colors: List[str]
    transparent: bool = False


@dataclass
class OpenResult:
    masks: List[DrawResultItem]
    pity_counter: int


@dataclass
class PackStatus:
    pack_ready: bool
    time_to_ready: int
    time_to_next_pack: Optional[int]
    fractional_units: int
    pity_counter: int
    pack_cap: int
    stored_packs: int
    earning_paused: bool


@dataclass
class PackOpenRecord:
    """Запись идемпотентности: одно открытие на (user_id, client_request_id)"""

    id: str
    user_id: str
    pack_id: str
    client_request_id: str
    seed: str
    created_at: datetime
    pity_counter_after: Optional[int] = None


@dataclass
class PackOpenPull:
    pack_open_id: str
    idx: int
    mask_id: str
    rarity: Rarity
    color: str
    is_new: bool
    was_color_new: bool
    essence_awarded: int
    essence_remaining: int
    final_essence_remaining: int
    level_before: int
    level_after: int
    final_level_after: int
    unlocked_colors: List[str]


@dataclass
class EventRow:
    type: str
    payload: Dict
    timestamp: datetime
    user_id: Optional[str] = None
    event_id: Optional[str] = None


@dataclass
class StarterGrant:
    """Итог выдачи стартовой маски; granted=False если выдача уже была раньше"""

    mask_id: str
    name: str
    color: str
    granted: bool
    mask: UserMask
