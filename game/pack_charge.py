# game/pack_charge.py
"""
Накопление пачек по времени.

Состояние: (fractional_units, last_unit_ts). Прошедшее время переводится
в целые юниты с учётом ускорения таймера; сверх капа юниты сгорают, а
якорь времени сдвигается ровно на «потраченное» время.
"""
import math
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Optional

from game.constants import BASE_PACK_STORAGE_CAP, PACK_UNIT_SECONDS, PACK_UNITS_PER_PACK
from game.types import BuffTotals, UserPackProgress

EPOCH = datetime(1970, 1, 1)


def epoch_seconds(ts: datetime) -> int:
    """Целые секунды от эпохи (время наивное, UTC)"""
    return math.floor((ts - EPOCH).total_seconds())


def from_epoch_seconds(seconds: int) -> datetime:
    return EPOCH + timedelta(seconds=seconds)


def utcnow() -> datetime:
    """Наивное UTC-время: так же хранится в БД"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def pack_storage_cap(buffs: BuffTotals) -> int:
    """Кап хранилища в целых пачках; дробные PACK_STACKING отбрасываются"""
    return BASE_PACK_STORAGE_CAP + math.floor(buffs.pack_stacking)


def cap_units(cap: int) -> int:
    return cap * PACK_UNITS_PER_PACK


def refresh_pack_charge(
    progress: UserPackProgress,
    timer_speed: float,
    cap: int,
    now: datetime,
    unit_seconds: float = PACK_UNIT_SECONDS,
) -> UserPackProgress:
    """Начислить юниты за прошедшее время; возвращает новую копию прогресса"""
    if unit_seconds <= 0:
        return replace(progress, fractional_units=cap_units(cap), last_unit_ts=now)

    current = epoch_seconds(now)
    last = epoch_seconds(progress.last_unit_ts)
    elapsed = max(current - last, 0)
    speed_multiplier = 1 + timer_speed
    units_gained = math.floor(elapsed * speed_multiplier / unit_seconds)

    if units_gained <= 0:
        return replace(progress)

    units = min(progress.fractional_units + units_gained, cap_units(cap))
    # Якорь сдвигаем на время всех начисленных юнитов: излишек сверх капа не копится
    anchor = last + math.floor(units_gained * unit_seconds / speed_multiplier)
    return replace(progress, fractional_units=units, last_unit_ts=from_epoch_seconds(anchor))


def seconds_for_units(units_needed: int, timer_speed: float, unit_seconds: float = PACK_UNIT_SECONDS) -> int:
    """Время до units_needed юнитов; ceil, чтобы не обещать раньше срока"""
    if units_needed <= 0 or unit_seconds <= 0:
        return 0
    return max(math.ceil(units_needed * unit_seconds / (1 + timer_speed)), 0)


def is_pack_ready(progress: UserPackProgress) -> bool:
    return progress.fractional_units >= PACK_UNITS_PER_PACK


def time_to_ready(progress: UserPackProgress, timer_speed: float, unit_seconds: float = PACK_UNIT_SECONDS) -> int:
    """Секунды до первой открываемой пачки (0 если уже готова)"""
    needed = max(PACK_UNITS_PER_PACK - progress.fractional_units, 0)
    return seconds_for_units(needed, timer_speed, unit_seconds)


def time_to_next_pack(
    progress: UserPackProgress,
    timer_speed: float,
    cap: int,
    unit_seconds: float = PACK_UNIT_SECONDS,
) -> Optional[int]:
    """Секунды до следующей целой пачки; None когда хранилище полное и накопление стоит"""
    if progress.fractional_units >= cap_units(cap):
        return None
    if unit_seconds <= 0:
        return 0
    needed = PACK_UNITS_PER_PACK - (progress.fractional_units % PACK_UNITS_PER_PACK)
    return seconds_for_units(needed, timer_speed, unit_seconds)
