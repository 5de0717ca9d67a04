# game/errors.py
from typing import Any, Dict, Optional


class GameError(ValueError):
    """Бизнес-отказ: не баг, а ожидаемый исход запроса"""

    status_code = 400

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}


class NotFoundError(GameError):
    status_code = 404


class PackNotReadyError(GameError):
    status_code = 409

    def __init__(self, fractional_units: int, time_to_ready: int):
        super().__init__(
            "Pack not ready",
            {"fractional_units": fractional_units, "time_to_ready": time_to_ready},
        )


class RateLimitedError(GameError):
    status_code = 429

    def __init__(self, retry_after_ms: int):
        super().__init__("Too many requests", {"retry_after_ms": retry_after_ms})


class ConfirmationRequiredError(GameError):
    """Снятие маски урежет хранилище пачек, нужно явное подтверждение"""

    status_code = 409

    def __init__(self, stored_packs: int, next_cap: int, excess_units: int, units_per_pack: int):
        excess_packs = max(stored_packs - next_cap, 0)
        super().__init__(
            f"Unequipping will trim {excess_packs} stored pack(s)",
            {
                "requires_confirmation": True,
                "stored_packs": stored_packs,
                "next_cap": next_cap,
                "excess_packs": excess_packs,
                "excess_units": excess_units,
                "units_per_pack": units_per_pack,
            },
        )
        self.stored_packs = stored_packs
        self.next_cap = next_cap
        self.excess_packs = excess_packs
        self.excess_units = excess_units


class ColorNotUnlockedError(GameError):
    pass


class InvalidSlotError(GameError):
    pass


class InvalidStarterMaskError(GameError):
    pass


class DuplicatePackOpenError(Exception):
    """Ключ идемпотентности уже занят другим запросом"""


class InvariantViolation(RuntimeError):
    """Повреждён каталог или конфиг: должно падать громко"""
