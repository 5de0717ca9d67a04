"""Shared test data and fakes."""

from datetime import datetime, timedelta

from game.types import EquipSlot, UserMask

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


class FakeThrottle:
    """Redis-free stand-in for PackOpenThrottle driven by an explicit clock."""

    def __init__(self, window_ms: int = 1000):
        self.window_ms = window_ms
        self.now = BASE_TIME
        self._last_allowed = {}

    def advance(self, ms: int):
        self.now += timedelta(milliseconds=ms)

    async def allow(self, user_id: str) -> bool:
        last = self._last_allowed.get(user_id)
        if last is not None and self.now - last < timedelta(milliseconds=self.window_ms):
            return False
        self._last_allowed[user_id] = self.now
        return True

    async def release(self, user_id: str):
        self._last_allowed.pop(user_id, None)


def owned_mask(user_id, mask_id, level=1, slot=EquipSlot.NONE, colors=("standard",), essence=0, count=1):
    return UserMask(
        user_id=user_id,
        mask_id=mask_id,
        owned_count=count,
        essence=essence,
        level=level,
        equipped_slot=slot,
        unlocked_colors=list(colors),
        equipped_color=colors[0] if colors else None,
    )
