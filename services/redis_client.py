# services/redis_client.py
import logging
from typing import Optional

import redis.asyncio as redis

from config import settings

logger = logging.getLogger(__name__)


class PackOpenThrottle:
    """Не больше одного открытия пачки на пользователя за окно window_ms"""

    def __init__(self, redis_url: str, window_ms: int):
        self.redis_url = redis_url
        self.window_ms = window_ms
        self.redis: Optional[redis.Redis] = None

    async def connect(self):
        """Подключение к Redis"""
        try:
            self.redis = redis.from_url(self.redis_url, decode_responses=True)
            await self.redis.ping()
            logger.info("✅ Redis connected successfully")
        except Exception as e:
            logger.error(f"❌ Redis connection failed: {e}")
            raise

    async def close(self):
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None

    async def allow(self, user_id: str) -> bool:
        """Занять окно; False если в этом окне уже было открытие"""
        if not self.redis:
            await self.connect()
        key = f"throttle:pack_open:{user_id}"
        acquired = await self.redis.set(key, 1, nx=True, px=self.window_ms)
        return bool(acquired)

    async def release(self, user_id: str):
        """Вернуть окно: открытие не состоялось"""
        if not self.redis:
            await self.connect()
        await self.redis.delete(f"throttle:pack_open:{user_id}")


pack_open_throttle = PackOpenThrottle(settings.REDIS_URL, settings.PACK_OPEN_RATE_LIMIT_MS)
