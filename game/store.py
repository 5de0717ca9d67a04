# game/store.py
from datetime import datetime
from typing import AsyncContextManager, List, Optional, Protocol

from game.types import (
    EventRow,
    PackOpenPull,
    PackOpenRecord,
    User,
    UserMask,
    UserPackProgress,
)


class GameStore(Protocol):
    """
    Граница хранения, которую ожидает движок.

    Реализации: database.crud.SqlAlchemyGameStore (Postgres, блокировки
    строк) и database.memory_store.MemoryGameStore (тесты, локальный запуск).
    """

    def transaction(self) -> AsyncContextManager["GameStore"]:
        """Внешняя транзакция коммитит, вложенные присоединяются к ней"""
        ...

    async def get_or_create_user(self, is_guest: bool, user_id: str) -> User: ...

    async def get_user_mask(self, user_id: str, mask_id: str) -> Optional[UserMask]: ...

    async def get_user_masks(self, user_id: str) -> List[UserMask]: ...

    async def upsert_user_mask(self, entry: UserMask) -> None: ...

    async def get_user_pack_progress(self, user_id: str, pack_id: str) -> Optional[UserPackProgress]: ...

    async def lock_user_pack_progress(self, user_id: str, pack_id: str) -> UserPackProgress:
        """Эксклюзивная блокировка строки до конца транзакции; NotFoundError если строки нет"""
        ...

    async def upsert_user_pack_progress(self, progress: UserPackProgress) -> None: ...

    async def append_event(self, evt: EventRow) -> None: ...

    async def get_events(self, user_id: str, event_type: str) -> List[EventRow]:
        """События пользователя одного типа в порядке записи"""
        ...

    # ===== ИДЕМПОТЕНТНОСТЬ ОТКРЫТИЙ =====

    async def get_pack_open(self, user_id: str, client_request_id: str) -> Optional[PackOpenRecord]: ...

    async def create_pack_open(
        self,
        user_id: str,
        pack_id: str,
        client_request_id: str,
        seed: str,
        created_at: datetime,
    ) -> PackOpenRecord:
        """DuplicatePackOpenError если ключ уже занят"""
        ...

    async def get_pack_open_pulls(self, pack_open_id: str) -> List[PackOpenPull]: ...

    async def save_pack_open_result(
        self,
        pack_open_id: str,
        pulls: List[PackOpenPull],
        pity_counter_after: int,
    ) -> None: ...
