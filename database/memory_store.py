# database/memory_store.py
"""
GameStore в памяти процесса: для тестов и локального запуска без Postgres.

MemoryDatabase - общие данные и блокировки, MemoryGameStore - «сессия» на
один запрос. Внутри транзакции записи копятся отдельно и применяются
только при успешном выходе; блокировки держатся до конца транзакции.
"""
import asyncio
import copy
import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from game.constants import DEFAULT_PACK_ID, PACK_UNITS_PER_PACK
from game.errors import DuplicatePackOpenError, NotFoundError
from game.pack_charge import utcnow
from game.types import (
    EventRow,
    PackOpenPull,
    PackOpenRecord,
    User,
    UserMask,
    UserPackProgress,
)

logger = logging.getLogger(__name__)

Key = Tuple[str, str]


@dataclass
class _Tables:
    users: Dict[str, User] = field(default_factory=dict)
    user_masks: Dict[Key, UserMask] = field(default_factory=dict)
    progress: Dict[Key, UserPackProgress] = field(default_factory=dict)
    pack_opens: Dict[Key, PackOpenRecord] = field(default_factory=dict)
    pulls: Dict[str, List[PackOpenPull]] = field(default_factory=dict)
    events: List[EventRow] = field(default_factory=list)

    def merge_into(self, other: "_Tables"):
        other.users.update(self.users)
        other.user_masks.update(self.user_masks)
        other.progress.update(self.progress)
        other.pack_opens.update(self.pack_opens)
        other.pulls.update(self.pulls)
        other.events.extend(self.events)


class MemoryDatabase(_Tables):
    """Общее состояние всех MemoryGameStore одного процесса"""

    def __init__(self):
        super().__init__()
        self._locks: Dict[Key, asyncio.Lock] = {}

    def lock_for(self, key: Key) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock


class MemoryGameStore:
    def __init__(self, db: MemoryDatabase, default_pack_id: str = DEFAULT_PACK_ID):
        self.db = db
        self.default_pack_id = default_pack_id
        self._staged: Optional[_Tables] = None
        self._held: List[Key] = []

    @asynccontextmanager
    async def transaction(self):
        if self._staged is not None:
            yield self
            return

        self._staged = _Tables()
        try:
            yield self
            self._staged.merge_into(self.db)
        finally:
            self._staged = None
            for key in reversed(self._held):
                self.db.lock_for(key).release()
            self._held = []

    # ===== ЧТЕНИЕ / ЗАПИСЬ =====

    @property
    def _target(self) -> _Tables:
        return self._staged if self._staged is not None else self.db

    def _lookup(self, table: str, key):
        if self._staged is not None:
            staged = getattr(self._staged, table)
            if key in staged:
                return staged[key]
        return getattr(self.db, table).get(key)

    def _values(self, table: str):
        merged = dict(getattr(self.db, table))
        if self._staged is not None:
            merged.update(getattr(self._staged, table))
        return merged.values()

    # ===== ПОЛЬЗОВАТЕЛИ =====

    async def get_or_create_user(self, is_guest: bool, user_id: str) -> User:
        now = utcnow()
        if is_guest:
            user = self._lookup("users", user_id)
            if user is None:
                user = User(id=user_id, is_guest=True, created_at=now)
                logger.info(f"Created new guest user: id={user_id}")
        else:
            user = next((u for u in self._values("users") if u.external_id == user_id), None)
            if user is None:
                raise NotFoundError(f"User not found: {user_id}")

        user = copy.deepcopy(user)
        user.last_active_at = now
        self._target.users[user.id] = copy.deepcopy(user)

        key = (user.id, self.default_pack_id)
        if self._lookup("progress", key) is None:
            self._target.progress[key] = UserPackProgress(
                user_id=user.id,
                pack_id=self.default_pack_id,
                fractional_units=PACK_UNITS_PER_PACK,
                last_unit_ts=now,
                pity_counter=0,
                last_pack_claim_ts=None,
            )
            logger.info(f"Provisioned pack progress: user={user.id} pack={self.default_pack_id}")
        return user

    # ===== МАСКИ =====

    async def get_user_mask(self, user_id: str, mask_id: str) -> Optional[UserMask]:
        return copy.deepcopy(self._lookup("user_masks", (user_id, mask_id)))

    async def get_user_masks(self, user_id: str) -> List[UserMask]:
        masks = [m for m in self._values("user_masks") if m.user_id == user_id]
        return [copy.deepcopy(m) for m in sorted(masks, key=lambda m: m.mask_id)]

    async def upsert_user_mask(self, entry: UserMask) -> None:
        if entry.id is None:
            entry.id = str(uuid.uuid4())
        self._target.user_masks[(entry.user_id, entry.mask_id)] = copy.deepcopy(entry)

    # ===== ПРОГРЕСС ПАЧЕК =====

    async def get_user_pack_progress(self, user_id: str, pack_id: str) -> Optional[UserPackProgress]:
        return copy.deepcopy(self._lookup("progress", (user_id, pack_id)))

    async def lock_user_pack_progress(self, user_id: str, pack_id: str) -> UserPackProgress:
        key = (user_id, pack_id)
        # Вне транзакции держать блокировку некому, просто читаем
        if self._staged is not None and key not in self._held:
            await self.db.lock_for(key).acquire()
            self._held.append(key)

        progress = self._lookup("progress", key)
        if progress is None:
            raise NotFoundError(f"Pack progress not found: user={user_id} pack={pack_id}")
        return copy.deepcopy(progress)

    async def upsert_user_pack_progress(self, progress: UserPackProgress) -> None:
        self._target.progress[(progress.user_id, progress.pack_id)] = copy.deepcopy(progress)

    # ===== СОБЫТИЯ =====

    async def append_event(self, evt: EventRow) -> None:
        evt.event_id = evt.event_id or str(uuid.uuid4())
        self._target.events.append(copy.deepcopy(evt))

    async def get_events(self, user_id: str, event_type: str) -> List[EventRow]:
        return [copy.deepcopy(e) for e in self.events_for(user_id, event_type)]

    def events_for(self, user_id: str, event_type: Optional[str] = None) -> List[EventRow]:
        events = list(self.db.events)
        if self._staged is not None:
            events += self._staged.events
        return [
            e for e in events
            if e.user_id == user_id and (event_type is None or e.type == event_type)
        ]

    # ===== ИДЕМПОТЕНТНОСТЬ ОТКРЫТИЙ =====

    async def get_pack_open(self, user_id: str, client_request_id: str) -> Optional[PackOpenRecord]:
        return copy.deepcopy(self._lookup("pack_opens", (user_id, client_request_id)))

    async def create_pack_open(
        self,
        user_id: str,
        pack_id: str,
        client_request_id: str,
        seed: str,
        created_at: datetime,
    ) -> PackOpenRecord:
        key = (user_id, client_request_id)
        if self._lookup("pack_opens", key) is not None:
            raise DuplicatePackOpenError(f"Pack open already recorded: {user_id}/{client_request_id}")

        record = PackOpenRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            pack_id=pack_id,
            client_request_id=client_request_id,
            seed=seed,
            created_at=created_at,
        )
        self._target.pack_opens[key] = copy.deepcopy(record)
        return record

    async def get_pack_open_pulls(self, pack_open_id: str) -> List[PackOpenPull]:
        pulls = self._lookup("pulls", pack_open_id) or []
        return [copy.deepcopy(p) for p in sorted(pulls, key=lambda p: p.idx)]

    async def save_pack_open_result(
        self,
        pack_open_id: str,
        pulls: List[PackOpenPull],
        pity_counter_after: int,
    ) -> None:
        record = next((r for r in self._values("pack_opens") if r.id == pack_open_id), None)
        if record is None:
            raise NotFoundError(f"Pack open not found: {pack_open_id}")

        record = copy.deepcopy(record)
        record.pity_counter_after = pity_counter_after
        self._target.pack_opens[(record.user_id, record.client_request_id)] = record
        self._target.pulls[pack_open_id] = [copy.deepcopy(p) for p in pulls]
