# database/crud.py
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database.models.event import Event
from database.models.pack_opening import PackOpen, PackOpenPull
from database.models.user import User
from database.models.user_mask import UserMask
from database.models.user_pack_progress import UserPackProgress
from game import types
from game.constants import DEFAULT_PACK_ID, PACK_UNITS_PER_PACK
from game.errors import DuplicatePackOpenError, NotFoundError
from game.pack_charge import utcnow

logger = logging.getLogger(__name__)


# ===== КОНВЕРТАЦИЯ СТРОК =====

def to_user(row: User) -> types.User:
    return types.User(
        id=row.id,
        is_guest=row.is_guest,
        external_id=row.external_id,
        created_at=row.created_at,
        last_active_at=row.last_active_at,
    )


def to_user_mask(row: UserMask) -> types.UserMask:
    return types.UserMask(
        id=row.id,
        user_id=row.user_id,
        mask_id=row.mask_id,
        owned_count=row.owned_count,
        essence=row.essence,
        level=row.level,
        equipped_slot=types.EquipSlot(row.equipped_slot),
        unlocked_colors=list(row.unlocked_colors or []),
        equipped_color=row.equipped_color,
        last_acquired_at=row.last_acquired_at,
    )


def to_progress(row: UserPackProgress) -> types.UserPackProgress:
    return types.UserPackProgress(
        user_id=row.user_id,
        pack_id=row.pack_id,
        fractional_units=row.fractional_units,
        last_unit_ts=row.last_unit_ts,
        pity_counter=row.pity_counter,
        last_pack_claim_ts=row.last_pack_claim_ts,
    )


def to_pack_open(row: PackOpen) -> types.PackOpenRecord:
    return types.PackOpenRecord(
        id=row.id,
        user_id=row.user_id,
        pack_id=row.pack_id,
        client_request_id=row.client_request_id,
        seed=row.seed,
        created_at=row.created_at,
        pity_counter_after=row.pity_counter_after,
    )


def to_pull(row: PackOpenPull) -> types.PackOpenPull:
    return types.PackOpenPull(
        pack_open_id=row.pack_open_id,
        idx=row.idx,
        mask_id=row.mask_id,
        rarity=types.Rarity(row.rarity),
        color=row.color,
        is_new=row.is_new,
        was_color_new=row.was_color_new,
        essence_awarded=row.essence_awarded,
        essence_remaining=row.essence_remaining,
        final_essence_remaining=row.final_essence_remaining,
        level_before=row.level_before,
        level_after=row.level_after,
        final_level_after=row.final_level_after,
        unlocked_colors=list(row.unlocked_colors or []),
    )


class SqlAlchemyGameStore:
    """GameStore поверх AsyncSession: одна сессия на запрос"""

    def __init__(self, session: AsyncSession, default_pack_id: str = DEFAULT_PACK_ID):
        self.session = session
        self.default_pack_id = default_pack_id
        self._depth = 0

    @asynccontextmanager
    async def transaction(self):
        """Внешний уровень коммитит или откатывает, вложенные просто присоединяются"""
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield self
            await self.session.commit()
        except BaseException:
            await self.session.rollback()
            raise
        finally:
            self._depth = 0

    # ===== ПОЛЬЗОВАТЕЛИ =====

    async def _insert_or_get(self, row, model, key):
        """
        INSERT под SAVEPOINT. Если параллельный запрос вставил ту же строку
        первым, откатываем только SAVEPOINT и читаем его строку.
        """
        try:
            async with self.session.begin_nested():
                self.session.add(row)
        except IntegrityError:
            existing = await self.session.get(model, key, populate_existing=True)
            if existing is None:
                raise
            logger.warning(f"Concurrent insert into {model.__tablename__}: key={key}, using existing row")
            return existing
        return row

    async def get_or_create_user(self, is_guest: bool, user_id: str) -> types.User:
        now = utcnow()
        if is_guest:
            user = await self.session.get(User, user_id)
            if user is None:
                user = await self._insert_or_get(
                    User(id=user_id, is_guest=True, created_at=now, last_active_at=now),
                    User,
                    user_id,
                )
                logger.info(f"Created new guest user: id={user_id}")
        else:
            result = await self.session.execute(
                select(User).where(User.external_id == user_id)
            )
            user = result.scalar_one_or_none()
            if user is None:
                raise NotFoundError(f"User not found: {user_id}")

        # Прогресс пачки по умолчанию создаём сразу с одной полной пачкой
        key = (user.id, self.default_pack_id)
        progress = await self.session.get(UserPackProgress, key)
        if progress is None:
            await self._insert_or_get(
                UserPackProgress(
                    user_id=user.id,
                    pack_id=self.default_pack_id,
                    fractional_units=PACK_UNITS_PER_PACK,
                    last_unit_ts=now,
                    pity_counter=0,
                    last_pack_claim_ts=None,
                ),
                UserPackProgress,
                key,
            )
            logger.info(f"Provisioned pack progress: user={user.id} pack={self.default_pack_id}")

        user.last_active_at = now
        await self.session.flush()
        return to_user(user)

    # ===== МАСКИ =====

    async def _get_user_mask_row(self, user_id: str, mask_id: str) -> Optional[UserMask]:
        result = await self.session.execute(
            select(UserMask).where(UserMask.user_id == user_id, UserMask.mask_id == mask_id)
        )
        return result.scalar_one_or_none()

    async def get_user_mask(self, user_id: str, mask_id: str) -> Optional[types.UserMask]:
        row = await self._get_user_mask_row(user_id, mask_id)
        return to_user_mask(row) if row else None

    async def get_user_masks(self, user_id: str) -> List[types.UserMask]:
        result = await self.session.execute(
            select(UserMask).where(UserMask.user_id == user_id).order_by(UserMask.mask_id)
        )
        return [to_user_mask(row) for row in result.scalars().all()]

    async def upsert_user_mask(self, entry: types.UserMask) -> None:
        row = await self._get_user_mask_row(entry.user_id, entry.mask_id)
        if row is None:
            row = UserMask(user_id=entry.user_id, mask_id=entry.mask_id)
            self.session.add(row)

        row.owned_count = entry.owned_count
        row.essence = entry.essence
        row.level = entry.level
        row.equipped_slot = entry.equipped_slot.value
        row.unlocked_colors = list(entry.unlocked_colors)
        row.equipped_color = entry.equipped_color
        row.last_acquired_at = entry.last_acquired_at

        await self.session.flush()
        entry.id = row.id

    # ===== ПРОГРЕСС ПАЧЕК =====

    async def get_user_pack_progress(self, user_id: str, pack_id: str) -> Optional[types.UserPackProgress]:
        row = await self.session.get(UserPackProgress, (user_id, pack_id))
        return to_progress(row) if row else None

    async def lock_user_pack_progress(self, user_id: str, pack_id: str) -> types.UserPackProgress:
        """SELECT ... FOR UPDATE: параллельные запросы пользователя ждут здесь"""
        result = await self.session.execute(
            select(UserPackProgress)
            .where(UserPackProgress.user_id == user_id, UserPackProgress.pack_id == pack_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError(f"Pack progress not found: user={user_id} pack={pack_id}")
        return to_progress(row)

    async def upsert_user_pack_progress(self, progress: types.UserPackProgress) -> None:
        row = await self.session.get(UserPackProgress, (progress.user_id, progress.pack_id))
        if row is None:
            row = UserPackProgress(user_id=progress.user_id, pack_id=progress.pack_id)
            self.session.add(row)

        row.fractional_units = progress.fractional_units
        row.last_unit_ts = progress.last_unit_ts
        row.pity_counter = progress.pity_counter
        row.last_pack_claim_ts = progress.last_pack_claim_ts
        await self.session.flush()

    # ===== СОБЫТИЯ =====

    async def append_event(self, evt: types.EventRow) -> None:
        row = Event(user_id=evt.user_id, type=evt.type, payload=evt.payload, timestamp=evt.timestamp)
        self.session.add(row)
        await self.session.flush()
        evt.event_id = row.id

    async def get_events(self, user_id: str, event_type: str) -> List[types.EventRow]:
        result = await self.session.execute(
            select(Event)
            .where(Event.user_id == user_id, Event.type == event_type)
            .order_by(Event.timestamp)
        )
        return [
            types.EventRow(
                type=row.type,
                payload=dict(row.payload or {}),
                timestamp=row.timestamp,
                user_id=row.user_id,
                event_id=row.id,
            )
            for row in result.scalars().all()
        ]

    # ===== ИДЕМПОТЕНТНОСТЬ ОТКРЫТИЙ =====

    async def get_pack_open(self, user_id: str, client_request_id: str) -> Optional[types.PackOpenRecord]:
        result = await self.session.execute(
            select(PackOpen).where(
                PackOpen.user_id == user_id,
                PackOpen.client_request_id == client_request_id,
            )
        )
        row = result.scalar_one_or_none()
        return to_pack_open(row) if row else None

    async def create_pack_open(self, user_id, pack_id, client_request_id, seed, created_at) -> types.PackOpenRecord:
        row = PackOpen(
            user_id=user_id,
            pack_id=pack_id,
            client_request_id=client_request_id,
            seed=seed,
            created_at=created_at,
        )
        # SAVEPOINT: нарушение уникальности не должно ломать внешнюю транзакцию
        try:
            async with self.session.begin_nested():
                self.session.add(row)
        except IntegrityError as e:
            raise DuplicatePackOpenError(f"Pack open already recorded: {user_id}/{client_request_id}") from e
        return to_pack_open(row)

    async def get_pack_open_pulls(self, pack_open_id: str) -> List[types.PackOpenPull]:
        result = await self.session.execute(
            select(PackOpenPull)
            .where(PackOpenPull.pack_open_id == pack_open_id)
            .order_by(PackOpenPull.idx)
        )
        return [to_pull(row) for row in result.scalars().all()]

    async def save_pack_open_result(
        self,
        pack_open_id: str,
        pulls: List[types.PackOpenPull],
        pity_counter_after: int,
    ) -> None:
        for pull in pulls:
            self.session.add(
                PackOpenPull(
                    pack_open_id=pack_open_id,
                    idx=pull.idx,
                    mask_id=pull.mask_id,
                    rarity=types.Rarity(pull.rarity).value,
                    color=pull.color,
                    is_new=pull.is_new,
                    was_color_new=pull.was_color_new,
                    essence_awarded=pull.essence_awarded,
                    essence_remaining=pull.essence_remaining,
                    final_essence_remaining=pull.final_essence_remaining,
                    level_before=pull.level_before,
                    level_after=pull.level_after,
                    final_level_after=pull.final_level_after,
                    unlocked_colors=list(pull.unlocked_colors),
                )
            )

        row = await self.session.get(PackOpen, pack_open_id)
        if row is None:
            raise NotFoundError(f"Pack open not found: {pack_open_id}")
        row.pity_counter_after = pity_counter_after
        await self.session.flush()
