# game/pack_service.py
"""
Идемпотентное открытие пачки.

Ключ идемпотентности: (user_id, client_request_id). Повтор того же
запроса возвращает сохранённый результат, а не открывает новую пачку.
"""
import logging
from datetime import datetime
from typing import List, Optional, Protocol

from game.catalog import MaskCatalog
from game.constants import STARTER_PACK_REQUEST_ID
from game.errors import DuplicatePackOpenError, GameError, RateLimitedError
from game.pack_charge import utcnow
from game.store import GameStore
from game.types import DrawResultItem, OpenResult, PackOpenPull, PackOpenRecord, Rarity

logger = logging.getLogger(__name__)


class Throttle(Protocol):
    window_ms: int

    async def allow(self, user_id: str) -> bool: ...

    async def release(self, user_id: str) -> None: ...


def build_open_result_replay(
    pulls: List[PackOpenPull],
    pity_counter_after: Optional[int],
    catalog: MaskCatalog,
) -> OpenResult:
    """Собрать OpenResult из сохранённых бросков (порядок по idx)"""
    masks = []
    for pull in sorted(pulls, key=lambda p: p.idx):
        definition = catalog.get_mask(pull.mask_id)
        masks.append(
            DrawResultItem(
                mask_id=pull.mask_id,
                name=definition.name if definition else pull.mask_id,
                rarity=Rarity(pull.rarity),
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
                transparent=definition.transparent if definition else False,
            )
        )
    return OpenResult(masks=masks, pity_counter=pity_counter_after or 0)


def pulls_from_result(pack_open_id: str, result: OpenResult) -> List[PackOpenPull]:
    return [
        PackOpenPull(
            pack_open_id=pack_open_id,
            idx=idx,
            mask_id=m.mask_id,
            rarity=m.rarity,
            color=m.color,
            is_new=m.is_new,
            was_color_new=m.was_color_new,
            essence_awarded=m.essence_awarded,
            essence_remaining=m.essence_remaining,
            final_essence_remaining=m.final_essence_remaining,
            level_before=m.level_before,
            level_after=m.level_after,
            final_level_after=m.final_level_after,
            unlocked_colors=list(m.unlocked_colors),
        )
        for idx, m in enumerate(result.masks)
    ]


async def replay_pack_open(store: GameStore, record: PackOpenRecord, catalog: MaskCatalog) -> OpenResult:
    pulls = await store.get_pack_open_pulls(record.id)
    return build_open_result_replay(pulls, record.pity_counter_after, catalog)


async def open_pack_payload(
    engine,
    throttle: Optional[Throttle],
    is_guest: bool,
    user_id: str,
    pack_id: str,
    client_request_id: str,
    request_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> OpenResult:
    """
    Открыть пачку ровно один раз на client_request_id.

    Порядок: пользователь -> блокировка прогресса -> поиск по ключу ->
    лимит частоты -> резерв ключа -> бросок -> сохранение бросков.
    Любая ошибка откатывает всё, включая резерв ключа и окно лимита.
    """
    if client_request_id == STARTER_PACK_REQUEST_ID:
        raise GameError("Reserved client_request_id", {"client_request_id": client_request_id})

    store: GameStore = engine.store
    now = now or utcnow()
    throttled_user = None

    try:
        async with store.transaction():
            user = await store.get_or_create_user(is_guest, user_id)
            engine.catalog.get_pack(pack_id)

            # Блокировка строки прогресса сериализует параллельные запросы пользователя
            await store.lock_user_pack_progress(user.id, pack_id)

            existing = await store.get_pack_open(user.id, client_request_id)
            if existing is not None:
                logger.info(f"Replaying pack open: user={user.id} key={client_request_id} request={request_id}")
                return await replay_pack_open(store, existing, engine.catalog)

            if throttle is not None:
                if not await throttle.allow(user.id):
                    logger.info(f"❌ Pack open rate limited: user={user.id}")
                    raise RateLimitedError(throttle.window_ms)
                throttled_user = user.id

            seed = engine.make_seed(user.id, now)
            try:
                record = await store.create_pack_open(user.id, pack_id, client_request_id, seed, now)
            except DuplicatePackOpenError:
                logger.warning(f"Race detected on idempotency key insert: user={user.id} request={request_id}")
                raced = await store.get_pack_open(user.id, client_request_id)
                if raced is None:
                    raise
                return await replay_pack_open(store, raced, engine.catalog)

            result = await engine.open_pack(user.id, pack_id, seed=seed, now=now)
            await store.save_pack_open_result(record.id, pulls_from_result(record.id, result), result.pity_counter)
    except Exception:
        # Окно лимита считает только состоявшиеся открытия
        if throttled_user is not None:
            await throttle.release(throttled_user)
        raise

    return result
