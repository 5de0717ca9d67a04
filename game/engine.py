# game/engine.py
"""
Движок пачек: открытие, статус накопления, экипировка, цвета.

Всё состояние живёт в GameStore; движок только читает, считает и пишет
обратно внутри одной транзакции на запрос.
"""
import logging
from dataclasses import asdict, replace
from datetime import datetime
from typing import Dict, List, Optional

from game.buff_system import compute_buffs, with_slot
from game.catalog import MaskCatalog, default_catalog
from game.constants import (
    DEFAULT_PACK_ID,
    GLOBAL_SEED_SALT,
    PACK_UNIT_SECONDS,
    PACK_UNITS_PER_PACK,
    PITY_THRESHOLD,
    STARTER_MASK_IDS,
    STARTER_PACK_ID,
    STARTER_PACK_PULLS,
    STARTER_PACK_REQUEST_ID,
)
from game.duplicate_system import grant_mask, new_user_mask, process_drop
from game.errors import (
    ColorNotUnlockedError,
    ConfirmationRequiredError,
    DuplicatePackOpenError,
    InvalidSlotError,
    InvalidStarterMaskError,
    NotFoundError,
    PackNotReadyError,
)
from game.pack_charge import (
    cap_units,
    epoch_seconds,
    is_pack_ready,
    pack_storage_cap,
    refresh_pack_charge,
    time_to_next_pack,
    time_to_ready,
    utcnow,
)
from game.pack_service import pulls_from_result, replay_pack_open
from game.pack_system import (
    discovery_reroll,
    sample_color,
    sample_mask_by_rarity,
    sample_rarity,
    sample_rarity_force_rare_plus,
)
from game.rng import seeded_random
from game.store import GameStore
from game.types import (
    BuffTotals,
    DrawResultItem,
    EquipSlot,
    EventRow,
    OpenResult,
    PackStatus,
    Rarity,
    StarterGrant,
    UserMask,
    UserPackProgress,
)
from game.upgrade_calculator import essence_to_next_level

logger = logging.getLogger(__name__)


class PackEngine:
    """Ядро игры поверх GameStore"""

    def __init__(
        self,
        store: GameStore,
        catalog: Optional[MaskCatalog] = None,
        unit_seconds: float = PACK_UNIT_SECONDS,
        seed_salt: str = GLOBAL_SEED_SALT,
        default_pack_id: str = DEFAULT_PACK_ID,
    ):
        self.store = store
        self.catalog = catalog or default_catalog()
        self.unit_seconds = unit_seconds
        self.seed_salt = seed_salt
        self.default_pack_id = default_pack_id

    # ===== БАФФЫ =====

    async def compute_buffs(self, user_id: str) -> BuffTotals:
        """Баффы считаем заново: экипировка могла поменяться между запросами"""
        user_masks = await self.store.get_user_masks(user_id)
        return compute_buffs(user_masks, self.catalog)

    def make_seed(self, user_id: str, now: datetime) -> str:
        millis = epoch_seconds(now) * 1000 + now.microsecond // 1000
        return f"{user_id}-{millis}-{self.seed_salt}"

    # ===== БРОСКИ =====

    async def _draw_masks(
        self,
        user_id: str,
        user_masks: List[UserMask],
        buffs: BuffTotals,
        rand,
        count: int,
        now: datetime,
        pity_forced: bool = False,
        rarity: Optional[Rarity] = None,
    ) -> List[DrawResultItem]:
        """Броски одной пачки: каждая маска сразу проходит через прогресс игрока"""
        by_mask_id: Dict[str, UserMask] = {m.mask_id: m for m in user_masks}
        owned_mask_ids = {m.mask_id for m in user_masks if m.owned_count > 0}
        results: List[DrawResultItem] = []

        for i in range(count):
            if rarity is not None:
                drawn = rarity
            # Pity гарантирует RARE+ только первой маске пачки
            elif pity_forced and i == 0:
                drawn = sample_rarity_force_rare_plus(buffs.pack_luck, rand)
            else:
                drawn = sample_rarity(buffs.pack_luck, rand)

            mask_def = sample_mask_by_rarity(self.catalog, drawn, rand, set(), owned_mask_ids)
            mask_def = discovery_reroll(
                self.catalog, drawn, rand, buffs.discovery, mask_def, owned_mask_ids
            )

            user_mask = by_mask_id.get(mask_def.mask_id)
            if user_mask is None:
                user_mask = new_user_mask(user_id, mask_def.mask_id)
                by_mask_id[mask_def.mask_id] = user_mask

            color = sample_color(mask_def, user_mask.unlocked_colors, buffs.color_variants, rand)
            outcome = process_drop(user_mask, mask_def.base_rarity, color, buffs.duplicate_eff, now)
            owned_mask_ids.add(mask_def.mask_id)

            await self.store.upsert_user_mask(user_mask)
            await self.store.append_event(
                EventRow(
                    type="mask_pull",
                    user_id=user_id,
                    timestamp=now,
                    payload={
                        "mask_id": mask_def.mask_id,
                        "rarity": drawn.value,
                        "color": color,
                        "is_new": outcome["is_new"],
                        "was_color_new": outcome["was_color_new"],
                    },
                )
            )

            results.append(
                DrawResultItem(
                    mask_id=mask_def.mask_id,
                    name=mask_def.name,
                    rarity=drawn,
                    color=color,
                    is_new=outcome["is_new"],
                    was_color_new=outcome["was_color_new"],
                    essence_awarded=outcome["essence_awarded"],
                    essence_remaining=outcome["essence_remaining"],
                    final_essence_remaining=outcome["essence_remaining"],
                    level_before=outcome["level_before"],
                    level_after=outcome["level_after"],
                    final_level_after=outcome["level_after"],
                    unlocked_colors=list(user_mask.unlocked_colors),
                    transparent=mask_def.transparent,
                )
            )

        # Дубликаты внутри одной пачки показывают итоговое состояние маски
        for item in results:
            final = by_mask_id[item.mask_id]
            item.final_essence_remaining = final.essence
            item.final_level_after = final.level

        return results

    # ===== ОТКРЫТИЕ ПАЧКИ =====

    async def open_pack(
        self,
        user_id: str,
        pack_id: str,
        seed: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> OpenResult:
        """Открыть пачку: проверка готовности, N бросков, запись прогресса"""
        now = now or utcnow()
        pack = self.catalog.get_pack(pack_id)

        async with self.store.transaction():
            progress = await self.store.lock_user_pack_progress(user_id, pack_id)

            user_masks = await self.store.get_user_masks(user_id)
            buffs = compute_buffs(user_masks, self.catalog)
            cap = pack_storage_cap(buffs)
            refreshed = refresh_pack_charge(progress, buffs.timer_speed, cap, now, self.unit_seconds)
            if not is_pack_ready(refreshed):
                logger.info(f"Pack not ready: user={user_id} units={refreshed.fractional_units}")
                raise PackNotReadyError(
                    refreshed.fractional_units,
                    time_to_ready(refreshed, buffs.timer_speed, self.unit_seconds),
                )

            seed = seed or self.make_seed(user_id, now)
            results = await self._draw_masks(
                user_id,
                user_masks,
                buffs,
                seeded_random(seed),
                pack.masks_per_pack,
                now,
                pity_forced=refreshed.pity_counter >= PITY_THRESHOLD,
            )

            saw_rare_plus = any(r.rarity != Rarity.COMMON for r in results)
            next_pity = 0 if saw_rare_plus else refreshed.pity_counter + 1
            updated = replace(
                refreshed,
                fractional_units=refreshed.fractional_units - PACK_UNITS_PER_PACK,
                pity_counter=next_pity,
                last_pack_claim_ts=now,
            )
            await self.store.upsert_user_pack_progress(updated)

            await self.store.append_event(
                EventRow(
                    type="pack_open",
                    user_id=user_id,
                    timestamp=now,
                    payload={
                        "pack_id": pack.pack_id,
                        "seed": seed,
                        "pity_counter": next_pity,
                        "mask_ids": [r.mask_id for r in results],
                    },
                )
            )

        logger.info(
            f"✅ Pack {pack_id} opened: user={user_id} seed={seed} "
            f"masks={[r.mask_id for r in results]} pity={next_pity}"
        )
        return OpenResult(masks=results, pity_counter=next_pity)

    # ===== СТАТУС НАКОПЛЕНИЯ =====

    def build_status(self, progress: UserPackProgress, buffs: BuffTotals) -> PackStatus:
        cap = pack_storage_cap(buffs)
        ready = is_pack_ready(progress)
        return PackStatus(
            pack_ready=ready,
            time_to_ready=0 if ready else time_to_ready(progress, buffs.timer_speed, self.unit_seconds),
            time_to_next_pack=time_to_next_pack(progress, buffs.timer_speed, cap, self.unit_seconds),
            fractional_units=progress.fractional_units,
            pity_counter=progress.pity_counter,
            pack_cap=cap,
            stored_packs=progress.fractional_units // PACK_UNITS_PER_PACK,
            earning_paused=progress.fractional_units >= cap_units(cap),
        )

    async def pack_status(
        self,
        user_id: str,
        pack_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PackStatus:
        """Обновить накопление и вернуть статус пачки"""
        now = now or utcnow()
        pack_id = pack_id or self.default_pack_id
        self.catalog.get_pack(pack_id)

        async with self.store.transaction():
            progress = await self.store.lock_user_pack_progress(user_id, pack_id)
            buffs = await self.compute_buffs(user_id)
            cap = pack_storage_cap(buffs)
            refreshed = refresh_pack_charge(progress, buffs.timer_speed, cap, now, self.unit_seconds)
            await self.store.upsert_user_pack_progress(refreshed)

        return self.build_status(refreshed, buffs)

    # ===== ЭКИПИРОВКА =====

    async def _require_owned_mask(self, user_id: str, mask_id: str) -> UserMask:
        target = await self.store.get_user_mask(user_id, mask_id)
        if target is None or target.owned_count <= 0:
            raise NotFoundError("User does not own mask", {"mask_id": mask_id})
        return target

    async def equip_mask(
        self,
        user_id: str,
        mask_id: str,
        slot,
        confirm_pack_trim: bool = False,
        now: Optional[datetime] = None,
    ) -> UserMask:
        """
        Надеть маску в слот (или снять, slot=NONE).

        Слот эксклюзивный: прежний владелец слота снимается. Если изменение
        баффов уменьшает хранилище пачек ниже накопленного, без
        confirm_pack_trim бросаем ConfirmationRequiredError, а с ним
        обрезаем юниты до нового капа.
        """
        now = now or utcnow()
        try:
            slot = EquipSlot(slot)
        except ValueError:
            raise InvalidSlotError(f"Unknown slot: {slot}")

        async with self.store.transaction():
            await self._require_owned_mask(user_id, mask_id)

            progress = await self.store.get_user_pack_progress(user_id, self.default_pack_id)
            if progress is not None:
                progress = await self.store.lock_user_pack_progress(user_id, self.default_pack_id)

            masks = await self.store.get_user_masks(user_id)
            after_masks = with_slot(masks, mask_id, slot)
            before = compute_buffs(masks, self.catalog)
            after = compute_buffs(after_masks, self.catalog)

            if progress is not None:
                # Накопленное до смены баффов считаем по старой скорости
                refreshed = refresh_pack_charge(
                    progress, before.timer_speed, pack_storage_cap(before), now, self.unit_seconds
                )
                next_cap = pack_storage_cap(after)
                limit = cap_units(next_cap)
                if refreshed.fractional_units > limit:
                    stored_packs = refreshed.fractional_units // PACK_UNITS_PER_PACK
                    excess_units = refreshed.fractional_units - limit
                    if not confirm_pack_trim:
                        raise ConfirmationRequiredError(stored_packs, next_cap, excess_units, PACK_UNITS_PER_PACK)

                    refreshed = replace(refreshed, fractional_units=limit)
                    await self.store.append_event(
                        EventRow(
                            type="pack_trim",
                            user_id=user_id,
                            timestamp=now,
                            payload={"mask_id": mask_id, "next_cap": next_cap, "excess_units": excess_units},
                        )
                    )
                    logger.info(f"Pack storage trimmed: user={user_id} next_cap={next_cap} excess={excess_units}")
                await self.store.upsert_user_pack_progress(refreshed)

            updated = None
            for old, new in zip(masks, after_masks):
                if old.equipped_slot != new.equipped_slot:
                    await self.store.upsert_user_mask(new)
                if new.mask_id == mask_id:
                    updated = new

            await self.store.append_event(
                EventRow(
                    type="equip",
                    user_id=user_id,
                    timestamp=now,
                    payload={"mask_id": mask_id, "slot": slot.value},
                )
            )

        return updated

    async def set_mask_color(
        self,
        user_id: str,
        mask_id: str,
        color: str,
        now: Optional[datetime] = None,
    ) -> UserMask:
        """Сменить цвет: только на уже открытый"""
        now = now or utcnow()
        definition = self.catalog.require_mask(mask_id)

        async with self.store.transaction():
            target = await self._require_owned_mask(user_id, mask_id)

            if definition.base_rarity == Rarity.MYTHIC and color != definition.original_color:
                raise ColorNotUnlockedError("Mythic masks can only be their original color")
            if color not in target.unlocked_colors:
                raise ColorNotUnlockedError("Color not unlocked", {"mask_id": mask_id, "color": color})

            target.equipped_color = color
            await self.store.upsert_user_mask(target)
            await self.store.append_event(
                EventRow(
                    type="color_change",
                    user_id=user_id,
                    timestamp=now,
                    payload={"mask_id": mask_id, "color": color},
                )
            )

        return target

    # ===== СТАРТОВЫЕ НАГРАДЫ =====

    async def grant_starter_mask(
        self,
        user_id: str,
        mask_id: str,
        now: Optional[datetime] = None,
    ) -> StarterGrant:
        """
        Выдать одну из стартовых масок в родном цвете, один раз на игрока.

        Подарок не даёт эссенции: +1 экземпляр, цвет открывается и сразу
        надевается. Повторный вызов ничего не меняет и возвращает уже
        выданную маску.
        """
        now = now or utcnow()

        async with self.store.transaction():
            # Блокировка прогресса сериализует выдачу для одного игрока
            await self.store.lock_user_pack_progress(user_id, self.default_pack_id)

            previous = await self.store.get_events(user_id, "starter_grant")
            if previous:
                granted_id = previous[0].payload["mask_id"]
                definition = self.catalog.require_mask(granted_id)
                current = await self.store.get_user_mask(user_id, granted_id)
                logger.info(f"Starter mask already granted: user={user_id} mask={granted_id}")
                return StarterGrant(
                    mask_id=granted_id,
                    name=definition.name,
                    color=previous[0].payload["color"],
                    granted=False,
                    mask=current,
                )

            if mask_id not in STARTER_MASK_IDS:
                raise InvalidStarterMaskError(
                    f"Invalid starter mask id: {mask_id}",
                    {"mask_id": mask_id, "allowed": list(STARTER_MASK_IDS)},
                )
            definition = self.catalog.require_mask(mask_id)

            color = definition.original_color
            user_mask = await self.store.get_user_mask(user_id, mask_id) or new_user_mask(user_id, mask_id)
            grant_mask(user_mask, color, now)
            await self.store.upsert_user_mask(user_mask)
            await self.store.append_event(
                EventRow(
                    type="starter_grant",
                    user_id=user_id,
                    timestamp=now,
                    payload={"mask_id": mask_id, "color": color},
                )
            )

        logger.info(f"✅ Starter mask granted: user={user_id} mask={mask_id} color={color}")
        return StarterGrant(mask_id=mask_id, name=definition.name, color=color, granted=True, mask=user_mask)

    async def open_starter_pack(self, user_id: str, now: Optional[datetime] = None) -> OpenResult:
        """
        Стартовая пачка: только COMMON, один раз на игрока.

        Не тратит юниты и не трогает pity. Открытие пишется в таблицу
        идемпотентности под фиксированным ключом, повтор отдаёт сохранённый
        результат.
        """
        now = now or utcnow()

        async with self.store.transaction():
            progress = await self.store.lock_user_pack_progress(user_id, self.default_pack_id)

            existing = await self.store.get_pack_open(user_id, STARTER_PACK_REQUEST_ID)
            if existing is not None:
                logger.info(f"Replaying starter pack: user={user_id}")
                return await replay_pack_open(self.store, existing, self.catalog)

            seed = f"{self.make_seed(user_id, now)}-tutorial"
            try:
                record = await self.store.create_pack_open(
                    user_id, STARTER_PACK_ID, STARTER_PACK_REQUEST_ID, seed, now
                )
            except DuplicatePackOpenError:
                raced = await self.store.get_pack_open(user_id, STARTER_PACK_REQUEST_ID)
                if raced is None:
                    raise
                return await replay_pack_open(self.store, raced, self.catalog)

            user_masks = await self.store.get_user_masks(user_id)
            buffs = compute_buffs(user_masks, self.catalog)
            results = await self._draw_masks(
                user_id,
                user_masks,
                buffs,
                seeded_random(seed),
                STARTER_PACK_PULLS,
                now,
                rarity=Rarity.COMMON,
            )
            result = OpenResult(masks=results, pity_counter=progress.pity_counter)
            await self.store.save_pack_open_result(
                record.id, pulls_from_result(record.id, result), result.pity_counter
            )
            await self.store.append_event(
                EventRow(
                    type="starter_pack_open",
                    user_id=user_id,
                    timestamp=now,
                    payload={"seed": seed, "mask_ids": [r.mask_id for r in results]},
                )
            )

        logger.info(f"✅ Starter pack opened: user={user_id} masks={[r.mask_id for r in results]}")
        return result

    # ===== ПРОФИЛЬ И КОЛЛЕКЦИЯ =====

    def color_availability(self, user_masks: List[UserMask]) -> Dict[str, Dict[str, int]]:
        """По каждому цвету: сколько масок его открыли и у скольких он вообще бывает"""
        unlocked_by_mask = {m.mask_id: set(m.unlocked_colors) for m in user_masks}
        stats: Dict[str, Dict[str, int]] = {}
        for mask in self.catalog.masks:
            for color in mask.base_color_distribution:
                entry = stats.setdefault(color, {"owned": 0, "available": 0})
                entry["available"] += 1
                if color in unlocked_by_mask.get(mask.mask_id, ()):
                    entry["owned"] += 1
        return stats

    async def me_payload(self, user_id: str, is_guest: bool = True, now: Optional[datetime] = None) -> Dict:
        async with self.store.transaction():
            user = await self.store.get_or_create_user(is_guest, user_id)
            status = await self.pack_status(user.id, self.default_pack_id, now=now)
            user_masks = await self.store.get_user_masks(user.id)
        buffs = compute_buffs(user_masks, self.catalog)

        collection = []
        for um in user_masks:
            definition = self.catalog.get_mask(um.mask_id)
            if definition is None:
                logger.warning(f"Mask {um.mask_id} is missing from catalog, skipping")
                continue
            collection.append(
                {
                    "mask_id": um.mask_id,
                    "name": definition.name,
                    "generation": definition.generation,
                    "rarity": definition.base_rarity.value,
                    "level": um.level,
                    "essence": um.essence,
                    "essence_to_next_level": essence_to_next_level(um, definition.base_rarity),
                    "owned_count": um.owned_count,
                    "equipped_slot": um.equipped_slot.value,
                    "unlocked_colors": list(um.unlocked_colors),
                    "equipped_color": um.equipped_color,
                    "transparent": definition.transparent,
                    "buff_type": definition.buff_type.value,
                    "description": definition.description,
                    "origin": definition.origin,
                }
            )

        return {
            "user": asdict(user),
            "equipped": [asdict(m) for m in user_masks if m.equipped_slot != EquipSlot.NONE],
            "total_buffs": asdict(buffs),
            "status": asdict(status),
            "next_pack_ready_in_seconds": status.time_to_ready,
            "fractional_units": status.fractional_units,
            "unlocked_colors": {m.mask_id: list(m.unlocked_colors) for m in user_masks},
            "collection": collection,
            "color_availability": self.color_availability(user_masks),
        }
