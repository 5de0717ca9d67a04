import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text

from config import settings
from database.base import AsyncSessionLocal, engine as db_engine, init_db
from database.crud import SqlAlchemyGameStore
from game.engine import PackEngine
from game.errors import GameError
from game.pack_service import open_pack_payload
from services.redis_client import pack_open_throttle

# ===== НАСТРОЙКА ЛОГГИРОВАНИЯ =====
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ===== ЗАВИСИМОСТИ =====
@dataclass
class Actor:
    user_id: str
    is_guest: bool


async def get_store():
    """Одна сессия БД на запрос"""
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyGameStore(session, settings.DEFAULT_PACK_ID)


def get_engine(store=Depends(get_store)) -> PackEngine:
    return PackEngine(
        store,
        unit_seconds=settings.PACK_UNIT_SECONDS,
        seed_salt=settings.GLOBAL_SEED_SALT,
        default_pack_id=settings.DEFAULT_PACK_ID,
    )


def get_throttle():
    return pack_open_throttle


def get_actor(x_user_id: Optional[str] = Header(None), x_guest: bool = Header(True)) -> Actor:
    """Заглушка авторизации: пользователь из заголовков"""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return Actor(user_id=x_user_id, is_guest=x_guest)


async def resolve_user_id(engine: PackEngine, actor: Actor) -> str:
    async with engine.store.transaction():
        user = await engine.store.get_or_create_user(actor.is_guest, actor.user_id)
    return user.id


# ===== СХЕМЫ ЗАПРОСОВ =====
class OpenPackRequest(BaseModel):
    pack_id: str
    client_request_id: str


class EquipRequest(BaseModel):
    slot: str
    confirm_pack_trim: bool = False


class ColorRequest(BaseModel):
    color: str


# ===== FASTAPI ПРИЛОЖЕНИЕ =====
@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    await pack_open_throttle.connect()
    logger.info("✅ Kanohi deck service started")
    yield
    await pack_open_throttle.close()
    await db_engine.dispose()


app = FastAPI(title="Kanohi Deck",
              description="Пачки масок: открытие, накопление, экипировка",
              version="1.0.0",
              lifespan=lifespan
             )


@app.exception_handler(GameError)
async def game_error_handler(request: Request, exc: GameError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, **exc.extra},
    )


# ===== ЭНДПОИНТЫ =====
@app.get("/health")
async def health_check():
    """Проверка здоровья сервиса"""
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))

        return {
            "status": "healthy",
            "database": "connected",
            "timestamp": datetime.now().isoformat()
        }
    except Exception as e:
        logger.error(f"❌ Health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "error": str(e),
            "timestamp": datetime.now().isoformat()
        }


@app.post("/packs/open")
async def open_pack(
    body: OpenPackRequest,
    request: Request,
    actor: Actor = Depends(get_actor),
    engine: PackEngine = Depends(get_engine),
    throttle=Depends(get_throttle),
):
    """Открыть пачку (идемпотентно по client_request_id)"""
    result = await open_pack_payload(
        engine,
        throttle,
        actor.is_guest,
        actor.user_id,
        body.pack_id,
        body.client_request_id,
        request_id=request.headers.get("X-Request-Id"),
    )
    return asdict(result)


@app.get("/packs/status")
async def pack_status(
    pack_id: Optional[str] = None,
    actor: Actor = Depends(get_actor),
    engine: PackEngine = Depends(get_engine),
):
    user_id = await resolve_user_id(engine, actor)
    status = await engine.pack_status(user_id, pack_id)
    return asdict(status)


@app.get("/me")
async def me(actor: Actor = Depends(get_actor), engine: PackEngine = Depends(get_engine)):
    """Профиль, баффы, коллекция"""
    return await engine.me_payload(actor.user_id, is_guest=actor.is_guest)


@app.post("/mask/{mask_id}/equip")
async def equip_mask(
    mask_id: str,
    body: EquipRequest,
    actor: Actor = Depends(get_actor),
    engine: PackEngine = Depends(get_engine),
):
    user_id = await resolve_user_id(engine, actor)
    updated = await engine.equip_mask(user_id, mask_id, body.slot, confirm_pack_trim=body.confirm_pack_trim)
    return {"mask": asdict(updated)}


@app.post("/mask/{mask_id}/color")
async def set_mask_color(
    mask_id: str,
    body: ColorRequest,
    actor: Actor = Depends(get_actor),
    engine: PackEngine = Depends(get_engine),
):
    user_id = await resolve_user_id(engine, actor)
    updated = await engine.set_mask_color(user_id, mask_id, body.color)
    return {"mask": asdict(updated)}


@app.post("/starter/mask/{mask_id}")
async def claim_starter_mask(
    mask_id: str,
    actor: Actor = Depends(get_actor),
    engine: PackEngine = Depends(get_engine),
):
    """Стартовая маска на выбор (один раз)"""
    user_id = await resolve_user_id(engine, actor)
    grant = await engine.grant_starter_mask(user_id, mask_id)
    return asdict(grant)


@app.post("/starter/pack")
async def open_starter_pack(actor: Actor = Depends(get_actor), engine: PackEngine = Depends(get_engine)):
    """Стартовая пачка из COMMON (один раз, повтор отдаёт тот же результат)"""
    user_id = await resolve_user_id(engine, actor)
    result = await engine.open_starter_pack(user_id)
    return asdict(result)
