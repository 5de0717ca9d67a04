# database/base.py
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from config import settings

# Пул настраиваем только для серверных БД, sqlite его не поддерживает
engine_kwargs = {"echo": False, "future": True}
if not settings.DB_URL.startswith("sqlite"):
    engine_kwargs.update(
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Проверять соединение перед использованием
        pool_recycle=3600,
    )

engine = create_async_engine(settings.DB_URL, **engine_kwargs)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

Base = declarative_base()


async def init_db():
    """Создать таблицы, если их ещё нет"""
    import database.models  # noqa: F401  регистрирует модели в Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
