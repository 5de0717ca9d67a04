# config.py
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    DB_URL: str = "postgresql+asyncpg://localhost:5432/kanohi"
    REDIS_URL: str = "redis://localhost:6379"
    GLOBAL_SEED_SALT: str = "kanohi-server-salt"
    PACK_UNIT_SECONDS: float = 21600 / 5  # <= 0: хранилище всегда полное
    PACK_OPEN_RATE_LIMIT_MS: int = 1000
    DEFAULT_PACK_ID: str = "free_daily_v1"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env")


settings = Settings()
