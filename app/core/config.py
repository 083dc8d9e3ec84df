from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Hosted database (PostgREST / Supabase)
    SUPABASE_URL: str = "http://localhost:54321"
    SUPABASE_KEY: str = ""

    # Direct Postgres connection, only used by Alembic migrations
    DATABASE_USER: str = "postgres"
    DATABASE_PASSWORD: str = "postgres"
    DATABASE_HOST: str = "localhost"
    DATABASE_PORT: int = 54322
    DATABASE_NAME: str = "postgres"

    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379

    # JWT for the admin dashboard
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12
    ADMIN_PASSWORD: str = "change-me"

    # Operator alerts. The bot is disabled when the token is empty.
    TELEGRAM_BOT_TOKEN: str = ""
    ADMIN_CHAT_ID: int | None = None

    SHOP_NAME: str = "Sweet Quest"
    CURRENCY_SYMBOL: str = "₱"
    MESSENGER_PAGE_ID: str = "61578058454940"
    STOREFRONT_URL: str = "http://localhost:5173"
    TIMEZONE: str = "Asia/Manila"

    SESSION_TTL_SECONDS: int = 60 * 60 * 24
    MENU_CACHE_TTL_SECONDS: int = 300
    CHECKOUT_LOCK_SECONDS: int = 30

    CORS_ORIGINS_STR: str = Field(default="http://localhost:5173", alias="CORS_ORIGINS")

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS_STR.split(',') if origin.strip()]

    @property
    def SUPABASE_REST_URL(self) -> str:
        return f"{self.SUPABASE_URL.rstrip('/')}/rest/v1"

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"

    @property
    def DATABASE_URL(self) -> str:
        return f"postgresql+psycopg2://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

settings = Settings()
