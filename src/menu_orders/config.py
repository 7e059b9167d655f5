from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./menu_orders.db"
    DATABASE_ECHO: bool = False
    REDIS_URL: str = "redis://redis:6379/0"

    # sql: отдельные таблицы и атомарные обновления по версии,
    # redis/file/memory: вся коллекция заказов одним документом
    ORDER_STORE_BACKEND: Literal["sql", "redis", "file", "memory"] = "sql"
    ORDERS_STORAGE_KEY: str = "orders"
    ORDERS_FILE_DIR: str = "data"

    TOP_ITEMS_LIMIT: int = 5
    STATS_INCLUDE_CANCELLED: bool = True

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
