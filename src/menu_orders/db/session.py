from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from menu_orders.config import settings
from menu_orders.db.base import Base


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# Асинхронный движок
engine = create_async_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO, future=True)

# Фабрика сессий
AsyncSessionLocal = make_session_factory(engine)


async def create_tables(bind: AsyncEngine) -> None:
    """
    Создаёт таблицы, если их нет (для локального запуска без alembic).
    """
    # регистрируем модели в metadata
    from menu_orders import models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
