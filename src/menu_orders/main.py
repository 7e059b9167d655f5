import logging
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from menu_orders.api import health
from menu_orders.api.routes.orders import restaurant_router
from menu_orders.api.routes.orders import router as orders_router
from menu_orders.api.routes.statuses import router as statuses_router
from menu_orders.config import Settings, settings
from menu_orders.errors import (
    InvalidTransition,
    OrderAlreadyExists,
    OrderNotFound,
    StorageFailure,
    ValidationError,
)
from menu_orders.services.ledger import OrderLedger
from menu_orders.services.notifications import NotificationBus
from menu_orders.store import (
    CollectionOrderStore,
    FileKeyValueStore,
    MemoryKeyValueStore,
    OrderStore,
    RedisKeyValueStore,
    SqlOrderStore,
)

logger = logging.getLogger(__name__)

Cleanup = Optional[Callable[[], Awaitable[None]]]


async def build_store(cfg: Settings) -> Tuple[OrderStore, Cleanup]:
    """
    Собирает хранилище по ORDER_STORE_BACKEND.
    Возвращает хранилище и корутину для закрытия соединений (или None).
    """
    backend = cfg.ORDER_STORE_BACKEND

    if backend == "sql":
        from menu_orders.db.session import AsyncSessionLocal, create_tables, engine

        await create_tables(engine)
        return SqlOrderStore(AsyncSessionLocal), engine.dispose

    if backend == "redis":
        kv = RedisKeyValueStore.from_url(cfg.REDIS_URL)
        return CollectionOrderStore(kv, cfg.ORDERS_STORAGE_KEY), kv.close

    if backend == "file":
        kv = FileKeyValueStore(cfg.ORDERS_FILE_DIR)
        return CollectionOrderStore(kv, cfg.ORDERS_STORAGE_KEY), None

    return CollectionOrderStore(MemoryKeyValueStore(), cfg.ORDERS_STORAGE_KEY), None


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"detail": exc.errors})

    @app.exception_handler(OrderNotFound)
    async def not_found_handler(request: Request, exc: OrderNotFound):
        return JSONResponse(status_code=404, content={"detail": "Order not found"})

    @app.exception_handler(InvalidTransition)
    async def invalid_transition_handler(request: Request, exc: InvalidTransition):
        return JSONResponse(
            status_code=409,
            content={"detail": str(exc), "current": exc.current, "requested": exc.requested},
        )

    @app.exception_handler(OrderAlreadyExists)
    async def already_exists_handler(request: Request, exc: OrderAlreadyExists):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(StorageFailure)
    async def storage_failure_handler(request: Request, exc: StorageFailure):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": "Order storage is unavailable"})


def create_app(ledger: Optional[OrderLedger] = None, cfg: Settings = settings) -> FastAPI:
    """
    Фабрика приложения. Если ledger не передан, он собирается
    при старте из настроек.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.basicConfig(
            level=cfg.LOG_LEVEL,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
        cleanup = None
        if ledger is None:
            store, cleanup = await build_store(cfg)
            app.state.ledger = OrderLedger(
                store,
                NotificationBus(),
                top_items_limit=cfg.TOP_ITEMS_LIMIT,
                include_cancelled=cfg.STATS_INCLUDE_CANCELLED,
            )
        else:
            app.state.ledger = ledger

        logger.info("Application started (store: %s)", type(app.state.ledger.store).__name__)
        yield

        if cleanup is not None:
            await cleanup()
        logger.info("Application stopped")

    app = FastAPI(title="Menu Orders", lifespan=lifespan)

    # Подключаем роуты
    app.include_router(health.router)
    app.include_router(statuses_router)
    app.include_router(restaurant_router)
    app.include_router(orders_router)

    install_error_handlers(app)
    return app


app = create_app()
