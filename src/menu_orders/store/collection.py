"""
Хранилище заказов поверх ключ-значение: вся коллекция лежит одним
JSON-документом и перезаписывается целиком при каждой мутации.

Подходит для одного писателя и небольшого объёма. Два процесса,
пишущие одновременно, могут потерять обновление (выигрывает последняя
запись). Для сервера есть SqlOrderStore.
"""
import asyncio
import json
import logging
from decimal import Decimal
from typing import List, Optional

from pydantic import ValidationError as SchemaValidationError

from menu_orders.errors import OrderAlreadyExists, StorageFailure
from menu_orders.schemas.order import Order
from menu_orders.store.base import OrderMutator, OrderStore, apply_mutator
from menu_orders.store.kv import KeyValueStore

logger = logging.getLogger(__name__)


class CorruptCollection(StorageFailure):
    pass


def encode_orders(orders: List[Order]) -> bytes:
    payload = [order.model_dump(mode="json") for order in orders]
    return json.dumps(payload, ensure_ascii=False).encode("utf-8")


def decode_orders(raw: bytes) -> List[Order]:
    try:
        data = json.loads(raw, parse_float=Decimal)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CorruptCollection(f"Orders collection is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise CorruptCollection("Orders collection must be a JSON list")

    try:
        return [Order.model_validate(item) for item in data]
    except SchemaValidationError as e:
        raise CorruptCollection(f"Orders collection has invalid records: {e}") from e


class CollectionOrderStore(OrderStore):
    def __init__(self, kv: KeyValueStore, key: str = "orders"):
        self.kv = kv
        self.key = key
        # сериализует read-modify-write между корутинами одного процесса
        self._lock = asyncio.Lock()

    async def _load(self) -> List[Order]:
        raw = await self.kv.read(self.key)
        if raw is None:
            return []
        return decode_orders(raw)

    async def _write(self, orders: List[Order]) -> None:
        await self.kv.write(self.key, encode_orders(orders))

    async def list_orders(self, restaurant_id: str) -> List[Order]:
        try:
            orders = await self._load()
        except StorageFailure as e:
            logger.error("Cannot load orders for restaurant %s: %s", restaurant_id, e, exc_info=True)
            return []
        return [o for o in orders if o.restaurant_id == restaurant_id]

    async def get_order(self, order_id: str) -> Optional[Order]:
        orders = await self._load()
        return next((o for o in orders if o.id == order_id), None)

    async def save_order(self, order: Order) -> None:
        async with self._lock:
            orders = await self._load()
            if any(o.id == order.id for o in orders):
                raise OrderAlreadyExists(order.id)
            orders.append(order)
            await self._write(orders)

    async def update_order(self, order_id: str, mutator: OrderMutator) -> Optional[Order]:
        async with self._lock:
            orders = await self._load()
            for index, order in enumerate(orders):
                if order.id == order_id:
                    break
            else:
                return None

            updated = apply_mutator(mutator, order)
            orders[index] = updated
            await self._write(orders)
            return updated

    async def delete_order(self, order_id: str) -> bool:
        async with self._lock:
            orders = await self._load()
            remaining = [o for o in orders if o.id != order_id]
            if len(remaining) == len(orders):
                return False
            await self._write(remaining)
            return True
