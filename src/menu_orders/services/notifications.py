"""
Шина уведомлений о заказах.

Доставка синхронная, в том же процессе и без гарантий: подписчик,
который не слушал в момент события, его пропускает и должен
перечитать состояние целиком. Ошибка одного подписчика логируется
и не мешает остальным и самой мутации.
"""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Type, Union

from menu_orders.schemas.order import Order

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderCreated:
    order: Order


@dataclass(frozen=True)
class OrderUpdated:
    order: Order


OrderEvent = Union[OrderCreated, OrderUpdated]
Handler = Callable[[OrderEvent], None]


@dataclass(frozen=True, eq=False)
class Subscription:
    handler: Handler
    event_type: Optional[Type] = None
    restaurant_id: Optional[str] = None

    def matches(self, event: OrderEvent) -> bool:
        if self.event_type is not None and not isinstance(event, self.event_type):
            return False
        if self.restaurant_id is not None and event.order.restaurant_id != self.restaurant_id:
            return False
        return True


class NotificationBus:
    def __init__(self):
        self._subscriptions: List[Subscription] = []

    def subscribe(
        self,
        handler: Handler,
        event_type: Optional[Type] = None,
        restaurant_id: Optional[str] = None,
    ) -> Callable[[], None]:
        """
        Регистрирует обработчик. event_type и restaurant_id сужают
        поток событий. Возвращает функцию для отписки.
        """
        subscription = Subscription(handler, event_type, restaurant_id)
        self._subscriptions.append(subscription)
        return lambda: self.unsubscribe(subscription)

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def publish(self, event: OrderEvent) -> int:
        """
        Рассылает событие подходящим подписчикам. Возвращает число
        успешно уведомлённых. Никогда не бросает исключений.
        """
        notified = 0
        # копия: обработчик может отписаться прямо во время рассылки
        for subscription in list(self._subscriptions):
            if not subscription.matches(event):
                continue
            handler_name = getattr(subscription.handler, "__qualname__", repr(subscription.handler))
            try:
                subscription.handler(event)
                notified += 1
            except Exception as e:
                logger.error(
                    "Subscriber %s failed for %s (order %s): %s",
                    handler_name, type(event).__name__, event.order.id, e,
                    exc_info=True,
                )

        logger.debug("%s for order %s: %s notified", type(event).__name__, event.order.id, notified)
        return notified
