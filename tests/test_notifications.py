"""
Tests for the in-process notification bus.
"""

from menu_orders.services.notifications import NotificationBus, OrderCreated, OrderUpdated

from conftest import make_order


ORDER = make_order(1, [("Tea", "1", 1)])
OTHER = make_order(2, [("Tea", "1", 1)], restaurant_id="rest-2")


class TestNotificationBus:
    def test_publish_to_all(self):
        bus = NotificationBus()
        first, second = [], []
        bus.subscribe(first.append)
        bus.subscribe(second.append)

        assert bus.publish(OrderCreated(ORDER)) == 2
        assert first == second == [OrderCreated(ORDER)]

    def test_filter_by_event_type(self):
        bus = NotificationBus()
        updates = []
        bus.subscribe(updates.append, event_type=OrderUpdated)

        bus.publish(OrderCreated(ORDER))
        bus.publish(OrderUpdated(ORDER))
        assert updates == [OrderUpdated(ORDER)]

    def test_filter_by_restaurant(self):
        bus = NotificationBus()
        received = []
        bus.subscribe(received.append, restaurant_id="rest-2")

        bus.publish(OrderCreated(ORDER))
        bus.publish(OrderCreated(OTHER))
        assert received == [OrderCreated(OTHER)]

    def test_failing_handler_is_isolated(self, caplog):
        bus = NotificationBus()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(received.append)

        assert bus.publish(OrderCreated(ORDER)) == 1
        assert received == [OrderCreated(ORDER)]
        assert "boom" in caplog.text

    def test_unsubscribe(self):
        bus = NotificationBus()
        received = []
        unsubscribe = bus.subscribe(received.append)
        unsubscribe()
        unsubscribe()

        assert bus.publish(OrderCreated(ORDER)) == 0
        assert received == []

    def test_unsubscribe_during_publish(self):
        bus = NotificationBus()
        received = []
        unsubscribe = None

        def once(event):
            received.append(event)
            unsubscribe()

        unsubscribe = bus.subscribe(once)
        bus.subscribe(received.append)

        bus.publish(OrderCreated(ORDER))
        bus.publish(OrderUpdated(ORDER))
        assert received == [OrderCreated(ORDER), OrderCreated(ORDER), OrderUpdated(ORDER)]
