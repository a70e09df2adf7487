from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"

    def ready(self) -> None:
        from modules.orders.events import (
            DeliveryBooked,
            OrderCreated,
            OrderDeleted,
            OrderDuplicated,
            OrderStatusChanged,
        )
        from modules.orders.handlers import (
            delivery_booked_handler,
            order_created_handler,
            order_deleted_handler,
            order_duplicated_handler,
            order_status_changed_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(OrderCreated, order_created_handler)
        event_bus.subscribe(OrderStatusChanged, order_status_changed_handler)
        event_bus.subscribe(DeliveryBooked, delivery_booked_handler)
        event_bus.subscribe(OrderDuplicated, order_duplicated_handler)
        event_bus.subscribe(OrderDeleted, order_deleted_handler)
