"""Event handlers for Orders domain events."""

from __future__ import annotations

import structlog

from modules.orders.events import (
    DeliveryBooked,
    OrderCreated,
    OrderDeleted,
    OrderDuplicated,
    OrderStatusChanged,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info(
            "order.event.created",
            order_id=event.aggregate_id,
            order_number=event.order_number,
            source=event.source,
        )


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.event.status_changed",
            order_id=event.aggregate_id,
            old_status=event.old_status,
            new_status=event.new_status,
        )


class DeliveryBookedHandler(IEventHandler[DeliveryBooked]):
    def handle(self, event: DeliveryBooked) -> None:
        logger.info(
            "order.event.delivery_booked",
            order_id=event.aggregate_id,
            courier=event.courier,
            tracking_number=event.tracking_number,
        )


class OrderDuplicatedHandler(IEventHandler[OrderDuplicated]):
    def handle(self, event: OrderDuplicated) -> None:
        logger.info(
            "order.event.duplicated",
            order_id=event.aggregate_id,
            source_order_id=event.source_order_id,
            order_number=event.order_number,
        )


class OrderDeletedHandler(IEventHandler[OrderDeleted]):
    def handle(self, event: OrderDeleted) -> None:
        logger.info("order.event.deleted", order_id=event.aggregate_id)


order_created_handler = OrderCreatedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
delivery_booked_handler = DeliveryBookedHandler()
order_duplicated_handler = OrderDuplicatedHandler()
order_deleted_handler = OrderDeletedHandler()
