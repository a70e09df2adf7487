"""Order domain constants.

Defines the delivery-status choices and the linear progression the
``progress`` transition walks through.
"""

from __future__ import annotations

from typing import Optional

from django.db import models


class DeliveryStatus(models.TextChoices):
    NEW = "new", "New"
    CONFIRMED = "confirmed", "Confirmed"
    DELIVERY_BOOKED = "delivery_booked", "Delivery booked"
    IN_TRANSIT = "in_transit", "In transit"
    DELIVERED = "delivered", "Delivered"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    REFUNDED = "refunded", "Refunded"


# Progression order: an order only ever moves one step forward via ``progress``.
ORDER_STATUSES: tuple[str, ...] = (
    DeliveryStatus.NEW,
    DeliveryStatus.CONFIRMED,
    DeliveryStatus.DELIVERY_BOOKED,
    DeliveryStatus.IN_TRANSIT,
    DeliveryStatus.DELIVERED,
)

# Statuses that stamp a timestamp field the first time they are reached.
STATUS_TIMESTAMP_FIELDS: dict[str, str] = {
    DeliveryStatus.IN_TRANSIT: "shipped_at",
    DeliveryStatus.DELIVERED: "delivered_at",
}

ORDER_NUMBER_PREFIX = "AST"
ORDER_NUMBER_SEQUENCE_WIDTH = 4

# Storefront checkout pricing (UK VAT and free-delivery threshold)
CHECKOUT_TAX_RATE = "0.20"
CHECKOUT_FREE_SHIPPING_THRESHOLD = "50.00"
CHECKOUT_FLAT_SHIPPING = "5.00"
CHECKOUT_DEFAULT_PAYMENT_METHOD = "card"


def next_status(status: Optional[str]) -> Optional[str]:
    """Return the status after *status*, or ``None`` if unknown or final."""
    try:
        index = ORDER_STATUSES.index(status)
    except ValueError:
        return None
    if index == len(ORDER_STATUSES) - 1:
        return None
    return ORDER_STATUSES[index + 1]


def is_valid_status(status: Optional[str]) -> bool:
    return status in ORDER_STATUSES
