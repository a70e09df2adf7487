"""Order, OrderLine, OrderStatusHistory and OrderNumberSequence models.

Business rules implemented:
- ``delivery_status`` is the single stored lifecycle field; ``status`` is
  a read-only mirror derived from it.
- Customer FK uses SET_NULL: the snapshot fields (``customer_email``,
  ``customer_name``) keep the order historically accurate.
- Monetary fields are supplied by the caller and never recomputed here.
- Order lines are immutable snapshots and die with their order (CASCADE).
- Every status change is recorded in ``OrderStatusHistory``.
- Order numbers (``AST-YYYYMM-NNNN``) come from a per-month counter row
  locked inside the creating transaction.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

import structlog
from django.db import IntegrityError, models, transaction
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_NUMBER_PREFIX,
    ORDER_NUMBER_SEQUENCE_WIDTH,
    DeliveryStatus,
    PaymentStatus,
    next_status,
)

logger = structlog.get_logger(__name__)


def _money_field() -> models.DecimalField:
    return models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))


class Order(BaseModel):
    """Order aggregate root.

    ``order_number`` is the human-readable identifier shown to staff and
    shoppers; the integer ``id`` is used in API paths.
    """

    order_number = models.CharField(max_length=50, unique=True)
    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.SET_NULL,
        related_name="orders",
        null=True,
        blank=True,
    )
    customer_email = models.CharField(max_length=255, blank=True, default="")
    customer_name = models.CharField(max_length=255, blank=True, default="")
    customer_phone = models.CharField(max_length=50, blank=True, default="")
    shipping_address = models.JSONField(null=True, blank=True, default=None)
    billing_address = models.JSONField(null=True, blank=True, default=None)

    subtotal = _money_field()
    tax_amount = _money_field()
    shipping_amount = _money_field()
    total_amount = _money_field()

    delivery_status = models.CharField(
        max_length=50,
        choices=DeliveryStatus.choices,
        default=DeliveryStatus.NEW,
    )
    payment_method = models.CharField(max_length=50, blank=True, default="")
    payment_status = models.CharField(
        max_length=50,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    item_count = models.PositiveIntegerField(default=0)
    notes = models.TextField(blank=True, default="")

    tracking_number = models.CharField(max_length=100, blank=True, default="")
    courier = models.CharField(max_length=100, blank=True, default="")
    expected_delivery_date = models.DateField(null=True, blank=True, default=None)
    shipped_at = models.DateTimeField(null=True, blank=True, default=None)
    delivered_at = models.DateTimeField(null=True, blank=True, default=None)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["delivery_status"], name="orders_delivery_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]

    @property
    def status(self) -> str:
        """Legacy mirror of ``delivery_status``."""
        return self.delivery_status

    @property
    def next_status(self) -> Optional[str]:
        return next_status(self.delivery_status)

    def append_note(self, note: str) -> None:
        """Append *note* to the newline-separated notes log."""
        self.notes = f"{self.notes}\n{note}" if self.notes else note

    def __str__(self) -> str:
        return f"{self.order_number} ({self.delivery_status})"


class OrderLine(models.Model):
    """One product entry within an order.

    ``product_id`` may reference a catalogue product or be empty for a
    free-form line; ``product_name``, ``sku`` and prices are snapshots.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="lines",
    )
    product_id = models.PositiveIntegerField(null=True, blank=True, default=None)
    sku = models.CharField(max_length=100, blank=True, default="")
    product_name = models.CharField(max_length=255)
    colour_name = models.CharField(max_length=100, blank=True, default="")
    quantity = models.PositiveIntegerField(default=1)
    unit_price = _money_field()
    subtotal = _money_field()
    image_url = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "order_lines"
        ordering = ["id"]

    def __str__(self) -> str:
        return f"{self.product_name} x{self.quantity}"


class OrderStatusHistory(models.Model):
    """Append-only audit trail for order status transitions.

    ``old_status`` is ``None`` for the row written when the order is created.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status = models.CharField(  # noqa: DJ01
        max_length=50,
        choices=DeliveryStatus.choices,
        null=True,
        blank=True,
    )
    new_status = models.CharField(max_length=50, choices=DeliveryStatus.choices)
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "order_status_history"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["order", "created_at"], name="osh_order_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.order_id}: {self.old_status} -> {self.new_status}"


class OrderNumberSequence(models.Model):
    """Per-month counter behind ``AST-YYYYMM-NNNN`` order numbers.

    The row for a month is locked with ``SELECT ... FOR UPDATE`` while the
    next value is taken, so concurrent creators serialise on it instead of
    racing on ``MAX(order_number)``.
    """

    prefix = models.CharField(max_length=20, unique=True)
    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "order_number_sequences"

    @staticmethod
    def prefix_for(moment: datetime) -> str:
        local = timezone.localtime(moment)
        return f"{ORDER_NUMBER_PREFIX}-{local:%Y%m}"

    @staticmethod
    def format_number(prefix: str, value: int) -> str:
        return f"{prefix}-{value:0{ORDER_NUMBER_SEQUENCE_WIDTH}d}"

    @staticmethod
    def highest_existing_sequence(prefix: str) -> int:
        """Largest sequence already used by orders with *prefix* (0 if none).

        Seeds a new month's counter so orders inserted without the counter
        (imports, legacy rows) are never reissued.
        """
        highest = 0
        numbers = Order.objects.filter(
            order_number__startswith=f"{prefix}-"
        ).values_list("order_number", flat=True)
        for number in numbers:
            tail = number.rsplit("-", 1)[-1]
            if tail.isdigit():
                highest = max(highest, int(tail))
        return highest

    @classmethod
    def next_order_number(cls, now: Optional[datetime] = None) -> str:
        """Reserve and return the next order number for *now*'s month."""
        prefix = cls.prefix_for(now or timezone.now())
        with transaction.atomic():
            sequence = cls.objects.select_for_update().filter(prefix=prefix).first()
            if sequence is None:
                try:
                    with transaction.atomic():
                        sequence = cls.objects.create(
                            prefix=prefix,
                            last_value=cls.highest_existing_sequence(prefix),
                        )
                except IntegrityError:
                    # Another creator opened the month first; queue behind it.
                    sequence = cls.objects.select_for_update().get(prefix=prefix)
            sequence.last_value += 1
            sequence.save(update_fields=["last_value"])

        order_number = cls.format_number(prefix, sequence.last_value)
        logger.info("order.number_reserved", order_number=order_number)
        return order_number

    def __str__(self) -> str:
        return f"{self.prefix} @ {self.last_value}"
