"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
Write operations are wrapped in ``transaction.atomic()`` so the Order
aggregate (Order + OrderLines + history) becomes visible all at once.

Status transitions read the order with ``select_for_update()`` so two
concurrent transitions on the same order serialise.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from django.db import models, transaction
from django.db.models import Avg, Count, Q, Sum, Value
from django.db.models.functions import Coalesce

from modules.orders.constants import DeliveryStatus
from modules.orders.models import Order, OrderLine, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

_MONEY = models.DecimalField(max_digits=14, decimal_places=2)


def _as_id(id: Any) -> Optional[int]:
    try:
        return int(id)
    except (TypeError, ValueError):
        return None


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(
        self,
        data: Dict[str, Any],
        lines: List[Dict[str, Any]],
        history_note: str = "Order created",
    ) -> Order:
        """Create an order with its lines atomically.

        ``data`` holds Order column values (``order_number`` included);
        ``lines`` holds OrderLine column values in display order.  The
        initial history row, noted with *history_note*, is written in the
        same transaction.
        """
        order = Order(**data)
        order.save()

        OrderLine.objects.bulk_create(
            [OrderLine(order=order, **line) for line in lines]
        )

        self.add_history(
            order_id=order.id,
            status=order.delivery_status,
            notes=history_note,
        )

        logger.info(
            "order.persisted",
            order_id=order.id,
            order_number=order.order_number,
            line_count=len(lines),
        )
        return order

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    @transaction.atomic
    def update(self, order: Order, fields: Dict[str, Any]) -> Order:
        """Write ``fields`` onto ``order`` and save only those columns."""
        for field, value in fields.items():
            setattr(order, field, value)
        order.save(update_fields=list(fields))
        logger.info("order.updated", order_id=order.id, fields=sorted(fields))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: int) -> Optional[Order]:
        """Retrieve an order with its customer, lines and history.

        Uses ``select_related`` for the customer FK and
        ``prefetch_related`` for lines and history.  Returns ``None`` for
        non-existent or non-numeric IDs.
        """
        pk = _as_id(id)
        if pk is None:
            return None
        return (
            Order.objects.select_related("customer")
            .prefetch_related("lines", "status_history")
            .filter(id=pk)
            .first()
        )

    def get_for_update(self, id: int) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Must be called inside a transaction.  Returns ``None`` for
        non-existent or non-numeric IDs.
        """
        pk = _as_id(id)
        if pk is None:
            return None
        return Order.objects.select_for_update().filter(id=pk).first()

    def get_lines(self, order_id: int) -> List[OrderLine]:
        return list(OrderLine.objects.filter(order_id=order_id).order_by("id"))

    def queryset(self) -> models.QuerySet:
        return Order.objects.select_related("customer").order_by("-created_at", "-id")

    # ------------------------------------------------------------------
    # Save / Delete (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist (create or update) an order."""
        entity.save()
        logger.info("order.saved", order_id=entity.id)
        return entity

    @transaction.atomic
    def delete(self, id: int) -> bool:
        """Hard-delete an order, its lines and its history.

        Returns ``False`` when no order exists with the given ID.
        """
        pk = _as_id(id)
        if pk is None or not Order.objects.filter(id=pk).exists():
            return False
        OrderLine.objects.filter(order_id=pk).delete()
        OrderStatusHistory.objects.filter(order_id=pk).delete()
        Order.objects.filter(id=pk).delete()
        logger.info("order.deleted", order_id=pk)
        return True

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_history(
        self,
        order_id: int,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            notes=notes,
        )
        logger.info(
            "order.history_added",
            order_id=order_id,
            old_status=old_status,
            new_status=status,
        )
        return history

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def status_counts(self) -> Dict[str, int]:
        rows = (
            Order.objects.order_by()
            .values("delivery_status")
            .annotate(count=Count("id"))
        )
        return {
            (row["delivery_status"] or DeliveryStatus.NEW): row["count"] for row in rows
        }

    def metrics(self, month_start: datetime) -> Dict[str, Any]:
        zero = Value(Decimal("0.00"), output_field=_MONEY)
        return Order.objects.aggregate(
            total_orders=Count("id"),
            total_revenue=Coalesce(Sum("total_amount", output_field=_MONEY), zero),
            avg_order_value=Coalesce(Avg("total_amount", output_field=_MONEY), zero),
            new_orders=Count("id", filter=Q(delivery_status=DeliveryStatus.NEW)),
            pending_orders=Count(
                "id",
                filter=Q(
                    delivery_status__in=[DeliveryStatus.NEW, DeliveryStatus.CONFIRMED]
                ),
            ),
            delivered_orders=Count(
                "id", filter=Q(delivery_status=DeliveryStatus.DELIVERED)
            ),
            this_month_orders=Count("id", filter=Q(created_at__gte=month_start)),
        )
