"""Order service layer (Use Cases).

Orchestrates the order lifecycle: creation (admin and storefront
checkout), patching, the one-step ``progress`` transition, courier
booking, the token-gated status override, duplication and deletion.
Every write runs in one transaction; the service defines the
unit-of-work boundary.

Business rules enforced:
- Order numbers come from the per-month counter inside the creating
  transaction, so an order, its lines and its number appear together.
- ``delivery_status`` only ever holds one of the five known statuses.
- ``progress`` moves exactly one step forward and refuses at ``delivered``.
- ``book_delivery`` jumps to ``delivery_booked`` from any status.
- Reaching ``in_transit`` / ``delivered`` stamps ``shipped_at`` /
  ``delivered_at`` unless the caller supplied the timestamp.
- Every status change is written to the order's history.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

import structlog
from django.db import transaction
from django.utils import timezone

from modules.customers.services import CustomerService
from modules.orders.constants import (
    CHECKOUT_FLAT_SHIPPING,
    CHECKOUT_FREE_SHIPPING_THRESHOLD,
    CHECKOUT_TAX_RATE,
    ORDER_STATUSES,
    STATUS_TIMESTAMP_FIELDS,
    DeliveryStatus,
    PaymentStatus,
    is_valid_status,
    next_status,
)
from modules.orders.dtos import quantize_money
from modules.orders.events import (
    DeliveryBooked,
    OrderCreated,
    OrderDeleted,
    OrderDuplicated,
    OrderStatusChanged,
)
from modules.orders.exceptions import (
    CustomerNotFound,
    FinalStatusReached,
    InvalidOrderStatus,
    MissingDeliveryDetails,
    NothingToUpdate,
    OrderNotFound,
)
from modules.orders.models import OrderNumberSequence
from shared.infrastructure.bus import event_bus

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.customers.repositories.interfaces import ICustomerRepository
    from modules.orders.dtos import BookDeliveryDTO, CheckoutDTO, CreateOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)

# Fields a patch may write.  ``status`` is accepted as an alias of
# ``delivery_status``; anything else in the payload is ignored.
UPDATABLE_FIELDS: Tuple[str, ...] = (
    "customer_id",
    "customer_email",
    "customer_name",
    "customer_phone",
    "shipping_address",
    "billing_address",
    "subtotal",
    "tax_amount",
    "shipping_amount",
    "total_amount",
    "payment_method",
    "payment_status",
    "delivery_status",
    "status",
    "notes",
    "tracking_number",
    "courier",
    "expected_delivery_date",
    "shipped_at",
    "delivered_at",
)

# Columns carried over by ``duplicate_order``.
DUPLICATED_FIELDS: Tuple[str, ...] = (
    "customer_id",
    "customer_email",
    "customer_name",
    "customer_phone",
    "shipping_address",
    "billing_address",
    "subtotal",
    "tax_amount",
    "shipping_amount",
    "total_amount",
    "payment_method",
    "item_count",
)

DUPLICATED_LINE_FIELDS: Tuple[str, ...] = (
    "product_id",
    "sku",
    "product_name",
    "colour_name",
    "quantity",
    "unit_price",
    "subtotal",
    "image_url",
)


def _stamp_status_timestamp(
    fields: Dict[str, Any], status: Optional[str], now: datetime
) -> None:
    """Add ``shipped_at`` / ``delivered_at`` to *fields* when *status* needs it."""
    stamp_field = STATUS_TIMESTAMP_FIELDS.get(status)
    if stamp_field and not fields.get(stamp_field):
        fields[stamp_field] = now


class OrderService:
    """Application service for Order use-cases.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        customer_repository: ICustomerRepository,
    ) -> None:
        self._order_repo = order_repository
        self._customer_repo = customer_repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Create an order and its lines from the admin console.

        Steps:
        1. Resolve the optional customer; snapshot fields default to the
           customer's own details when the caller left them blank.
        2. Reserve the next ``AST-YYYYMM-NNNN`` number.
        3. Persist order + lines + initial history atomically.

        Raises:
            CustomerNotFound: ``customer_id`` does not match a customer.
        """
        log = logger.bind(customer_id=dto.customer_id)
        log.info("order.creation_started", line_count=len(dto.line_items))

        customer_email = dto.customer_email
        customer_name = dto.customer_name
        customer_phone = dto.customer_phone
        if dto.customer_id is not None:
            customer = self._customer_repo.get_by_id(dto.customer_id)
            if customer is None:
                raise CustomerNotFound(f"Customer {dto.customer_id} not found.")
            customer_email = customer_email or customer.email
            customer_name = customer_name or customer.display_name
            customer_phone = customer_phone or customer.phone

        order_number = OrderNumberSequence.next_order_number()
        order = self._order_repo.create(
            {
                "order_number": order_number,
                "customer_id": dto.customer_id,
                "customer_email": customer_email,
                "customer_name": customer_name,
                "customer_phone": customer_phone,
                "shipping_address": dto.shipping_address,
                "billing_address": dto.billing_address,
                "subtotal": dto.subtotal,
                "tax_amount": dto.tax_amount,
                "shipping_amount": dto.shipping_amount,
                "total_amount": dto.total_amount,
                "payment_method": dto.payment_method,
                "payment_status": dto.payment_status or PaymentStatus.PENDING,
                "delivery_status": DeliveryStatus.NEW,
                "item_count": dto.item_count,
                "notes": dto.notes,
            },
            [line.model_dump() for line in dto.line_items],
        )

        log.info("order.created", order_id=order.id, order_number=order_number)
        self._publish(OrderCreated(aggregate_id=order.id, order_number=order_number))
        return self._order_repo.get_by_id(order.id) or order

    @transaction.atomic
    def checkout(self, dto: CheckoutDTO) -> Tuple[Order, Dict[str, Decimal]]:
        """Turn a storefront cart into a paid order.

        The shopper is matched by email (or created), totals the storefront
        did not send are derived from the cart, and the order goes through
        the same numbering and persistence path as admin creation.

        Returns the created order and the totals that were charged.
        """
        customer = CustomerService(self._customer_repo).find_or_create_for_checkout(
            dto.customer
        )
        totals = self.checkout_totals(dto)

        order_number = OrderNumberSequence.next_order_number()
        order = self._order_repo.create(
            {
                "order_number": order_number,
                "customer_id": customer.id,
                "customer_email": dto.customer.email,
                "customer_name": dto.customer.name,
                "customer_phone": dto.customer.phone,
                "shipping_address": dto.address_snapshot,
                "subtotal": totals["subtotal"],
                "tax_amount": totals["tax"],
                "shipping_amount": totals["shipping"],
                "total_amount": totals["total"],
                "payment_method": dto.payment_method,
                "payment_status": PaymentStatus.PAID,
                "delivery_status": DeliveryStatus.NEW,
                "item_count": dto.item_count,
            },
            [
                {
                    "product_id": item.id,
                    "sku": item.sku,
                    "product_name": item.name,
                    "colour_name": item.colour_name,
                    "quantity": item.quantity,
                    "unit_price": quantize_money(item.price),
                    "subtotal": item.line_total,
                    "image_url": item.media,
                }
                for item in dto.cart
            ],
        )

        logger.info(
            "order.checkout_completed",
            order_id=order.id,
            order_number=order_number,
            customer_id=customer.id,
            total_amount=str(totals["total"]),
        )
        self._publish(
            OrderCreated(
                aggregate_id=order.id, order_number=order_number, source="checkout"
            )
        )
        return order, totals

    @staticmethod
    def checkout_totals(dto: CheckoutDTO) -> Dict[str, Decimal]:
        """Totals for a checkout: supplied values win, the rest are derived.

        VAT is charged on the subtotal; delivery is free from the
        free-shipping threshold upwards and a flat fee below it.
        """
        supplied = dto.totals
        subtotal = (
            supplied.subtotal
            if supplied and supplied.subtotal is not None
            else sum((item.line_total for item in dto.cart), Decimal("0"))
        )
        tax = (
            supplied.tax
            if supplied and supplied.tax is not None
            else subtotal * Decimal(CHECKOUT_TAX_RATE)
        )
        if supplied and supplied.shipping is not None:
            shipping = supplied.shipping
        elif subtotal >= Decimal(CHECKOUT_FREE_SHIPPING_THRESHOLD):
            shipping = Decimal("0")
        else:
            shipping = Decimal(CHECKOUT_FLAT_SHIPPING)
        subtotal, tax, shipping = (
            quantize_money(subtotal),
            quantize_money(tax),
            quantize_money(shipping),
        )
        total = (
            supplied.total
            if supplied and supplied.total is not None
            else subtotal + tax + shipping
        )
        return {
            "subtotal": subtotal,
            "tax": tax,
            "shipping": shipping,
            "total": quantize_money(total),
        }

    @transaction.atomic
    def update_order(self, order_id: int, changes: Dict[str, Any]) -> Order:
        """Patch allow-listed fields of an order.

        Raises:
            NothingToUpdate: no allow-listed key is present.
            InvalidOrderStatus: unknown status, or ``status`` and
                ``delivery_status`` disagree.
            CustomerNotFound: ``customer_id`` does not match a customer.
            OrderNotFound: the order does not exist.
        """
        fields = {key: changes[key] for key in UPDATABLE_FIELDS if key in changes}
        if not fields:
            raise NothingToUpdate("No fields to update")

        if "status" in fields:
            alias = fields.pop("status")
            if "delivery_status" in fields and fields["delivery_status"] != alias:
                raise InvalidOrderStatus(
                    "status and delivery_status must match when both are given"
                )
            fields["delivery_status"] = alias

        new_status = fields.get("delivery_status")
        if "delivery_status" in fields and not is_valid_status(new_status):
            raise InvalidOrderStatus(f"Invalid status: {new_status}")

        customer_id = fields.get("customer_id")
        if customer_id is not None and self._customer_repo.get_by_id(customer_id) is None:
            raise CustomerNotFound(f"Customer {customer_id} not found.")

        order = self._order_repo.get_for_update(order_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")

        old_status = order.delivery_status
        _stamp_status_timestamp(fields, new_status, timezone.now())
        self._order_repo.update(order, fields)

        if new_status and new_status != old_status:
            self._record_status_change(order, old_status, new_status, "Status updated")

        logger.info("order.patched", order_id=order.id, fields=sorted(fields))
        return self._order_repo.get_by_id(order.id) or order

    @transaction.atomic
    def progress_order(self, order_id: int) -> Tuple[Order, str, str]:
        """Advance an order exactly one step along the status table.

        Returns ``(order, previous_status, new_status)``.

        Raises:
            OrderNotFound: the order does not exist.
            FinalStatusReached: the order is already delivered.
        """
        order = self._order_repo.get_for_update(order_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")

        previous = order.delivery_status or DeliveryStatus.NEW
        upcoming = next_status(previous)
        log = logger.bind(order_id=order.id, current_status=previous)
        if upcoming is None:
            log.warning("order.progress_refused")
            raise FinalStatusReached("Order is already at final status")

        fields: Dict[str, Any] = {"delivery_status": upcoming}
        _stamp_status_timestamp(fields, upcoming, timezone.now())
        self._order_repo.update(order, fields)
        self._record_status_change(order, previous, upcoming, "Status progressed")

        log.info("order.progressed", new_status=upcoming)
        return self._order_repo.get_by_id(order.id) or order, previous, upcoming

    @transaction.atomic
    def book_delivery(self, order_id: int, dto: BookDeliveryDTO) -> Order:
        """Record a courier booking and force ``delivery_booked``.

        Raises:
            MissingDeliveryDetails: courier or tracking number is blank.
            OrderNotFound: the order does not exist.
        """
        if not dto.is_complete:
            raise MissingDeliveryDetails("Courier and tracking number are required")

        order = self._order_repo.get_for_update(order_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")

        previous = order.delivery_status
        order.append_note(dto.note)
        self._order_repo.update(
            order,
            {
                "delivery_status": DeliveryStatus.DELIVERY_BOOKED,
                "courier": dto.courier,
                "tracking_number": dto.tracking_number,
                "expected_delivery_date": dto.expected_delivery_date,
                "notes": order.notes,
            },
        )
        self._order_repo.add_history(
            order_id=order.id,
            status=DeliveryStatus.DELIVERY_BOOKED,
            notes=dto.note,
            old_status=previous,
        )

        logger.info(
            "order.delivery_booked",
            order_id=order.id,
            previous_status=previous,
            courier=dto.courier,
        )
        self._publish(
            DeliveryBooked(
                aggregate_id=order.id,
                courier=dto.courier,
                tracking_number=dto.tracking_number,
            )
        )
        if previous != DeliveryStatus.DELIVERY_BOOKED:
            self._publish(
                OrderStatusChanged(
                    aggregate_id=order.id,
                    old_status=previous,
                    new_status=DeliveryStatus.DELIVERY_BOOKED,
                )
            )
        return self._order_repo.get_by_id(order.id) or order

    @transaction.atomic
    def force_status(
        self, order_id: int, status: str, notes: str = ""
    ) -> Tuple[Order, str, str]:
        """Administrative override: set any status, in any direction.

        Returns ``(order, previous_status, new_status)``.

        Raises:
            InvalidOrderStatus: *status* is not one of the five statuses.
            OrderNotFound: the order does not exist.
        """
        if not is_valid_status(status):
            raise InvalidOrderStatus(
                f"Invalid status: {status}. Expected one of {', '.join(ORDER_STATUSES)}"
            )

        order = self._order_repo.get_for_update(order_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")

        previous = order.delivery_status
        fields: Dict[str, Any] = {"delivery_status": status}
        _stamp_status_timestamp(fields, status, timezone.now())
        self._order_repo.update(order, fields)
        self._record_status_change(
            order, previous, status, notes or "Status overridden"
        )

        logger.warning(
            "order.status_forced",
            order_id=order.id,
            previous_status=previous,
            new_status=status,
        )
        return self._order_repo.get_by_id(order.id) or order, previous, status

    @transaction.atomic
    def duplicate_order(self, order_id: int) -> Order:
        """Clone an order and its lines under a fresh order number.

        Raises:
            OrderNotFound: the source order does not exist.
        """
        source = self._order_repo.get_by_id(order_id)
        if source is None:
            raise OrderNotFound(f"Order {order_id} not found.")

        order_number = OrderNumberSequence.next_order_number()
        note = f"Duplicated from {source.order_number}"
        data = {field: getattr(source, field) for field in DUPLICATED_FIELDS}
        data.update(
            {
                "order_number": order_number,
                "delivery_status": DeliveryStatus.NEW,
                "notes": note,
            }
        )
        lines = [
            {field: getattr(line, field) for field in DUPLICATED_LINE_FIELDS}
            for line in self._order_repo.get_lines(source.id)
        ]
        order = self._order_repo.create(data, lines, history_note=note)

        logger.info(
            "order.duplicated",
            order_id=order.id,
            source_order_id=source.id,
            order_number=order_number,
        )
        self._publish(
            OrderDuplicated(
                aggregate_id=order.id,
                source_order_id=source.id,
                order_number=order_number,
            )
        )
        return self._order_repo.get_by_id(order.id) or order

    @transaction.atomic
    def delete_order(self, order_id: int) -> None:
        """Remove an order with its lines and history.

        Raises:
            OrderNotFound: the order does not exist.
        """
        if not self._order_repo.delete(order_id):
            raise OrderNotFound(f"Order {order_id} not found.")
        self._publish(OrderDeleted(aggregate_id=int(order_id)))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: int) -> Order:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(self) -> QuerySet:
        """Base queryset for the list endpoint, newest first."""
        return self._order_repo.queryset()

    def status_counts(self) -> Dict[str, int]:
        """Global tally of orders per delivery status (zero-filled)."""
        counts = self._order_repo.status_counts()
        return {status: counts.get(status, 0) for status in ORDER_STATUSES}

    def metrics(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Dashboard figures; ``this_month_orders`` uses the local calendar month."""
        local_now = timezone.localtime(now or timezone.now())
        month_start = local_now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        metrics = self._order_repo.metrics(month_start)
        metrics["total_revenue"] = quantize_money(metrics["total_revenue"] or 0)
        metrics["avg_order_value"] = quantize_money(metrics["avg_order_value"] or 0)
        return metrics

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _record_status_change(
        self, order: Order, old_status: str, new_status: str, notes: str
    ) -> None:
        self._order_repo.add_history(
            order_id=order.id,
            status=new_status,
            notes=notes,
            old_status=old_status,
        )
        self._publish(
            OrderStatusChanged(
                aggregate_id=order.id, old_status=old_status, new_status=new_status
            )
        )

    @staticmethod
    def _publish(event: DomainEvent) -> None:
        """Hand *event* to the bus once the surrounding transaction commits."""
        transaction.on_commit(lambda: event_bus.publish(event))
