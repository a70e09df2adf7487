"""Unit tests for OrderService.

Covers:
- Order creation: numbering, item count, customer snapshot, initial history.
- Patch: allow-list, status alias, enum validation, timestamp stamps.
- progress / book_delivery / force_status transitions.
- duplicate and delete.
- Checkout totals and metrics.
- Validation failures raised before the repository is touched.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from modules.customers.dtos import CheckoutCustomerDTO
from modules.orders.constants import DeliveryStatus, PaymentStatus
from modules.orders.dtos import (
    BookDeliveryDTO,
    CartItemDTO,
    CheckoutDTO,
    CheckoutTotalsDTO,
    CreateOrderDTO,
    OrderLineDTO,
)
from modules.orders.exceptions import (
    CustomerNotFound,
    FinalStatusReached,
    InvalidOrderStatus,
    MissingDeliveryDetails,
    NothingToUpdate,
    OrderNotFound,
)
from modules.orders.models import Order, OrderLine, OrderStatusHistory
from modules.orders.services import OrderService

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def service(order_service):
    return order_service


@pytest.fixture()
def order_dto():
    return CreateOrderDTO(
        customer_email="a@b.com",
        customer_name="Alex Birdie",
        total_amount=Decimal("50.00"),
        notes="Phone order",
        line_items=[
            OrderLineDTO(product_id=101, sku="GRP-1", product_name="Grip", quantity=2),
            OrderLineDTO(product_name="Regripping labour", unit_price=Decimal("3.00")),
        ],
    )


@pytest.fixture()
def order(service, order_dto):
    return service.create_order(order_dto)


@pytest.fixture()
def stub_service():
    """Service over mocked repositories, to prove the store is never reached."""
    order_repo = MagicMock()
    customer_repo = MagicMock()
    return OrderService(order_repo, customer_repo), order_repo


# ===========================================================================
# create_order
# ===========================================================================


class TestCreateOrder:
    def test_numbers_order_for_current_month(self, service, order_dto, march_2025):
        order = service.create_order(order_dto)
        assert order.order_number == "AST-202503-0001"

    def test_sequential_orders_in_same_month(self, service, order_dto, march_2025):
        service.create_order(order_dto)
        second = service.create_order(order_dto)
        assert second.order_number == "AST-202503-0002"

    def test_item_count_is_sum_of_quantities(self, order):
        assert order.item_count == 3

    def test_starts_new_and_pending_payment(self, order):
        assert order.delivery_status == DeliveryStatus.NEW
        assert order.status == DeliveryStatus.NEW
        assert order.payment_status == PaymentStatus.PENDING

    def test_lines_kept_in_input_order(self, order):
        names = [line.product_name for line in order.lines.all()]
        assert names == ["Grip", "Regripping labour"]
        assert order.lines.all()[1].product_id is None

    def test_records_initial_history(self, order):
        history = list(order.status_history.all())

        assert len(history) == 1
        assert history[0].old_status is None
        assert history[0].new_status == DeliveryStatus.NEW
        assert history[0].notes == "Order created"

    def test_snapshot_defaults_to_customer_details(self, service, customer):
        order = service.create_order(CreateOrderDTO(customer_id=customer.id))

        assert order.customer_email == "orders@fairways.example.com"
        assert order.customer_name == "Fairways Golf Club"
        assert order.customer_phone == "01344 620000"

    def test_unknown_customer_raises(self, service):
        with pytest.raises(CustomerNotFound):
            service.create_order(CreateOrderDTO(customer_id=999999))
        assert not Order.objects.exists()


# ===========================================================================
# update_order
# ===========================================================================


class TestUpdateOrder:
    def test_empty_patch_never_touches_store(self, stub_service):
        service, order_repo = stub_service

        with pytest.raises(NothingToUpdate, match="No fields to update"):
            service.update_order(1, {"unexpected": "value"})
        assert not order_repo.method_calls

    def test_invalid_status_never_touches_store(self, stub_service):
        service, order_repo = stub_service

        with pytest.raises(InvalidOrderStatus):
            service.update_order(1, {"delivery_status": "shipped"})
        assert not order_repo.method_calls

    def test_conflicting_status_alias_rejected(self, stub_service):
        service, _ = stub_service
        with pytest.raises(InvalidOrderStatus):
            service.update_order(1, {"status": "confirmed", "delivery_status": "new"})

    def test_writes_only_supplied_fields(self, service, order):
        updated = service.update_order(order.id, {"courier": "DPD"})

        assert updated.courier == "DPD"
        assert updated.customer_email == "a@b.com"
        assert updated.total_amount == Decimal("50.00")

    def test_status_alias_sets_delivery_status(self, service, order):
        updated = service.update_order(order.id, {"status": "confirmed"})
        assert updated.delivery_status == DeliveryStatus.CONFIRMED

    def test_in_transit_stamps_shipped_at(self, service, order):
        updated = service.update_order(order.id, {"delivery_status": "in_transit"})
        assert updated.shipped_at is not None
        assert updated.delivered_at is None

    def test_supplied_timestamp_wins(self, service, order):
        shipped = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
        updated = service.update_order(
            order.id, {"delivery_status": "in_transit", "shipped_at": shipped}
        )
        assert updated.shipped_at == shipped

    def test_moving_backwards_keeps_timestamps(self, service, order):
        service.update_order(order.id, {"delivery_status": "delivered"})
        updated = service.update_order(order.id, {"delivery_status": "confirmed"})
        assert updated.delivered_at is not None

    def test_status_change_writes_history(self, service, order):
        service.update_order(order.id, {"delivery_status": "confirmed"})

        last = OrderStatusHistory.objects.filter(order=order).last()
        assert last.old_status == DeliveryStatus.NEW
        assert last.new_status == DeliveryStatus.CONFIRMED

    def test_non_status_patch_writes_no_history(self, service, order):
        service.update_order(order.id, {"notes": "Gift wrap"})
        assert OrderStatusHistory.objects.filter(order=order).count() == 1

    def test_missing_order_raises(self, service):
        with pytest.raises(OrderNotFound):
            service.update_order(424242, {"notes": "x"})


# ===========================================================================
# progress_order
# ===========================================================================


class TestProgressOrder:
    def test_walks_every_status(self, service, order):
        observed = []
        for _ in range(4):
            order, previous, new = service.progress_order(order.id)
            observed.append((previous, new))

        assert observed == [
            ("new", "confirmed"),
            ("confirmed", "delivery_booked"),
            ("delivery_booked", "in_transit"),
            ("in_transit", "delivered"),
        ]
        assert order.shipped_at is not None
        assert order.delivered_at is not None
        assert order.next_status is None

    def test_final_status_refused_without_change(self, service, order):
        service.update_order(order.id, {"delivery_status": "delivered"})
        history_before = OrderStatusHistory.objects.filter(order=order).count()

        with pytest.raises(FinalStatusReached, match="already at final status"):
            service.progress_order(order.id)

        order.refresh_from_db()
        assert order.delivery_status == DeliveryStatus.DELIVERED
        assert OrderStatusHistory.objects.filter(order=order).count() == history_before

    def test_missing_order_raises(self, service):
        with pytest.raises(OrderNotFound):
            service.progress_order(424242)


# ===========================================================================
# book_delivery
# ===========================================================================


class TestBookDelivery:
    def test_forces_delivery_booked_from_new(self, service, order):
        booked = service.book_delivery(
            order.id, BookDeliveryDTO(courier="DHL", tracking_number="X123")
        )

        assert booked.delivery_status == DeliveryStatus.DELIVERY_BOOKED
        assert booked.courier == "DHL"
        assert booked.tracking_number == "X123"

    def test_rewinds_in_transit_order(self, service, order):
        service.update_order(order.id, {"delivery_status": "in_transit"})
        booked = service.book_delivery(
            order.id, BookDeliveryDTO(courier="DPD", tracking_number="15501")
        )
        assert booked.delivery_status == DeliveryStatus.DELIVERY_BOOKED

    def test_appends_to_existing_notes(self, service, order):
        booked = service.book_delivery(
            order.id,
            BookDeliveryDTO(courier="DHL", tracking_number="X123", notes="AM slot"),
        )
        assert booked.notes == "Phone order\nDelivery booked: AM slot"

    def test_missing_expected_date_clears_previous_one(self, service, order):
        service.update_order(order.id, {"expected_delivery_date": "2025-03-14"})
        booked = service.book_delivery(
            order.id, BookDeliveryDTO(courier="DHL", tracking_number="X123")
        )
        assert booked.expected_delivery_date is None

    def test_incomplete_booking_never_touches_store(self, stub_service):
        service, order_repo = stub_service

        with pytest.raises(MissingDeliveryDetails):
            service.book_delivery(1, BookDeliveryDTO(courier="DHL"))
        assert not order_repo.method_calls


# ===========================================================================
# force_status
# ===========================================================================


class TestForceStatus:
    def test_moves_backwards(self, service, order):
        service.update_order(order.id, {"delivery_status": "delivered"})
        forced, previous, new = service.force_status(order.id, "confirmed", "Returned")

        assert (previous, new) == ("delivered", "confirmed")
        assert forced.delivery_status == DeliveryStatus.CONFIRMED
        assert OrderStatusHistory.objects.filter(order=order).last().notes == "Returned"

    def test_unknown_status_rejected(self, stub_service):
        service, order_repo = stub_service
        with pytest.raises(InvalidOrderStatus):
            service.force_status(1, "lost")
        assert not order_repo.method_calls


# ===========================================================================
# duplicate_order / delete_order
# ===========================================================================


class TestDuplicateOrder:
    def test_copies_order_and_lines(self, service, order, march_2025):
        service.progress_order(order.id)
        copy = service.duplicate_order(order.id)

        assert copy.id != order.id
        assert copy.order_number != order.order_number
        assert copy.delivery_status == DeliveryStatus.NEW
        assert copy.notes == f"Duplicated from {order.order_number}"
        assert copy.total_amount == order.total_amount
        assert copy.item_count == order.item_count
        assert [line.product_name for line in copy.lines.all()] == [
            "Grip",
            "Regripping labour",
        ]

    def test_history_notes_source_not_order_notes(self, service, order):
        copy = service.duplicate_order(order.id)

        history = OrderStatusHistory.objects.get(order=copy)
        assert history.notes == f"Duplicated from {order.order_number}"

    def test_missing_source_raises(self, service):
        with pytest.raises(OrderNotFound):
            service.duplicate_order(424242)


class TestDeleteOrder:
    def test_removes_order_lines_and_history(self, service, order):
        service.delete_order(order.id)

        assert not Order.objects.filter(id=order.id).exists()
        assert not OrderLine.objects.filter(order_id=order.id).exists()
        assert not OrderStatusHistory.objects.filter(order_id=order.id).exists()

    def test_missing_order_raises(self, service):
        with pytest.raises(OrderNotFound):
            service.delete_order(424242)


# ===========================================================================
# Checkout totals / metrics
# ===========================================================================


class TestCheckoutTotals:
    def _dto(self, price, quantity=1, totals=None):
        return CheckoutDTO(
            customer=CheckoutCustomerDTO(name="Sam Green", email="sam@example.com"),
            cart=[CartItemDTO(name="Grip", price=Decimal(price), quantity=quantity)],
            totals=totals,
        )

    def test_small_basket_pays_flat_shipping(self):
        totals = OrderService.checkout_totals(self._dto("8.99", quantity=3))

        assert totals == {
            "subtotal": Decimal("26.97"),
            "tax": Decimal("5.39"),
            "shipping": Decimal("5.00"),
            "total": Decimal("37.36"),
        }

    def test_free_shipping_from_threshold(self):
        totals = OrderService.checkout_totals(self._dto("50.00"))

        assert totals["shipping"] == Decimal("0.00")
        assert totals["total"] == Decimal("60.00")

    def test_supplied_totals_win(self):
        supplied = CheckoutTotalsDTO(
            subtotal=Decimal("10.00"),
            tax=Decimal("0.00"),
            shipping=Decimal("3.50"),
            total=Decimal("13.50"),
        )
        totals = OrderService.checkout_totals(self._dto("8.99", totals=supplied))

        assert totals["tax"] == Decimal("0.00")
        assert totals["total"] == Decimal("13.50")


class TestMetrics:
    def test_counts_and_revenue(self, service, order_dto):
        first = service.create_order(order_dto)
        second = service.create_order(order_dto)
        service.create_order(order_dto)
        service.progress_order(first.id)
        service.update_order(second.id, {"delivery_status": "delivered"})

        metrics = service.metrics()

        assert metrics["total_orders"] == 3
        assert metrics["total_revenue"] == Decimal("150.00")
        assert metrics["avg_order_value"] == Decimal("50.00")
        assert metrics["new_orders"] == 1
        assert metrics["pending_orders"] == 2
        assert metrics["delivered_orders"] == 1
        assert metrics["this_month_orders"] == 3

    def test_empty_store(self, service):
        metrics = service.metrics()

        assert metrics["total_orders"] == 0
        assert metrics["total_revenue"] == Decimal("0.00")
        assert metrics["avg_order_value"] == Decimal("0.00")

    def test_status_counts_zero_filled(self, service, order):
        assert service.status_counts() == {
            "new": 1,
            "confirmed": 0,
            "delivery_booked": 0,
            "in_transit": 0,
            "delivered": 0,
        }
