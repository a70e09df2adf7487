"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions are translated into HTTP status codes in
``handle_exception``; anything else falls through to the project's
exception handler, so the views never swallow generic exceptions.
"""

from __future__ import annotations

from typing import Any, Dict

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet

from modules.core.exceptions import error_response
from modules.core.pagination import StandardLimitOffsetPagination
from modules.customers.dtos import CheckoutAddressDTO, CheckoutCustomerDTO
from modules.customers.repositories.django_repository import CustomerDjangoRepository
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
    InvalidCheckout,
    InvalidOrderStatus,
    MissingDeliveryDetails,
    NothingToUpdate,
    OrderNotFound,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.permissions import HasOrderOverrideToken
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    BookDeliverySerializer,
    CheckoutOrderSerializer,
    CheckoutSerializer,
    CreateOrderSerializer,
    ForceStatusSerializer,
    OrderDetailSerializer,
    OrderLineSerializer,
    OrderListSerializer,
    UpdateOrderSerializer,
)
from modules.orders.services import OrderService

MISSING_CHECKOUT_DATA = "Missing required checkout data"

# Domain exception -> (HTTP status, fixed message or None to use str(exc))
DOMAIN_ERRORS = (
    (OrderNotFound, status.HTTP_404_NOT_FOUND, "Order not found"),
    (CustomerNotFound, status.HTTP_404_NOT_FOUND, "Customer not found"),
    (NothingToUpdate, status.HTTP_400_BAD_REQUEST, None),
    (InvalidOrderStatus, status.HTTP_400_BAD_REQUEST, None),
    (FinalStatusReached, status.HTTP_400_BAD_REQUEST, None),
    (MissingDeliveryDetails, status.HTTP_400_BAD_REQUEST, None),
    (InvalidCheckout, status.HTTP_400_BAD_REQUEST, MISSING_CHECKOUT_DATA),
)


def _order_service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        customer_repository=CustomerDjangoRepository(),
    )


def _or_blank(value: Any) -> str:
    return value if value is not None else ""


class DomainErrorMixin:
    """Translate service-layer exceptions into the JSON error envelope."""

    def handle_exception(self, exc: Exception) -> Response:
        for exc_class, status_code, message in DOMAIN_ERRORS:
            if isinstance(exc, exc_class):
                return error_response(message or str(exc), status_code)
        return super().handle_exception(exc)


class OrderAdminViewSet(DomainErrorMixin, GenericViewSet):
    """ViewSet for the admin console's order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.all()
    filterset_class = OrderFilter
    pagination_class = StandardLimitOffsetPagination

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = _order_service()

    def get_queryset(self):
        return self._service.list_orders()

    def _order_payload(self, order: Order) -> Dict[str, Any]:
        return OrderDetailSerializer(order).data

    # ------------------------------------------------------------------
    # List / Metrics / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders-admin/

        ``search`` and ``status`` are handled by ``OrderFilter``;
        ``limit``/``offset`` by ``StandardLimitOffsetPagination``.
        ``statusCounts`` is a global tally, not narrowed by the filters.
        """
        queryset = self.filter_queryset(self.get_queryset())

        paginator = self.paginator
        page = paginator.paginate_queryset(queryset, request, view=self)
        orders = OrderListSerializer(page, many=True).data
        return Response(
            {
                "success": True,
                "orders": orders,
                "total": paginator.count,
                "statusCounts": self._service.status_counts(),
                "hasMore": paginator.has_more(len(orders)),
            }
        )

    @action(detail=False, methods=["get"])
    def metrics(self, request: Request) -> Response:
        """GET /api/v1/orders-admin/metrics/"""
        return Response({"success": True, "metrics": self._service.metrics()})

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders-admin/{pk}/"""
        order = self._service.get_order(pk)
        return Response(
            {
                "success": True,
                "order": self._order_payload(order),
                "lineItems": OrderLineSerializer(order.lines.all(), many=True).data,
                "nextStatus": order.next_status,
            }
        )

    # ------------------------------------------------------------------
    # Create / Update / Delete
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders-admin/"""
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = dict(serializer.validated_data)
        lines = data.pop("line_items", [])
        dto = CreateOrderDTO(
            **data,
            line_items=[OrderLineDTO(**line) for line in lines],
        )

        order = self._service.create_order(dto)
        return Response(
            {
                "success": True,
                "order": self._order_payload(order),
                "order_number": order.order_number,
            },
            status=status.HTTP_201_CREATED,
        )

    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders-admin/{pk}/

        Behaves as a patch: only the fields present in the body change.
        """
        serializer = UpdateOrderSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        order = self._service.update_order(pk, dict(serializer.validated_data))
        return Response(
            {
                "success": True,
                "order": self._order_payload(order),
                "nextStatus": order.next_status,
            }
        )

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders-admin/{pk}/"""
        return self.update(request, pk)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/orders-admin/{pk}/"""
        self._service.delete_order(pk)
        return Response({"success": True})

    # ------------------------------------------------------------------
    # Lifecycle transitions
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def progress(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders-admin/{pk}/progress/"""
        order, previous, new = self._service.progress_order(pk)
        return Response(
            {
                "success": True,
                "order": self._order_payload(order),
                "previousStatus": previous,
                "newStatus": new,
                "nextStatus": order.next_status,
            }
        )

    @action(detail=True, methods=["post"], url_path="book-delivery")
    def book_delivery(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders-admin/{pk}/book-delivery/"""
        serializer = BookDeliverySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        dto = BookDeliveryDTO(
            courier=_or_blank(data["courier"]),
            tracking_number=_or_blank(data["tracking_number"]),
            expected_delivery_date=data["expected_delivery_date"],
            notes=_or_blank(data["notes"]),
        )
        order = self._service.book_delivery(pk, dto)
        return Response(
            {
                "success": True,
                "order": self._order_payload(order),
                "nextStatus": order.next_status,
            }
        )

    @action(
        detail=True,
        methods=["post"],
        url_path="force-status",
        permission_classes=[HasOrderOverrideToken],
    )
    def force_status(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders-admin/{pk}/force-status/

        Requires the ``X-Order-Override-Token`` header.
        """
        serializer = ForceStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        order, previous, new = self._service.force_status(
            pk, data["status"], data["notes"]
        )
        return Response(
            {
                "success": True,
                "order": self._order_payload(order),
                "previousStatus": previous,
                "newStatus": new,
                "nextStatus": order.next_status,
            }
        )

    @action(detail=True, methods=["post"])
    def duplicate(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders-admin/{pk}/duplicate/"""
        order = self._service.duplicate_order(pk)
        return Response(
            {
                "success": True,
                "order": self._order_payload(order),
                "order_number": order.order_number,
            },
            status=status.HTTP_201_CREATED,
        )


class CheckoutView(DomainErrorMixin, APIView):
    """POST /api/v1/checkout/: turn a storefront cart into a paid order."""

    http_method_names = ["post", "options"]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = _order_service()

    def post(self, request: Request) -> Response:
        body = request.data if isinstance(request.data, dict) else {}
        if not body.get("customerData") or not body.get("cart"):
            raise InvalidCheckout(MISSING_CHECKOUT_DATA)

        serializer = CheckoutSerializer(data=body)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        customer = data["customer_data"]
        address = customer.get("address")
        totals = data.get("totals")
        dto = CheckoutDTO(
            customer=CheckoutCustomerDTO(
                name=customer["name"],
                email=customer["email"],
                phone=_or_blank(customer["phone"]),
                address=(
                    CheckoutAddressDTO(
                        **{key: _or_blank(value) for key, value in address.items()}
                    )
                    if address
                    else None
                ),
            ),
            cart=[
                CartItemDTO(
                    id=item["id"],
                    name=item["name"],
                    sku=_or_blank(item["sku"]),
                    price=item["price"],
                    quantity=item["quantity"],
                    media=_or_blank(item["media"]),
                    colour_name=_or_blank(item["colour_name"]),
                )
                for item in data["cart"]
            ],
            totals=CheckoutTotalsDTO(**totals) if totals else None,
            payment_method=data["payment_method"],
        )

        order, charged = self._service.checkout(dto)
        return Response(
            {
                "success": True,
                "order": CheckoutOrderSerializer(order).data,
                "items": body["cart"],
                "totals": charged,
            },
            status=status.HTTP_201_CREATED,
        )
