"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py`` or plain field dictionaries.
"""

from __future__ import annotations

from typing import Any, Optional

from rest_framework import serializers

from modules.orders.constants import CHECKOUT_DEFAULT_PAYMENT_METHOD, PaymentStatus
from modules.orders.models import Order, OrderLine, OrderStatusHistory


def _money(**kwargs: Any) -> serializers.DecimalField:
    return serializers.DecimalField(max_digits=12, decimal_places=2, **kwargs)


def _text(**kwargs: Any) -> serializers.CharField:
    kwargs.setdefault("required", False)
    kwargs.setdefault("allow_blank", True)
    return serializers.CharField(**kwargs)


# ---------------------------------------------------------------------------
# Input Serializers (admin console)
# ---------------------------------------------------------------------------


class OrderLineInputSerializer(serializers.Serializer):
    """Validates a single line in an order creation request."""

    product_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    sku = _text(default="")
    product_name = serializers.CharField()
    colour_name = _text(default="")
    quantity = serializers.IntegerField(min_value=0, allow_null=True, default=1)
    unit_price = _money(default=0)
    subtotal = _money(default=0)
    image_url = _text(default="")

    def validate_quantity(self, value: Optional[int]) -> int:
        # A missing, null or zero quantity counts as one unit.
        return value or 1


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload."""

    customer_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    customer_email = _text(default="")
    customer_name = _text(default="")
    customer_phone = _text(default="")
    shipping_address = serializers.JSONField(required=False, allow_null=True, default=None)
    billing_address = serializers.JSONField(required=False, allow_null=True, default=None)
    subtotal = _money(default=0)
    tax_amount = _money(default=0)
    shipping_amount = _money(default=0)
    total_amount = _money(default=0)
    payment_method = _text(default="")
    payment_status = serializers.ChoiceField(
        choices=PaymentStatus.choices, required=False, allow_null=True, default=None
    )
    notes = _text(default="")
    line_items = OrderLineInputSerializer(many=True, required=False)


class UpdateOrderSerializer(serializers.Serializer):
    """Types the patchable fields.

    Always used with ``partial=True``: ``validated_data`` then holds only
    the keys the caller sent.  Status values are checked by the service.
    """

    customer_id = serializers.IntegerField(allow_null=True)
    customer_email = serializers.CharField(allow_blank=True)
    customer_name = serializers.CharField(allow_blank=True)
    customer_phone = serializers.CharField(allow_blank=True)
    shipping_address = serializers.JSONField(allow_null=True)
    billing_address = serializers.JSONField(allow_null=True)
    subtotal = _money()
    tax_amount = _money()
    shipping_amount = _money()
    total_amount = _money()
    payment_method = serializers.CharField(allow_blank=True)
    payment_status = serializers.ChoiceField(choices=PaymentStatus.choices)
    delivery_status = serializers.CharField()
    status = serializers.CharField()
    notes = serializers.CharField(allow_blank=True)
    tracking_number = serializers.CharField(allow_blank=True)
    courier = serializers.CharField(allow_blank=True)
    expected_delivery_date = serializers.DateField(allow_null=True)
    shipped_at = serializers.DateTimeField(allow_null=True)
    delivered_at = serializers.DateTimeField(allow_null=True)


class BookDeliverySerializer(serializers.Serializer):
    """Courier booking payload.

    Courier and tracking number are left optional here so the service can
    reject incomplete bookings with its own message.
    """

    courier = _text(default="", allow_null=True)
    tracking_number = _text(default="", allow_null=True)
    expected_delivery_date = serializers.DateField(
        required=False, allow_null=True, default=None
    )
    notes = _text(default="", allow_null=True)

    def to_internal_value(self, data):
        # Admin forms post an empty string for an unset date.
        if hasattr(data, "get") and data.get("expected_delivery_date") == "":
            data = {**data, "expected_delivery_date": None}
        return super().to_internal_value(data)


class ForceStatusSerializer(serializers.Serializer):
    status = serializers.CharField()
    notes = _text(default="")


# ---------------------------------------------------------------------------
# Input Serializers (storefront checkout)
# ---------------------------------------------------------------------------


class CheckoutAddressSerializer(serializers.Serializer):
    line1 = _text(default="", allow_null=True)
    line2 = _text(default="", allow_null=True)
    city = _text(default="", allow_null=True)
    postcode = _text(default="", allow_null=True)
    country = _text(default="", allow_null=True)


class CheckoutCustomerSerializer(serializers.Serializer):
    name = serializers.CharField()
    email = serializers.EmailField()
    phone = _text(default="", allow_null=True)
    address = CheckoutAddressSerializer(required=False, allow_null=True, default=None)


class CartItemSerializer(serializers.Serializer):
    id = serializers.IntegerField(required=False, allow_null=True, default=None)
    name = serializers.CharField()
    sku = _text(default="", allow_null=True)
    price = _money()
    quantity = serializers.IntegerField(min_value=1, default=1)
    media = _text(default="", allow_null=True)
    colour_name = _text(default="", allow_null=True)


class CheckoutTotalsSerializer(serializers.Serializer):
    subtotal = _money(required=False, allow_null=True, default=None)
    tax = _money(required=False, allow_null=True, default=None)
    shipping = _money(required=False, allow_null=True, default=None)
    total = _money(required=False, allow_null=True, default=None)


class CheckoutSerializer(serializers.Serializer):
    """Validates the storefront checkout payload.

    The storefront posts camelCase keys (``customerData``, ``paymentMethod``);
    ``validated_data`` uses the snake_case names.
    """

    customerData = CheckoutCustomerSerializer(source="customer_data")
    cart = CartItemSerializer(many=True, allow_empty=False)
    totals = CheckoutTotalsSerializer(required=False, allow_null=True, default=None)
    paymentMethod = serializers.CharField(
        source="payment_method", required=False, default=CHECKOUT_DEFAULT_PAYMENT_METHOD
    )


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderLineSerializer(serializers.ModelSerializer):
    """Read serializer for order lines."""

    class Meta:
        model = OrderLine
        fields = [
            "id",
            "order_id",
            "product_id",
            "sku",
            "product_name",
            "colour_name",
            "quantity",
            "unit_price",
            "subtotal",
            "image_url",
            "created_at",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for order status history records."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Order row as shown in the admin list, with the customer's display fields."""

    status = serializers.CharField(read_only=True)
    customer_display_name = serializers.SerializerMethodField()
    customer_type = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_id",
            "customer_email",
            "customer_name",
            "customer_phone",
            "customer_display_name",
            "customer_type",
            "shipping_address",
            "billing_address",
            "subtotal",
            "tax_amount",
            "shipping_amount",
            "total_amount",
            "delivery_status",
            "status",
            "payment_method",
            "payment_status",
            "item_count",
            "notes",
            "tracking_number",
            "courier",
            "expected_delivery_date",
            "shipped_at",
            "delivered_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_customer_display_name(self, obj: Order) -> Optional[str]:
        return obj.customer.display_name if obj.customer else None

    def get_customer_type(self, obj: Order) -> Optional[str]:
        return obj.customer.customer_type if obj.customer else None


class OrderDetailSerializer(OrderListSerializer):
    """Single order with customer contact and billing details and its history."""

    customer_contact_email = serializers.SerializerMethodField()
    customer_phone = serializers.SerializerMethodField()
    billing_address_1 = serializers.SerializerMethodField()
    billing_city = serializers.SerializerMethodField()
    billing_postcode = serializers.SerializerMethodField()
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta(OrderListSerializer.Meta):
        fields = OrderListSerializer.Meta.fields + [
            "customer_contact_email",
            "billing_address_1",
            "billing_city",
            "billing_postcode",
            "status_history",
        ]
        read_only_fields = fields

    def get_customer_contact_email(self, obj: Order) -> Optional[str]:
        return obj.customer.email if obj.customer else None

    def get_customer_phone(self, obj: Order) -> str:
        if obj.customer_phone:
            return obj.customer_phone
        return obj.customer.phone if obj.customer else ""

    def get_billing_address_1(self, obj: Order) -> Optional[str]:
        return obj.customer.billing_address_1 if obj.customer else None

    def get_billing_city(self, obj: Order) -> Optional[str]:
        return obj.customer.billing_city if obj.customer else None

    def get_billing_postcode(self, obj: Order) -> Optional[str]:
        return obj.customer.billing_postcode if obj.customer else None


class CheckoutOrderSerializer(serializers.ModelSerializer):
    """Order summary returned to the storefront after checkout."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_id",
            "total_amount",
            "item_count",
            "created_at",
        ]
        read_only_fields = fields
