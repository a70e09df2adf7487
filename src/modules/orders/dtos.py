"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``OrderLineDTO``: a single order line as supplied by the caller.
- ``CreateOrderDTO``: input for admin order creation.
- ``BookDeliveryDTO``: courier booking details.
- ``CartItemDTO`` / ``CheckoutTotalsDTO`` / ``CheckoutDTO``: storefront checkout.
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from modules.customers.dtos import CheckoutCustomerDTO
from modules.orders.constants import CHECKOUT_DEFAULT_PAYMENT_METHOD

TWO_PLACES = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------------
# Admin input DTOs
# ---------------------------------------------------------------------------


class OrderLineDTO(BaseModel):
    """Immutable DTO for one order line.

    ``product_id`` is optional so free-form lines (e.g. regripping
    labour) can be recorded alongside catalogue products.
    """

    model_config = ConfigDict(frozen=True)

    product_id: Optional[int] = None
    sku: str = ""
    product_name: str
    colour_name: str = ""
    quantity: int = 1
    unit_price: Decimal = Decimal("0.00")
    subtotal: Decimal = Decimal("0.00")
    image_url: str = ""

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class CreateOrderDTO(BaseModel):
    """Immutable DTO for admin order creation.

    Monetary fields are taken as given: the admin console computes them.
    """

    model_config = ConfigDict(frozen=True)

    customer_id: Optional[int] = None
    customer_email: str = ""
    customer_name: str = ""
    customer_phone: str = ""
    shipping_address: Optional[Any] = None
    billing_address: Optional[Any] = None
    subtotal: Decimal = Decimal("0.00")
    tax_amount: Decimal = Decimal("0.00")
    shipping_amount: Decimal = Decimal("0.00")
    total_amount: Decimal = Decimal("0.00")
    payment_method: str = ""
    payment_status: Optional[str] = None
    notes: str = ""
    line_items: List[OrderLineDTO] = []

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.line_items)


class BookDeliveryDTO(BaseModel):
    """Immutable DTO for the book-delivery transition."""

    model_config = ConfigDict(frozen=True)

    courier: str = ""
    tracking_number: str = ""
    expected_delivery_date: Optional[date] = None
    notes: str = ""

    @field_validator("courier", "tracking_number", "notes")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return (v or "").strip()

    @property
    def is_complete(self) -> bool:
        return bool(self.courier and self.tracking_number)

    @property
    def note(self) -> str:
        return f"Delivery booked: {self.notes}" if self.notes else "Delivery booked"


# ---------------------------------------------------------------------------
# Storefront checkout DTOs
# ---------------------------------------------------------------------------


class CartItemDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    name: str
    sku: str = ""
    price: Decimal
    quantity: int = 1
    media: str = ""
    colour_name: str = ""

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v

    @property
    def line_total(self) -> Decimal:
        return quantize_money(self.price * self.quantity)


class CheckoutTotalsDTO(BaseModel):
    """Totals the storefront already computed; any of them may be missing."""

    model_config = ConfigDict(frozen=True)

    subtotal: Optional[Decimal] = None
    tax: Optional[Decimal] = None
    shipping: Optional[Decimal] = None
    total: Optional[Decimal] = None


class CheckoutDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    customer: CheckoutCustomerDTO
    cart: List[CartItemDTO]
    totals: Optional[CheckoutTotalsDTO] = None
    payment_method: str = CHECKOUT_DEFAULT_PAYMENT_METHOD

    @field_validator("cart")
    @classmethod
    def cart_must_not_be_empty(cls, v: List[CartItemDTO]) -> List[CartItemDTO]:
        if not v:
            raise ValueError("Cart must contain at least one item.")
        return v

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.cart)

    @property
    def address_snapshot(self) -> Dict[str, Any]:
        address = self.customer.address
        return address.model_dump() if address else {}
