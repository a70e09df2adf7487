"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.
"""

from __future__ import annotations


class OrderNotFound(Exception):
    """The requested order does not exist."""


class InvalidOrderStatus(Exception):
    """A status outside the progression table was supplied."""


class FinalStatusReached(Exception):
    """``progress`` was called on an order that is already delivered."""


class NothingToUpdate(Exception):
    """A patch carried no updatable fields."""


class MissingDeliveryDetails(Exception):
    """Booking a delivery needs both a courier and a tracking number."""


class CustomerNotFound(Exception):
    """The customer referenced by the order does not exist."""


class InvalidCheckout(Exception):
    """The storefront checkout payload is missing customer data or items."""
