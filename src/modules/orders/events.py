"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when an order is created (admin console or checkout)."""

    order_number: str = ""
    source: str = "admin"


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised when an order's delivery status changes."""

    old_status: Optional[str] = None
    new_status: str = ""


@dataclass(frozen=True)
class DeliveryBooked(DomainEvent):
    """Raised when a courier booking is recorded against an order."""

    courier: str = ""
    tracking_number: str = ""


@dataclass(frozen=True)
class OrderDuplicated(DomainEvent):
    """Raised when an order is cloned; ``aggregate_id`` is the new order."""

    source_order_id: int = 0
    order_number: str = ""


@dataclass(frozen=True)
class OrderDeleted(DomainEvent):
    """Raised when an order and its lines are removed."""
