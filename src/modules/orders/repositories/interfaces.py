"""Order repository interface.

Extends ``IRepository[Order]`` with the methods the Order aggregate
needs: atomic creation with lines, row-locked reads for transitions,
status history, and the aggregate queries behind the admin dashboard.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db import models

    from modules.orders.models import Order, OrderLine, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderLine children and
    OrderStatusHistory records.  Mutations must be atomic.
    """

    @abstractmethod
    def create(
        self,
        data: Dict[str, Any],
        lines: List[Dict[str, Any]],
        history_note: str = "Order created",
    ) -> Order:
        """Create an order with its lines and initial history atomically."""

    @abstractmethod
    def delete(self, id: int) -> bool:
        """Remove the order with its lines and history; ``False`` when missing."""

    @abstractmethod
    def get_for_update(self, id: int) -> Optional[Order]:
        """Retrieve an order with a row-level lock."""

    @abstractmethod
    def update(self, order: Order, fields: Dict[str, Any]) -> Order:
        """Write *fields* onto *order* and persist only those columns."""

    @abstractmethod
    def get_lines(self, order_id: int) -> List[OrderLine]:
        """Return the order's lines ordered by id."""

    @abstractmethod
    def add_history(
        self,
        order_id: int,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def queryset(self) -> models.QuerySet:
        """Base queryset for listing (customer joined, newest first)."""

    @abstractmethod
    def status_counts(self) -> Dict[str, int]:
        """Global number of orders per delivery status."""

    @abstractmethod
    def metrics(self, month_start: datetime) -> Dict[str, Any]:
        """Dashboard aggregates (counts, revenue, this-month orders)."""
