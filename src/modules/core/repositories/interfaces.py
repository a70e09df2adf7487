"""Base repository contract shared by the customer and order modules.

Services receive repositories through their constructors and never
query the ORM themselves, so tests can swap in doubles.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Look-up and persistence of one aggregate by integer id."""

    @abstractmethod
    def get_by_id(self, id: int) -> Optional[T]:
        """Return the entity, or ``None`` when no row has that id."""

    @abstractmethod
    def save(self, entity: T) -> T: ...
