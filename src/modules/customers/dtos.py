"""Customer DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
DTOs are immutable (``frozen=True``).

- ``CheckoutAddressDTO``: delivery address captured at checkout.
- ``CheckoutCustomerDTO``: shopper details captured at checkout.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from modules.customers.models import DEFAULT_COUNTRY


class CheckoutAddressDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    line1: str = ""
    line2: str = ""
    city: str = ""
    postcode: str = ""
    country: str = DEFAULT_COUNTRY


class CheckoutCustomerDTO(BaseModel):
    """Shopper details as typed into the storefront checkout form."""

    model_config = ConfigDict(frozen=True)

    name: str
    email: str
    phone: str = ""
    address: Optional[CheckoutAddressDTO] = None

    @field_validator("email")
    @classmethod
    def normalise_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("Email is required.")
        return v
