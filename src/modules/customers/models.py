"""Customer model.

Orders keep a nullable link to a customer plus snapshot fields, so the
customer row is only read-joined for display (name, type, contact and
billing details) and upserted by storefront checkout.
"""

from __future__ import annotations

from django.db import models

from modules.core.models import BaseModel

DEFAULT_COUNTRY = "United Kingdom"


class CustomerType(models.TextChoices):
    INDIVIDUAL = "individual", "Individual"
    BUSINESS = "business", "Business"


class Customer(BaseModel):
    """Customer account (golfer or trade club).

    ``display_name`` is what the admin console shows; when left blank it
    is built from ``first_name`` and ``last_name`` on save.
    """

    customer_type = models.CharField(
        max_length=20,
        choices=CustomerType.choices,
        default=CustomerType.INDIVIDUAL,
    )
    first_name = models.CharField(max_length=100, blank=True, default="")
    last_name = models.CharField(max_length=100, blank=True, default="")
    display_name = models.CharField(max_length=255)
    email = models.EmailField(max_length=255, blank=True, default="", db_index=True)
    phone = models.CharField(max_length=50, blank=True, default="")

    billing_address_1 = models.CharField(max_length=255, blank=True, default="")
    billing_address_2 = models.CharField(max_length=255, blank=True, default="")
    billing_city = models.CharField(max_length=100, blank=True, default="")
    billing_county = models.CharField(max_length=100, blank=True, default="")
    billing_postcode = models.CharField(max_length=20, blank=True, default="")
    billing_country = models.CharField(max_length=100, default=DEFAULT_COUNTRY)

    shipping_address_1 = models.CharField(max_length=255, blank=True, default="")
    shipping_address_2 = models.CharField(max_length=255, blank=True, default="")
    shipping_city = models.CharField(max_length=100, blank=True, default="")
    shipping_county = models.CharField(max_length=100, blank=True, default="")
    shipping_postcode = models.CharField(max_length=20, blank=True, default="")
    shipping_country = models.CharField(max_length=100, default=DEFAULT_COUNTRY)

    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "customers"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["-created_at"], name="customers_created_idx"),
        ]

    @staticmethod
    def split_name(name: str) -> tuple[str, str]:
        """Split a full name into ``(first_name, last_name)``."""
        parts = (name or "").split()
        if not parts:
            return "", ""
        return parts[0], " ".join(parts[1:])

    def save(self, *args, **kwargs) -> None:
        if not self.display_name:
            full_name = f"{self.first_name} {self.last_name}".strip()
            self.display_name = full_name or self.email
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.display_name} ({self.customer_type})"
