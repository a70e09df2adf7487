"""Customer service layer (Use Cases).

Storefront checkout is the only writer of customers in this service:
a returning shopper (matched by email) has their contact and shipping
details refreshed, a new shopper gets an ``individual`` account.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from django.db import transaction

from modules.customers.models import DEFAULT_COUNTRY, Customer, CustomerType

if TYPE_CHECKING:
    from modules.customers.dtos import CheckoutCustomerDTO
    from modules.customers.repositories.interfaces import ICustomerRepository

logger = structlog.get_logger(__name__)


class CustomerService:
    """Application service for Customer use-cases.

    Receives an ``ICustomerRepository`` via constructor injection (DIP).
    """

    def __init__(self, repository: ICustomerRepository) -> None:
        self._repo = repository

    @transaction.atomic
    def find_or_create_for_checkout(self, dto: CheckoutCustomerDTO) -> Customer:
        """Return the customer for a checkout, creating or refreshing it."""
        first_name, last_name = Customer.split_name(dto.name)
        address = dto.address
        shipping = {
            "shipping_address_1": address.line1 if address else "",
            "shipping_address_2": address.line2 if address else "",
            "shipping_city": address.city if address else "",
            "shipping_postcode": address.postcode if address else "",
            "shipping_country": (address.country if address else "") or DEFAULT_COUNTRY,
        }

        customer = self._repo.get_by_email(dto.email)
        if customer is None:
            customer = Customer(
                customer_type=CustomerType.INDIVIDUAL,
                first_name=first_name,
                last_name=last_name,
                email=dto.email,
                phone=dto.phone,
                **shipping,
            )
            customer = self._repo.save(customer)
            logger.info("customer.created_from_checkout", customer_id=customer.id)
            return customer

        customer.first_name = first_name
        customer.last_name = last_name
        customer.phone = dto.phone
        for field, value in shipping.items():
            setattr(customer, field, value)
        customer = self._repo.save(customer)
        logger.info("customer.refreshed_from_checkout", customer_id=customer.id)
        return customer
