"""Unit tests for CustomerService (checkout upsert)."""

from __future__ import annotations

import pytest

from modules.customers.dtos import CheckoutAddressDTO, CheckoutCustomerDTO
from modules.customers.models import Customer, CustomerType
from modules.customers.repositories.django_repository import CustomerDjangoRepository
from modules.customers.repositories.interfaces import ICustomerRepository
from modules.customers.services import CustomerService

pytestmark = pytest.mark.unit


@pytest.fixture()
def service():
    return CustomerService(CustomerDjangoRepository())


@pytest.fixture()
def shopper():
    return CheckoutCustomerDTO(
        name="Sam de Green",
        email="sam@example.com",
        phone="07700 900123",
        address=CheckoutAddressDTO(line1="4 Links Road", city="Troon", postcode="KA10 6EP"),
    )


class TestFindOrCreateForCheckout:
    def test_creates_individual_customer(self, service, shopper):
        customer = service.find_or_create_for_checkout(shopper)

        assert customer.customer_type == CustomerType.INDIVIDUAL
        assert customer.first_name == "Sam"
        assert customer.last_name == "de Green"
        assert customer.display_name == "Sam de Green"
        assert customer.shipping_city == "Troon"
        assert customer.shipping_country == "United Kingdom"

    def test_refreshes_returning_customer(self, service, shopper):
        existing = Customer.objects.create(
            first_name="Old", last_name="Name", email="SAM@example.com"
        )

        customer = service.find_or_create_for_checkout(shopper)

        assert customer.id == existing.id
        assert customer.phone == "07700 900123"
        assert customer.shipping_address_1 == "4 Links Road"
        assert Customer.objects.count() == 1

    def test_blank_country_falls_back_to_default(self, service):
        dto = CheckoutCustomerDTO(
            name="Kim",
            email="kim@example.com",
            address=CheckoutAddressDTO(country=""),
        )
        assert service.find_or_create_for_checkout(dto).shipping_country == "United Kingdom"


class TestCustomerModel:
    def test_display_name_falls_back_to_email(self):
        customer = Customer.objects.create(email="nameless@example.com")
        assert customer.display_name == "nameless@example.com"

    def test_split_name(self):
        assert Customer.split_name("  Rory  ") == ("Rory", "")
        assert Customer.split_name("") == ("", "")


class DictCustomerRepository(ICustomerRepository):
    """Lookup/save-only repository: customers are never removed here."""

    def __init__(self):
        self.rows = {}

    def get_by_id(self, id):
        return self.rows.get(id)

    def save(self, entity):
        entity.id = entity.id or len(self.rows) + 1
        self.rows[entity.id] = entity
        return entity

    def get_by_email(self, email):
        return next((c for c in self.rows.values() if c.email == email), None)


class TestCustomerRepositoryContract:
    def test_contract_needs_no_delete(self):
        repo = DictCustomerRepository()
        assert not hasattr(CustomerDjangoRepository, "delete")
        assert repo.get_by_id(1) is None

    def test_service_runs_over_lookup_and_save_only(self, shopper):
        service = CustomerService(DictCustomerRepository())

        first = service.find_or_create_for_checkout(shopper)
        second = service.find_or_create_for_checkout(shopper)

        assert first is second
        assert first.first_name == "Sam"
        assert first.shipping_city == "Troon"
