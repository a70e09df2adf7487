from datetime import datetime, timezone as dt_timezone

import pytest
from freezegun import freeze_time
from rest_framework.test import APIClient

from modules.customers.models import Customer, CustomerType
from modules.customers.repositories.django_repository import CustomerDjangoRepository
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def march_2025():
    """Freeze the clock at 10 March 2025, 12:00 UTC."""
    moment = datetime(2025, 3, 10, 12, 0, tzinfo=dt_timezone.utc)
    with freeze_time(moment):
        yield moment


@pytest.fixture()
def customer():
    return Customer.objects.create(
        customer_type=CustomerType.BUSINESS,
        display_name="Fairways Golf Club",
        email="orders@fairways.example.com",
        phone="01344 620000",
        billing_address_1="1 Clubhouse Drive",
        billing_city="Sunningdale",
        billing_postcode="SL5 9RR",
    )


@pytest.fixture()
def order_service():
    return OrderService(
        order_repository=OrderDjangoRepository(),
        customer_repository=CustomerDjangoRepository(),
    )


@pytest.fixture()
def order_payload():
    return {
        "customer_email": "a@b.com",
        "customer_name": "Alex Birdie",
        "subtotal": "41.67",
        "tax_amount": "8.33",
        "shipping_amount": "0.00",
        "total_amount": "50.00",
        "payment_method": "card",
        "line_items": [
            {
                "product_id": 101,
                "sku": "GRP-TOUR-VEL",
                "product_name": "Grip",
                "quantity": 2,
                "unit_price": "20.83",
                "subtotal": "41.67",
            }
        ],
    }


@pytest.fixture()
def create_order(api_client, order_payload):
    """Create an order through the API and return its JSON body."""

    def _create(**overrides):
        payload = {**order_payload, **overrides}
        response = api_client.post("/api/v1/orders-admin/", payload, format="json")
        assert response.status_code == 201, response.json()
        return response.json()["order"]

    return _create
