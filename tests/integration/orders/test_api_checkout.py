"""Integration tests for POST /api/v1/checkout/."""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.customers.models import Customer
from modules.orders.models import Order, OrderLine

pytestmark = pytest.mark.integration

URL = "/api/v1/checkout/"


@pytest.fixture()
def checkout_payload():
    return {
        "customerData": {
            "name": "Sam Green",
            "email": "sam@example.com",
            "phone": "07700 900123",
            "address": {
                "line1": "4 Links Road",
                "line2": None,
                "city": "Troon",
                "postcode": "KA10 6EP",
                "country": "United Kingdom",
            },
        },
        "cart": [
            {
                "id": 101,
                "name": "Golf Pride Tour Velvet Grip",
                "sku": "GRP-TOUR-VEL",
                "price": "8.99",
                "quantity": 3,
                "media": "https://cdn.example.com/grip.webp",
                "colour_name": "Black",
            }
        ],
    }


class TestCheckout:
    def test_creates_paid_order(self, api_client, checkout_payload, march_2025):
        response = api_client.post(URL, checkout_payload, format="json")

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["order"]["order_number"] == "AST-202503-0001"
        assert body["order"]["item_count"] == 3

        order = Order.objects.get(id=body["order"]["id"])
        assert order.payment_status == "paid"
        assert order.payment_method == "card"
        assert order.delivery_status == "new"
        assert order.shipping_address["city"] == "Troon"

    def test_derives_vat_and_shipping(self, api_client, checkout_payload):
        totals = api_client.post(URL, checkout_payload, format="json").json()["totals"]

        assert Decimal(str(totals["subtotal"])) == Decimal("26.97")
        assert Decimal(str(totals["tax"])) == Decimal("5.39")
        assert Decimal(str(totals["shipping"])) == Decimal("5.00")
        assert Decimal(str(totals["total"])) == Decimal("37.36")

    def test_free_shipping_over_threshold(self, api_client, checkout_payload):
        checkout_payload["cart"][0]["quantity"] = 6
        totals = api_client.post(URL, checkout_payload, format="json").json()["totals"]
        assert Decimal(str(totals["shipping"])) == Decimal("0")

    def test_snapshots_cart_lines(self, api_client, checkout_payload):
        order_id = api_client.post(URL, checkout_payload, format="json").json()["order"]["id"]

        line = OrderLine.objects.get(order_id=order_id)
        assert line.product_id == 101
        assert line.sku == "GRP-TOUR-VEL"
        assert line.colour_name == "Black"
        assert line.image_url == "https://cdn.example.com/grip.webp"
        assert line.subtotal == Decimal("26.97")

    def test_creates_then_reuses_customer(self, api_client, checkout_payload):
        first = api_client.post(URL, checkout_payload, format="json").json()
        checkout_payload["customerData"]["phone"] = "07700 900999"
        second = api_client.post(URL, checkout_payload, format="json").json()

        assert first["order"]["customer_id"] == second["order"]["customer_id"]
        customer = Customer.objects.get(email="sam@example.com")
        assert customer.phone == "07700 900999"
        assert customer.customer_type == "individual"

    @pytest.mark.parametrize("missing", ["customerData", "cart"])
    def test_missing_data_is_400(self, api_client, checkout_payload, missing):
        del checkout_payload[missing]
        response = api_client.post(URL, checkout_payload, format="json")

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Missing required checkout data",
        }

    def test_empty_cart_is_400(self, api_client, checkout_payload):
        checkout_payload["cart"] = []
        response = api_client.post(URL, checkout_payload, format="json")
        assert response.json()["error"] == "Missing required checkout data"
        assert not Order.objects.exists()

    def test_get_not_allowed(self, api_client):
        assert api_client.get(URL).status_code == 405

    def test_checkout_order_visible_to_admin(self, api_client, checkout_payload):
        api_client.post(URL, checkout_payload, format="json")
        body = api_client.get("/api/v1/orders-admin/", {"search": "sam@"}).json()
        assert body["total"] == 1

    def test_accepts_storefront_place_order_body(self, api_client, march_2025):
        body = {
            "customerData": {"name": "Jo Fairway", "email": "jo@example.com"},
            "cart": [{"id": 7, "name": "Grip Solvent 120ml", "price": 5.99, "quantity": 2}],
            "totals": None,
            "paymentMethod": "card",
        }
        response = api_client.post(URL, body, format="json")

        assert response.status_code == 201
        data = response.json()
        assert data["order"]["order_number"] == "AST-202503-0001"
        assert data["items"][0]["name"] == "Grip Solvent 120ml"
        assert Decimal(str(data["totals"]["subtotal"])) == Decimal("11.98")
        assert Order.objects.get(id=data["order"]["id"]).payment_method == "card"

    def test_payment_method_from_storefront_key(self, api_client, checkout_payload):
        checkout_payload["paymentMethod"] = "paypal"
        order_id = api_client.post(URL, checkout_payload, format="json").json()["order"]["id"]
        assert Order.objects.get(id=order_id).payment_method == "paypal"
