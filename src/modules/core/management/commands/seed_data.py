from __future__ import annotations

import random
from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.utils import timezone

from modules.customers.models import Customer, CustomerType
from modules.customers.repositories.django_repository import CustomerDjangoRepository
from modules.orders.constants import ORDER_STATUSES
from modules.orders.dtos import BookDeliveryDTO, CreateOrderDTO, OrderLineDTO, quantize_money
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService

VAT_RATE = Decimal("0.20")


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument("--orders", type=int, default=40)

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        customers = self._seed_customers()
        orders_created = self._seed_orders(customers, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"customers={len(customers)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_customers(self) -> list[Customer]:
        self.stdout.write("Creating customers...")
        customers: list[Customer] = []
        seed_customers = [
            ("James", "Whitfield", CustomerType.INDIVIDUAL, "james@example.com", "Leeds", "LS1 4AP"),
            ("Sarah", "Okafor", CustomerType.INDIVIDUAL, "sarah@example.com", "Bristol", "BS1 5TR"),
            ("", "", CustomerType.BUSINESS, "proshop@example.com", "St Andrews", "KY16 9JD"),
            ("Tom", "Hughes", CustomerType.INDIVIDUAL, "tom@example.com", "Cardiff", "CF10 1EP"),
            ("Priya", "Shah", CustomerType.INDIVIDUAL, "priya@example.com", "Leicester", "LE1 6ZG"),
            ("", "", CustomerType.BUSINESS, "fairways@example.com", "Sunningdale", "SL5 9RR"),
        ]
        business_names = {
            "proshop@example.com": "Old Course Pro Shop",
            "fairways@example.com": "Fairways Golf Club",
        }
        for first_name, last_name, customer_type, email, city, postcode in seed_customers:
            customer, _ = Customer.objects.get_or_create(
                email=email,
                defaults={
                    "customer_type": customer_type,
                    "first_name": first_name,
                    "last_name": last_name,
                    "display_name": business_names.get(email, ""),
                    "billing_address_1": f"{random.randint(1, 120)} High Street",
                    "billing_city": city,
                    "billing_postcode": postcode,
                    "shipping_address_1": f"{random.randint(1, 120)} High Street",
                    "shipping_city": city,
                    "shipping_postcode": postcode,
                },
            )
            customers.append(customer)
        self.stdout.write(self.style.SUCCESS("Creating customers... Done!"))
        return customers

    def _seed_orders(self, customers: list[Customer], count: int) -> int:
        self.stdout.write("Creating orders...")
        if not customers:
            self.stdout.write(self.style.WARNING("Skipping orders (no customers)."))
            return 0

        catalogue = [
            (101, "GRP-TOUR-VEL", "Golf Pride Tour Velvet Grip", "Black", Decimal("8.99")),
            (102, "GRP-MCC-PLUS4", "Golf Pride MCC Plus4 Grip", "White", Decimal("12.49")),
            (103, "GRP-SS-PUTT", "SuperStroke Traxion Putter Grip", "Red", Decimal("24.99")),
            (104, "TAPE-2WAY", "Double-Sided Grip Tape (15 strips)", "", Decimal("4.50")),
            (105, "SOLV-120", "Grip Solvent 120ml", "", Decimal("5.99")),
            (None, "SERV-REGRIP", "Regripping Service (per club)", "", Decimal("3.00")),
        ]
        service = OrderService(
            order_repository=OrderDjangoRepository(),
            customer_repository=CustomerDjangoRepository(),
        )

        orders_created = 0
        for _ in range(count):
            customer = random.choice(customers)
            lines = []
            for product_id, sku, name, colour, price in random.sample(
                catalogue, k=random.randint(1, 3)
            ):
                quantity = random.randint(1, 13)
                lines.append(
                    OrderLineDTO(
                        product_id=product_id,
                        sku=sku,
                        product_name=name,
                        colour_name=colour,
                        quantity=quantity,
                        unit_price=price,
                        subtotal=quantize_money(price * quantity),
                    )
                )
            subtotal = sum((line.subtotal for line in lines), Decimal("0.00"))
            tax = quantize_money(subtotal * VAT_RATE)
            shipping = Decimal("0.00") if subtotal >= 50 else Decimal("5.00")

            order = service.create_order(
                CreateOrderDTO(
                    customer_id=customer.id,
                    shipping_address={
                        "line1": customer.shipping_address_1,
                        "city": customer.shipping_city,
                        "postcode": customer.shipping_postcode,
                        "country": customer.shipping_country,
                    },
                    subtotal=subtotal,
                    tax_amount=tax,
                    shipping_amount=shipping,
                    total_amount=subtotal + tax + shipping,
                    payment_method=random.choice(["card", "paypal", "bank_transfer"]),
                    line_items=lines,
                )
            )

            target = random.choice(ORDER_STATUSES)
            while order.delivery_status != target:
                if order.next_status == "delivery_booked":
                    order = service.book_delivery(
                        order.id,
                        BookDeliveryDTO(
                            courier=random.choice(["Royal Mail", "DPD", "DHL"]),
                            tracking_number=f"TRK{random.randint(100000, 999999)}",
                        ),
                    )
                else:
                    order, _, _ = service.progress_order(order.id)

            created_at = timezone.now() - timedelta(days=random.randint(0, 60))
            Order.objects.filter(id=order.id).update(created_at=created_at)
            orders_created += 1

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return orders_created
