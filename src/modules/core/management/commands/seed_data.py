from __future__ import annotations

import random
from decimal import Decimal

from django.core.management.base import BaseCommand

from modules.accounts.constants import Role
from modules.accounts.models import UserProfile
from modules.orders.constants import OrderStatus, PaymentMethod
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.models import Order
from modules.orders.views import build_order_service
from modules.products.models import Product
from modules.retailers.exceptions import CreditLimitExceeded
from modules.retailers.models import Retailer, RetailerStatus

SEED_ACTOR = "seed"

# Each path is walked from pending; the last entry is where the order stops.
STATUS_PATHS = [
    [],
    [OrderStatus.CONFIRMED],
    [OrderStatus.CONFIRMED, OrderStatus.PROCESSING],
    [OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED],
    [
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
    ],
    [OrderStatus.CANCELLED],
    [OrderStatus.CONFIRMED, OrderStatus.CANCELLED],
]


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument("--orders", type=int, default=30)

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        retailers = self._seed_retailers()
        products = self._seed_products()
        profiles_created = self._seed_profiles(retailers)
        orders_created = self._seed_orders(retailers, products, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"retailers={len(retailers)}, "
                f"products={len(products)}, "
                f"profiles={profiles_created}, "
                f"orders={orders_created}"
            )
        )

    def _seed_retailers(self) -> list[Retailer]:
        self.stdout.write("Creating retailers...")
        retailers: list[Retailer] = []
        seed_retailers = [
            ("Corner Grocery", "orders@cornergrocery.test", Decimal("5000.00")),
            ("Harbour Market", "buying@harbourmarket.test", Decimal("12000.00")),
            ("Hilltop Mini Mart", "owner@hilltop.test", Decimal("2500.00")),
            ("Riverside Deli", "deli@riverside.test", Decimal("0.00")),
        ]
        for name, email, credit_limit in seed_retailers:
            retailer, _ = Retailer.objects.get_or_create(
                business_name=name,
                defaults={
                    "email": email,
                    "address": f"{random.randint(1, 400)} Market Street",
                    "status": RetailerStatus.ACTIVE,
                    "credit_limit": credit_limit,
                },
            )
            retailers.append(retailer)
        self.stdout.write(self.style.SUCCESS("Creating retailers... Done!"))
        return retailers

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        products: list[Product] = []
        catalog = [
            ("BEV-001", "Sparkling Water 24x500ml", "case", Decimal("9.90")),
            ("BEV-002", "Orange Juice 12x1l", "case", Decimal("18.50")),
            ("BEV-003", "Cola 24x330ml", "case", Decimal("14.20")),
            ("DRY-001", "Basmati Rice 10kg", "bag", Decimal("21.00")),
            ("DRY-002", "Plain Flour 16kg", "bag", Decimal("12.40")),
            ("DRY-003", "Penne Pasta 12x500g", "case", Decimal("11.80")),
            ("CAN-001", "Chopped Tomatoes 12x400g", "case", Decimal("8.60")),
            ("CAN-002", "Chickpeas 12x400g", "case", Decimal("7.90")),
            ("HOU-001", "Washing-up Liquid 6x1l", "case", Decimal("10.50")),
            ("HOU-002", "Paper Towels 12 rolls", "pack", Decimal("9.30")),
        ]
        for sku, name, unit, price in catalog:
            product, _ = Product.objects.get_or_create(
                sku=sku,
                defaults={
                    "name": name,
                    "unit": unit,
                    "price": price,
                    "stock_quantity": random.randint(100, 500),
                    "is_active": True,
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_profiles(self, retailers: list[Retailer]) -> int:
        """Profiles keyed on the identity provider's seed subjects."""
        created = 0
        seed_profiles = [
            ("seed-admin", "admin@backoffice.test", Role.ADMIN, None),
            ("seed-driver", "driver@backoffice.test", Role.DRIVER, None),
            ("seed-retailer-pending", "new@retailer.test", Role.RETAILER, None),
        ] + [
            (f"seed-retailer-{i + 1}", retailer.email, Role.RETAILER, retailer)
            for i, retailer in enumerate(retailers)
        ]
        for subject_id, email, role, retailer in seed_profiles:
            _, was_created = UserProfile.objects.get_or_create(
                subject_id=subject_id,
                defaults={"email": email, "role": role, "retailer": retailer},
            )
            created += int(was_created)
        return created

    def _seed_orders(
        self, retailers: list[Retailer], products: list[Product], count: int
    ) -> int:
        self.stdout.write("Creating orders...")
        if Order.objects.exists():
            self.stdout.write(self.style.WARNING("Skipping orders (already seeded)."))
            return 0

        service = build_order_service()
        for _ in range(count):
            retailer = random.choice(retailers)
            payment_method = (
                PaymentMethod.CREDIT
                if retailer.credit_limit > 0 and random.random() < 0.5
                else PaymentMethod.CASH
            )
            items = [
                CreateOrderItemDTO(product_id=product.id, quantity=random.randint(1, 6))
                for product in random.sample(products, k=random.randint(1, 4))
            ]
            try:
                order = service.create_order(
                    CreateOrderDTO(
                        retailer_id=retailer.id, items=items, payment_method=payment_method
                    ),
                    actor=SEED_ACTOR,
                )
            except CreditLimitExceeded:
                order = service.create_order(
                    CreateOrderDTO(
                        retailer_id=retailer.id, items=items, payment_method=PaymentMethod.CASH
                    ),
                    actor=SEED_ACTOR,
                )
            for status in random.choice(STATUS_PATHS):
                if status == OrderStatus.CANCELLED:
                    service.cancel_order(order.id, SEED_ACTOR, reason="Seeded cancellation")
                else:
                    service.update_status(order.id, status, SEED_ACTOR)

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return count
