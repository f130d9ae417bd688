from __future__ import annotations

import random
from decimal import Decimal

from django.apps import apps
from django.core.management.base import BaseCommand

from modules.core.authentication import Identity
from modules.core.roles import Role
from modules.inventory.exceptions import InsufficientStock
from modules.inventory.ledger import InventoryLedger
from modules.orders.constants import OrderStatus
from modules.orders.dtos import OrderLineDTO, PlaceOrderRequest
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.dtos import CreateProductDTO
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.services import ProductService

ADMIN = Identity("a0000000000000000000000a", Role.ADMIN)
SUPERADMIN = Identity("f0000000000000000000000f", Role.SUPERADMIN)
CUSTOMERS = [Identity(f"c{i:022d}c", Role.USER) for i in range(1, 6)]


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument("--orders", type=int, default=30)

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        product_repo = ProductDjangoRepository()
        ledger = InventoryLedger(product_repo)
        self._products = ProductService(repository=product_repo, ledger=ledger)
        self._orders = OrderService(
            order_repository=OrderDjangoRepository(),
            ledger=ledger,
            publisher=apps.get_app_config("notifications").fanout,
        )

        products = self._seed_products()
        orders_created = self._seed_orders(products, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        products: list[Product] = []
        catalog = [
            ('Monitor 27"', "Electronics", Decimal("1299.90")),
            ("Mechanical Keyboard", "Electronics", Decimal("399.90")),
            ("Gaming Mouse", "Electronics", Decimal("249.90")),
            ('Notebook 14"', "Electronics", Decimal("3999.00")),
            ("Headset", "Electronics", Decimal("299.90")),
            ("Office Desk", "Furniture", Decimal("899.00")),
            ("Ergonomic Chair", "Furniture", Decimal("1499.00")),
            ("Bookshelf", "Furniture", Decimal("699.00")),
            ("A4 Paper", "Office", Decimal("29.90")),
            ("Blue Pen", "Office", Decimal("4.90")),
            ("Notebook Stand", "Office", Decimal("149.90")),
            ("LED Lamp", "Office", Decimal("59.90")),
        ]
        for name, category, price in catalog:
            existing = Product.objects.alive().filter(name=name).first()
            if existing:
                products.append(existing)
                continue
            dto = CreateProductDTO(
                name=name,
                description=category,
                price=price,
                stock=random.randint(10, 200),
            )
            products.append(self._products.create_product(ADMIN, dto))
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_orders(self, products: list[Product], count: int) -> int:
        self.stdout.write("Creating orders...")
        if not products:
            self.stdout.write(self.style.WARNING("Skipping orders (no products)."))
            return 0

        outcomes = ["placed", "pending", "shipped", "canceled"]
        weights = [0.35, 0.20, 0.25, 0.20]
        orders_created = 0

        for _ in range(count):
            owner = random.choice(CUSTOMERS)
            chosen = random.sample(products, k=min(random.randint(1, 4), len(products)))
            request = PlaceOrderRequest(
                items=[
                    OrderLineDTO(product_id=product.id, quantity=random.randint(1, 3))
                    for product in chosen
                ]
            )
            try:
                order = self._orders.place_order(owner, request)
            except InsufficientStock as exc:
                self.stdout.write(self.style.WARNING(f"Skipping order: {exc}"))
                continue
            orders_created += 1

            outcome = random.choices(outcomes, weights=weights, k=1)[0]
            if outcome == "canceled":
                self._orders.cancel_order(owner, order.id)
            elif outcome == "pending":
                self._orders.change_status(SUPERADMIN, order.id, OrderStatus.PENDING)
            elif outcome == "shipped":
                self._orders.change_status(SUPERADMIN, order.id, OrderStatus.SHIPPED)

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return orders_created
