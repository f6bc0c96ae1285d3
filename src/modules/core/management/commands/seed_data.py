from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.orders.constants import OrderStatus
from modules.orders.dtos import CreateOrderDTO, OrderLineDTO
from modules.orders.repositories.django_repository import (
    OrderDjangoRepository,
    OrderItemDjangoRepository,
)
from modules.orders.services import OrderService
from modules.products.models import Category, Product
from modules.products.repositories.django_repository import ProductDjangoRepository


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument(
            "--orders",
            type=int,
            default=30,
            help="Number of orders to place through the order service.",
        )

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users = self._seed_users()
        categories = self._seed_categories()
        products = self._seed_products(categories)
        orders_created = self._seed_orders(users, products, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={len(users)}, "
                f"categories={len(categories)}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> list:
        User = get_user_model()
        users = []
        for username in ("alice", "bruno", "carla", "daniel"):
            user, created = User.objects.get_or_create(
                username=username, defaults={"email": f"{username}@example.com"}
            )
            if created:
                user.set_unusable_password()
                user.save(update_fields=["password"])
            users.append(user)
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
        return users

    def _seed_categories(self) -> dict[str, Category]:
        self.stdout.write("Creating categories...")
        categories = {}
        for name in ("Electronics", "Furniture", "Office"):
            category, _ = Category.objects.get_or_create(name=name)
            categories[name] = category
        self.stdout.write(self.style.SUCCESS("Creating categories... Done!"))
        return categories

    def _seed_products(self, categories: dict[str, Category]) -> list[Product]:
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
            ("Notebook", "Office", Decimal("19.90")),
            ("Stapler", "Office", Decimal("39.90")),
        ]
        for name, category, price in catalog:
            product = Product.objects.alive().filter(name=name).first()
            if product is None:
                product = Product.objects.create(
                    name=name,
                    description=category,
                    price=price,
                    stock_quantity=random.randint(50, 200),
                )
                product.categories.add(categories[category])
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_orders(self, users: list, products: list[Product], count: int) -> int:
        """Place orders through ``OrderService`` so stock stays consistent."""
        self.stdout.write("Creating orders...")
        if not users or not products:
            self.stdout.write(self.style.WARNING("Skipping orders (no users/products)."))
            return 0

        product_repo = ProductDjangoRepository()
        service = OrderService(
            OrderDjangoRepository(), OrderItemDjangoRepository(), product_repo
        )
        final_statuses = [
            (OrderStatus.PENDING, 0.30),
            (OrderStatus.PROCESSING, 0.25),
            (OrderStatus.SHIPPED, 0.15),
            (OrderStatus.DELIVERED, 0.15),
            (OrderStatus.CANCELLED, 0.15),
        ]
        statuses = [s for s, _ in final_statuses]
        weights = [w for _, w in final_statuses]

        orders_created = 0
        for _ in range(count):
            picked = random.sample(products, k=random.randint(1, min(4, len(products))))
            dto = CreateOrderDTO(
                user_id=random.choice(users).pk,
                items=[
                    OrderLineDTO(product_id=product.id, quantity=random.randint(1, 3))
                    for product in picked
                ],
            )
            order = service.create_order(dto)
            target = random.choices(statuses, weights=weights, k=1)[0]
            if target == OrderStatus.CANCELLED:
                service.cancel_order(order.id)
            elif target != OrderStatus.PENDING:
                service.update_status(order.id, target)
            orders_created += 1

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return orders_created
