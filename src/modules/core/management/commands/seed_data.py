from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.carts.models import Cart, CartItem
from modules.products.models import Product, ProductStatus


class Command(BaseCommand):
    help = "Seed database with development shoppers, products and carts."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users = self._seed_users()
        products = self._seed_products()
        cart_items = self._seed_carts(users, products)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={len(users)}, "
                f"products={len(products)}, "
                f"cart_items={cart_items}"
            )
        )

    def _seed_users(self) -> list:
        User = get_user_model()
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")

        users = []
        for username, first_name, email in [
            ("ada", "Ada", "ada@example.com"),
            ("tunde", "Tunde", "tunde@example.com"),
            ("chioma", "Chioma", "chioma@example.com"),
        ]:
            user, created = User.objects.get_or_create(
                username=username,
                defaults={"first_name": first_name, "email": email},
            )
            if created:
                user.set_password(f"{username}123")
                user.save(update_fields=["password"])
            users.append(user)
        return users

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        products: list[Product] = []
        catalog = [
            ("SHOE-001", "Leather Loafers", Decimal("45000.00")),
            ("SHOE-002", "Canvas Sneakers", Decimal("18500.00")),
            ("BAG-001", "Tote Bag", Decimal("12000.00")),
            ("BAG-002", "Laptop Backpack", Decimal("27500.00")),
            ("TEE-001", "Cotton T-Shirt", Decimal("6500.00")),
            ("TEE-002", "Polo Shirt", Decimal("9800.00")),
            ("ACC-001", "Wrist Watch", Decimal("38000.00")),
            ("ACC-002", "Sunglasses", Decimal("15500.00")),
        ]
        for sku, name, price in catalog:
            product, _ = Product.objects.get_or_create(
                sku=sku,
                defaults={
                    "name": name,
                    "price": price,
                    "stock_quantity": random.randint(5, 60),
                    "status": ProductStatus.ACTIVE,
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_carts(self, users: list, products: list[Product]) -> int:
        self.stdout.write("Filling carts...")
        created_items = 0
        for user in users:
            cart, _ = Cart.objects.get_or_create(user=user)
            for product in random.sample(products, k=min(2, len(products))):
                _, created = CartItem.objects.get_or_create(
                    cart=cart,
                    product=product,
                    defaults={"quantity": random.randint(1, 3)},
                )
                created_items += int(created)
        self.stdout.write(self.style.SUCCESS("Filling carts... Done!"))
        return created_items
