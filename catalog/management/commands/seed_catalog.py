from decimal import Decimal

from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
from rest_framework.authtoken.models import Token

from catalog.models import Product

PRODUCTS = [
    {"name": "Red Rose Bouquet", "price": Decimal("30.00"), "stock_quantity": 40},
    {"name": "Sunflower Basket", "price": Decimal("15.50"), "stock_quantity": 25},
    {"name": "Lily Arrangement", "price": Decimal("48.00"), "stock_quantity": 12},
    {"name": "Tulip Bundle", "price": Decimal("22.90"), "stock_quantity": 3},
]

STAFF = {"username": "staff", "password": "staff1234", "email": "staff@example.com"}


class Command(BaseCommand):
    help = "Create or update demo products and a staff user for order management."

    def handle(self, *args, **options):
        for cfg in PRODUCTS:
            product, created = Product.objects.update_or_create(
                name=cfg["name"],
                defaults={"price": cfg["price"], "stock_quantity": cfg["stock_quantity"]},
            )
            if created:
                self.stdout.write(self.style.SUCCESS(f"Created product '{product.name}'"))
            else:
                self.stdout.write(f"Product '{product.name}' updated")

        User = get_user_model()
        user, created = User.objects.get_or_create(
            username=STAFF["username"],
            defaults={"email": STAFF["email"], "is_staff": True},
        )
        if not user.is_staff:
            user.is_staff = True
        user.set_password(STAFF["password"])
        user.save(update_fields=["password", "is_staff"])

        token, _ = Token.objects.get_or_create(user=user)
        self.stdout.write(f"  → staff user '{user.username}', token={token.key}")

        self.stdout.write(self.style.SUCCESS("Catalog ready."))
