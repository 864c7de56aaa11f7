from django.test import TestCase
from rest_framework.exceptions import ValidationError

from catalog import services
from catalog.exceptions import InsufficientStock, ProductNotFound
from catalog.models import Product


class CatalogServiceTests(TestCase):
    def setUp(self):
        self.rose = Product.objects.create(
            name="Red Rose Bouquet", price="30.00", stock_quantity=10, low_stock_threshold=3
        )

    def test_get_product(self):
        self.assertEqual(services.get_product(self.rose.id).name, "Red Rose Bouquet")

    def test_get_product_unknown(self):
        with self.assertRaises(ProductNotFound) as ctx:
            services.get_product(999999)
        self.assertEqual(ctx.exception.product_id, 999999)
        self.assertEqual(ctx.exception.status_code, 404)

    def test_inactive_product_hidden_only_when_asked(self):
        self.rose.is_active = False
        self.rose.save(update_fields=["is_active"])
        self.assertEqual(services.get_product(self.rose.id).pk, self.rose.pk)
        with self.assertRaises(ProductNotFound):
            services.get_product(self.rose.id, active_only=True)

    def test_increase_stock(self):
        product = services.increase_stock(self.rose.id, 4)
        self.assertEqual(product.stock_quantity, 14)
        self.rose.refresh_from_db()
        self.assertEqual(self.rose.stock_quantity, 14)

    def test_decrease_stock(self):
        product = services.decrease_stock(self.rose.id, 10)
        self.assertEqual(product.stock_quantity, 0)
        self.assertTrue(product.is_out_of_stock)

    def test_low_stock_flag(self):
        product = services.decrease_stock(self.rose.id, 8)
        self.assertTrue(product.is_low_stock)
        self.assertFalse(product.is_out_of_stock)

    def test_decrease_below_zero_rejected(self):
        with self.assertRaises(InsufficientStock) as ctx:
            services.decrease_stock(self.rose.id, 11)
        self.assertEqual(ctx.exception.status_code, 409)
        self.assertEqual(ctx.exception.available, 10)
        self.rose.refresh_from_db()
        self.assertEqual(self.rose.stock_quantity, 10)

    def test_non_positive_quantity_rejected(self):
        for qty in (0, -2):
            with self.subTest(qty=qty):
                with self.assertRaises(ValidationError):
                    services.increase_stock(self.rose.id, qty)
                with self.assertRaises(ValidationError):
                    services.decrease_stock(self.rose.id, qty)

    def test_stock_change_on_unknown_product(self):
        with self.assertRaises(ProductNotFound):
            services.increase_stock(424242, 1)
