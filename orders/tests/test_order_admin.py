from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from catalog.models import Product
from orders import services
from orders.models import Order

User = get_user_model()


class OrderAdminActionTests(TestCase):
    def setUp(self):
        self.admin = User.objects.create_superuser("admin", "admin@example.com", "pass1234")
        self.client.force_login(self.admin)
        self.rose = Product.objects.create(name="Red Rose Bouquet", price="30.00", stock_quantity=10)
        self.pending = self.place("ALIPAY")
        self.preparing = self.place("ON_DELIVERY")
        self.url = reverse("admin:orders_order_changelist")

    def place(self, payment_method):
        return services.create_order(
            recipient_name="Li Wei",
            recipient_phone="13800000000",
            recipient_address="1 Flower Street, Shanghai",
            payment_method=payment_method,
            items=[{"product_id": self.rose.id, "quantity": 1, "price": "30.00"}],
        )

    def run_action(self, action, *orders):
        return self.client.post(
            self.url,
            {"action": action, "_selected_action": [o.pk for o in orders]},
            follow=True,
        )

    def test_changelist_renders(self):
        res = self.client.get(self.url)
        self.assertEqual(res.status_code, 200)
        self.assertContains(res, self.pending.order_no)

    def test_confirm_action_skips_orders_in_wrong_status(self):
        res = self.run_action("confirm_orders", self.pending, self.preparing)
        self.assertEqual(res.status_code, 200)
        self.pending.refresh_from_db()
        self.preparing.refresh_from_db()
        self.assertEqual(self.pending.status, Order.Status.PREPARING)
        self.assertEqual(self.preparing.status, Order.Status.PREPARING)
        self.assertContains(res, "1 order(s) confirmed.")

    def test_cancel_action_restores_stock(self):
        self.run_action("cancel_orders", self.pending, self.preparing)
        self.rose.refresh_from_db()
        self.assertEqual(self.rose.stock_quantity, 12)
        self.assertEqual(
            Order.objects.filter(status=Order.Status.CANCELLED).count(), 2
        )
