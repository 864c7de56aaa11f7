import re
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APITestCase

from catalog.models import Product
from orders.models import Order, OrderItem


User = get_user_model()


def create_products():
    rose = Product.objects.create(name="Red Rose Bouquet", price="30.00", stock_quantity=10)
    sunflower = Product.objects.create(name="Sunflower Basket", price="15.50", stock_quantity=5)
    return rose, sunflower


def order_payload(rose, sunflower, **overrides):
    payload = {
        "recipient_name": "Li Wei",
        "recipient_phone": "13800000000",
        "recipient_address": "1 Flower Street, Shanghai",
        "payment_method": "ON_DELIVERY",
        "items": [
            {"product_id": rose.id, "quantity": 2, "price": "30.00"},
            {"product_id": sunflower.id, "quantity": 1, "price": "15.50"},
        ],
    }
    payload.update(overrides)
    return payload


class OrderCreateTests(APITestCase):
    def setUp(self):
        self.url = reverse("order-list-create")
        self.rose, self.sunflower = create_products()

        self.cust = User.objects.create_user("cust", "cust@example.com", "pass1234")
        self.cust_token = Token.objects.create(user=self.cust)

    def auth(self, token):
        self.client.credentials(HTTP_AUTHORIZATION=f"Token {token.key}")

    def test_guest_order_collect_on_delivery_201(self):
        res = self.client.post(self.url, order_payload(self.rose, self.sunflower), format="json")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)

        data = res.data
        self.assertRegex(data["order_no"], r"^FH\d{17}$")
        self.assertIsNone(data["user"])
        self.assertEqual(Decimal(data["total_amount"]), Decimal("75.50"))
        self.assertEqual(Decimal(data["delivery_fee"]), Decimal("0.00"))
        self.assertEqual(Decimal(data["final_amount"]), Decimal("75.50"))
        self.assertEqual(data["status"], "PREPARING")
        self.assertEqual(data["payment_status"], "PENDING")
        self.assertEqual(data["payment_method"], "ON_DELIVERY")
        self.assertEqual(data["customer_name"], "Li Wei")
        self.assertEqual(data["customer_phone"], "13800000000")
        self.assertEqual(data["delivery_address"], "1 Flower Street, Shanghai")
        self.assertEqual(data["item_count"], 2)

        lines = {item["product_id"]: item for item in data["items"]}
        self.assertEqual(lines[self.rose.id]["product_name"], "Red Rose Bouquet")
        self.assertEqual(Decimal(lines[self.rose.id]["subtotal"]), Decimal("60.00"))
        self.assertEqual(lines[self.sunflower.id]["quantity"], 1)
        self.assertEqual(Decimal(lines[self.sunflower.id]["subtotal"]), Decimal("15.50"))

    def test_order_placement_does_not_touch_stock(self):
        res = self.client.post(self.url, order_payload(self.rose, self.sunflower), format="json")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.rose.refresh_from_db()
        self.sunflower.refresh_from_db()
        self.assertEqual(self.rose.stock_quantity, 10)
        self.assertEqual(self.sunflower.stock_quantity, 5)

    def test_online_payment_starts_pending(self):
        payload = order_payload(self.rose, self.sunflower, payment_method="ALIPAY")
        res = self.client.post(self.url, payload, format="json")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["status"], "PENDING")
        self.assertEqual(res.data["payment_status"], "PENDING")

    def test_missing_payment_method_defaults_to_collect_on_delivery(self):
        payload = order_payload(self.rose, self.sunflower)
        payload.pop("payment_method")
        res = self.client.post(self.url, payload, format="json")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["payment_method"], "ON_DELIVERY")
        self.assertEqual(res.data["status"], "PREPARING")

    def test_authenticated_order_is_owned_by_user(self):
        self.auth(self.cust_token)
        res = self.client.post(self.url, order_payload(self.rose, self.sunflower), format="json")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["user"], self.cust.id)
        self.assertEqual(Order.objects.get(pk=res.data["id"]).user_id, self.cust.id)

    def test_client_supplied_amounts_are_ignored(self):
        payload = order_payload(
            self.rose, self.sunflower, total_amount="1.00", final_amount="1.00", status="COMPLETED"
        )
        res = self.client.post(self.url, payload, format="json")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(res.data["final_amount"]), Decimal("75.50"))
        self.assertEqual(res.data["status"], "PREPARING")

    def test_delivery_date_and_time_are_combined(self):
        payload = order_payload(
            self.rose, self.sunflower, delivery_date="2025-12-24", delivery_time="10:30"
        )
        res = self.client.post(self.url, payload, format="json")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        order = Order.objects.get(pk=res.data["id"])
        self.assertIsNotNone(order.delivery_time)

    def test_delivery_date_without_time_400(self):
        payload = order_payload(self.rose, self.sunflower, delivery_date="2025-12-24")
        res = self.client.post(self.url, payload, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("delivery_time", res.data)

    def test_invalid_phone_400(self):
        payload = order_payload(self.rose, self.sunflower, recipient_phone="12345")
        res = self.client.post(self.url, payload, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("recipient_phone", res.data)
        self.assertEqual(Order.objects.count(), 0)

    def test_missing_recipient_fields_400(self):
        res = self.client.post(self.url, {"items": []}, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        for f in ("recipient_name", "recipient_phone", "recipient_address", "items"):
            self.assertIn(f, res.data)

    def test_empty_items_400(self):
        payload = order_payload(self.rose, self.sunflower, items=[])
        res = self.client.post(self.url, payload, format="json")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("items", res.data)

    def test_zero_price_or_quantity_400(self):
        zero_price = order_payload(
            self.rose, self.sunflower, items=[{"product_id": self.rose.id, "quantity": 1, "price": "0.00"}]
        )
        zero_qty = order_payload(
            self.rose, self.sunflower, items=[{"product_id": self.rose.id, "quantity": 0, "price": "30.00"}]
        )
        r1 = self.client.post(self.url, zero_price, format="json")
        r2 = self.client.post(self.url, zero_qty, format="json")
        self.assertEqual(r1.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r2.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Order.objects.count(), 0)

    def test_unknown_product_404_and_nothing_persisted(self):
        payload = order_payload(
            self.rose,
            self.sunflower,
            items=[
                {"product_id": self.rose.id, "quantity": 1, "price": "30.00"},
                {"product_id": 999999, "quantity": 1, "price": "5.00"},
            ],
        )
        res = self.client.post(self.url, payload, format="json")
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(OrderItem.objects.count(), 0)

    def test_delisted_product_404(self):
        self.sunflower.is_active = False
        self.sunflower.save(update_fields=["is_active"])
        res = self.client.post(self.url, order_payload(self.rose, self.sunflower), format="json")
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(Order.objects.count(), 0)

    def test_snapshot_survives_catalog_changes(self):
        self.auth(self.cust_token)
        res = self.client.post(self.url, order_payload(self.rose, self.sunflower), format="json")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)

        # Katalog ändert sich nach der Bestellung
        self.rose.name = "Rose Deluxe"
        self.rose.price = Decimal("99.00")
        self.rose.save()

        detail = self.client.get(reverse("order-detail", args=[res.data["id"]]))
        self.assertEqual(detail.status_code, status.HTTP_200_OK)
        line = next(i for i in detail.data["items"] if i["product_id"] == self.rose.id)
        self.assertEqual(line["product_name"], "Red Rose Bouquet")
        self.assertEqual(Decimal(line["unit_price"]), Decimal("30.00"))
        self.assertEqual(Decimal(detail.data["total_amount"]), Decimal("75.50"))

    def test_order_number_format(self):
        res = self.client.post(self.url, order_payload(self.rose, self.sunflower), format="json")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        match = re.match(r"^FH(\d{14})(\d{3})$", res.data["order_no"])
        self.assertIsNotNone(match)
        self.assertGreaterEqual(int(match.group(2)), 100)
