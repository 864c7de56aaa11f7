from datetime import datetime, timezone as dt_timezone

from django.test import SimpleTestCase, override_settings

from orders.numbering import generate_order_no


class OrderNumberTests(SimpleTestCase):
    def test_format(self):
        number = generate_order_no()
        self.assertRegex(number, r"^FH\d{14}[1-9]\d{2}$")

    @override_settings(TIME_ZONE="Asia/Shanghai")
    def test_timestamp_is_local_time(self):
        utc_moment = datetime(2025, 11, 22, 6, 30, 5, tzinfo=dt_timezone.utc)
        number = generate_order_no(now=utc_moment)
        # UTC+8
        self.assertTrue(number.startswith("FH20251122143005"), number)
        self.assertEqual(len(number), 19)

    @override_settings(ORDERS_NUMBER_PREFIX="XY")
    def test_prefix_from_settings(self):
        self.assertTrue(generate_order_no().startswith("XY"))

    def test_explicit_prefix(self):
        self.assertTrue(generate_order_no(prefix="").isdigit())

    def test_suffix_range(self):
        suffixes = {int(generate_order_no()[-3:]) for _ in range(200)}
        self.assertTrue(all(100 <= s <= 999 for s in suffixes))
