"""Order number generation.

Format: ``<prefix><yyyyMMddHHmmss><3-digit random suffix>``, e.g.
``FH20251122143005417``. Numbers sort by creation time; two orders created in
the same second can collide, which the unique column on ``orders.order_no``
detects so the caller can draw a new number.
"""

import secrets

from django.conf import settings
from django.utils import timezone


def generate_order_no(now=None, prefix=None) -> str:
    now = timezone.localtime(now or timezone.now())
    if prefix is None:
        prefix = getattr(settings, "ORDERS_NUMBER_PREFIX", "FH")
    suffix = secrets.randbelow(900) + 100
    return f"{prefix}{now:%Y%m%d%H%M%S}{suffix}"
