"""Catalog accessor.

Keyed access to products for the order engine: read a product, and move its
stock up or down. Stock changes lock the product row and apply the delta in
the database, so concurrent changes to the same product are serialized.
Callers that need several changes to succeed or fail together wrap them in
their own transaction; each helper here joins it.
"""

import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from .exceptions import InsufficientStock, ProductNotFound
from .models import Product

logger = logging.getLogger(__name__)


def get_product(product_id, *, active_only: bool = False) -> Product:
    """Return the product or raise ProductNotFound."""
    qs = Product.objects.all()
    if active_only:
        qs = qs.filter(is_active=True)
    try:
        return qs.get(pk=product_id)
    except Product.DoesNotExist:
        raise ProductNotFound(product_id)


def _lock_product(product_id) -> Product:
    try:
        return Product.objects.select_for_update().get(pk=product_id)
    except Product.DoesNotExist:
        raise ProductNotFound(product_id)


def _require_positive(quantity: int) -> None:
    if quantity < 1:
        raise ValidationError({"quantity": "Must be >= 1."})


@transaction.atomic
def increase_stock(product_id, quantity: int) -> Product:
    """Add `quantity` units to the product's stock and return the fresh row."""
    _require_positive(quantity)
    product = _lock_product(product_id)
    Product.objects.filter(pk=product.pk).update(
        stock_quantity=F("stock_quantity") + quantity, updated_at=timezone.now()
    )
    product.refresh_from_db(fields=["stock_quantity", "updated_at"])
    logger.info(
        "Stock of product %s increased by %s to %s", product.pk, quantity, product.stock_quantity
    )
    return product


@transaction.atomic
def decrease_stock(product_id, quantity: int) -> Product:
    """Take `quantity` units out of stock; never lets stock drop below zero."""
    _require_positive(quantity)
    product = _lock_product(product_id)
    if product.stock_quantity < quantity:
        raise InsufficientStock(product.pk, quantity, product.stock_quantity)
    Product.objects.filter(pk=product.pk).update(
        stock_quantity=F("stock_quantity") - quantity, updated_at=timezone.now()
    )
    product.refresh_from_db(fields=["stock_quantity", "updated_at"])
    logger.info(
        "Stock of product %s decreased by %s to %s", product.pk, quantity, product.stock_quantity
    )
    if product.is_low_stock:
        logger.warning("Product %s is low on stock (%s left)", product.pk, product.stock_quantity)
    return product
