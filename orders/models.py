"""Orders app models.

Defines the Order and OrderItem models. An Order is created together with its
items and snapshots the product name and unit price of every line, so later
catalog changes never alter a placed order. Orders are never deleted; they
only move through their status lifecycle.
"""

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from .validators import mobile_phone_validator

# Lifecycle actions
CONFIRM = "confirm"
START_DELIVERY = "start_delivery"
COMPLETE = "complete"
CANCEL = "cancel"


class Order(models.Model):
    """One purchase transaction placed by a registered user or a guest."""

    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        PREPARING = "PREPARING", "Preparing"
        DELIVERING = "DELIVERING", "Delivering"
        COMPLETED = "COMPLETED", "Completed"
        CANCELLED = "CANCELLED", "Cancelled"

    class PaymentMethod(models.TextChoices):
        ALIPAY = "ALIPAY", "Alipay"
        WECHAT = "WECHAT", "WeChat Pay"
        ON_DELIVERY = "ON_DELIVERY", "Collect on delivery"

    class PaymentStatus(models.TextChoices):
        PENDING = "PENDING", "Pending"
        PAID = "PAID", "Paid"
        REFUNDED = "REFUNDED", "Refunded"

    TERMINAL_STATUSES = frozenset({Status.COMPLETED, Status.CANCELLED})

    # action -> (allowed source statuses, target status)
    TRANSITIONS = {
        CONFIRM: (frozenset({Status.PENDING}), Status.PREPARING),
        START_DELIVERY: (frozenset({Status.PREPARING}), Status.DELIVERING),
        COMPLETE: (frozenset({Status.DELIVERING}), Status.COMPLETED),
        CANCEL: (frozenset({Status.PENDING, Status.PREPARING}), Status.CANCELLED),
    }

    order_no = models.CharField(max_length=32, unique=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
        null=True,
        blank=True,
    )
    customer_name = models.CharField(max_length=100)
    customer_phone = models.CharField(
        max_length=20, db_index=True, validators=[mobile_phone_validator]
    )
    delivery_address = models.TextField()

    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    delivery_fee = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    final_amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_method = models.CharField(
        max_length=20, choices=PaymentMethod.choices, default=PaymentMethod.ON_DELIVERY
    )
    payment_status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )

    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True
    )
    notes = models.TextField(blank=True, default="")
    card_content = models.TextField(blank=True, default="")
    card_sender = models.CharField(max_length=100, blank=True, default="")
    delivery_time = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "orders"
        ordering = ("-created_at", "-id")
        constraints = [
            models.CheckConstraint(
                condition=Q(delivery_fee__gte=0), name="order_delivery_fee_non_negative"
            ),
        ]

    def __str__(self) -> str:
        """Readable representation for admin and debugging."""
        return f"Order<{self.order_no} {self.status}>"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    @property
    def is_paid(self) -> bool:
        return self.payment_status == self.PaymentStatus.PAID

    def can(self, action) -> bool:
        """True if `action` is allowed from the current status."""
        sources, _ = self.TRANSITIONS[action]
        return self.status in sources

    @property
    def allowed_actions(self) -> list:
        return [action for action in self.TRANSITIONS if self.can(action)]

    def can_confirm(self) -> bool:
        return self.can(CONFIRM)

    def can_ship(self) -> bool:
        return self.can(START_DELIVERY)

    def can_complete(self) -> bool:
        return self.can(COMPLETE)

    def can_cancel(self) -> bool:
        return self.can(CANCEL)


class OrderItem(models.Model):
    """A product line of an order with the price and name fixed at order time."""

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(
        "catalog.Product", on_delete=models.PROTECT, related_name="order_items"
    )
    product_snapshot_name = models.CharField(max_length=200)
    unit_price = models.DecimalField(
        max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0.01"))]
    )
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "order_items"
        ordering = ("id",)
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gte=1), name="order_item_quantity_positive"),
            models.CheckConstraint(
                condition=Q(unit_price__gte=Decimal("0.01")), name="order_item_unit_price_positive"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.quantity}x {self.product_snapshot_name} (order #{self.order_id})"

    @staticmethod
    def calculate_subtotal(unit_price: Decimal, quantity: int) -> Decimal:
        return (unit_price * quantity).quantize(Decimal("0.01"))
