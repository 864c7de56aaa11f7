"""Order lifecycle engine.

Creates orders (pricing and snapshotting their lines) and moves them through
the status state machine::

    PENDING -> PREPARING -> DELIVERING -> COMPLETED
    PENDING | PREPARING -> CANCELLED

Each operation is a single database transaction. Transitions lock the order
row before reading its status (on SQLite the IMMEDIATE transaction mode takes
the database write lock instead), so of two racing transitions on the same
order only the first can succeed; the second sees the new status and is rejected.
The caller's identity is passed in explicitly, never read from the request.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, IntegrityError, OperationalError, transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from catalog import services as catalog
from common.exceptions import InternalError

from .exceptions import InvalidStateTransition, OrderNotFound, OrderNumberConflict
from .models import CANCEL, COMPLETE, CONFIRM, START_DELIVERY, Order, OrderItem
from .numbering import generate_order_no
from .validators import mobile_phone_validator

logger = logging.getLogger(__name__)

Status = Order.Status

TRANSITIONS = Order.TRANSITIONS

MIN_UNIT_PRICE = Decimal("0.01")
ZERO = Decimal("0.00")
# A transition waiting on a locked row is retried this often before giving up.
LOCK_ATTEMPTS = 3


@dataclass(frozen=True)
class OrderLine:
    """A requested line: which product, how many, at what unit price."""

    product_id: int
    quantity: int
    price: Decimal


# ----------------------------- helpers (creation) -----------------------------

def _decimal(value):
    """Exact decimal from an int, str, float or Decimal; bools are not numbers."""
    if isinstance(value, bool):
        raise TypeError("boolean is not a number")
    return Decimal(str(value))


def _whole_number(value):
    number = _decimal(value)
    if not number.is_finite() or number != number.to_integral_value():
        raise ValueError(f"{value!r} is not a whole number")
    return int(number)


def _parse_line(index, item):
    if isinstance(item, OrderLine):
        raw = (item.product_id, item.quantity, item.price)
    else:
        try:
            raw = (item["product_id"], item["quantity"], item["price"])
        except (KeyError, TypeError):
            raise ValidationError(
                {"items": f"Line {index} needs a product_id, a quantity and a price."}
            )

    try:
        product_id = _whole_number(raw[0])
        quantity = _whole_number(raw[1])
    except (TypeError, ValueError, InvalidOperation):
        raise ValidationError(
            {"items": f"Line {index}: product_id and quantity must be whole numbers."}
        )
    try:
        price = _decimal(raw[2])
    except (TypeError, ValueError, InvalidOperation):
        raise ValidationError({"items": f"Line {index}: price is not a number."})

    # unit_price is stored with two decimals; subtotal must equal unit_price * quantity
    if not price.is_finite() or price.as_tuple().exponent < -2:
        raise ValidationError(
            {"items": f"Line {index}: price must be an amount with at most two decimals."}
        )
    if quantity < 1:
        raise ValidationError({"items": f"Line {index}: quantity must be >= 1."})
    if price < MIN_UNIT_PRICE:
        raise ValidationError({"items": f"Line {index}: price must be >= {MIN_UNIT_PRICE}."})
    return OrderLine(product_id=product_id, quantity=quantity, price=price)


def _parse_lines(items):
    if not items:
        raise ValidationError({"items": "At least one order line is required."})
    return [_parse_line(index, item) for index, item in enumerate(items, start=1)]


def _validate_recipient(name, phone, address):
    errors = {}
    if not (name or "").strip():
        errors["recipient_name"] = "This field may not be blank."
    if not (address or "").strip():
        errors["recipient_address"] = "This field may not be blank."
    try:
        mobile_phone_validator(phone or "")
    except DjangoValidationError as exc:
        errors["recipient_phone"] = exc.messages
    if errors:
        raise ValidationError(errors)


def _validate_payment_method(payment_method):
    if payment_method in (None, ""):
        return Order.PaymentMethod.ON_DELIVERY
    if payment_method not in Order.PaymentMethod.values:
        raise ValidationError(
            {"payment_method": f"Allowed values: {', '.join(Order.PaymentMethod.values)}."}
        )
    return payment_method


def _combine_delivery(delivery_date, delivery_time):
    if delivery_date is None and delivery_time is None:
        return None
    if delivery_date is None or delivery_time is None:
        raise ValidationError(
            {"delivery_time": "Delivery date and time must be given together."}
        )
    moment = datetime.combine(delivery_date, delivery_time)
    if timezone.is_naive(moment):
        moment = timezone.make_aware(moment)
    return moment


def _price_lines(lines):
    """Resolve every product before anything is written.

    Returns ``(product, line, unit_price)`` triples. The unit price is the one
    sent by the client unless ORDERS_TRUST_CLIENT_PRICES is off, in which case
    the current catalog price is used.
    """
    trust_client = getattr(settings, "ORDERS_TRUST_CLIENT_PRICES", True)
    priced = []
    for line in lines:
        product = catalog.get_product(line.product_id, active_only=True)
        unit_price = line.price if trust_client else product.price
        if unit_price < MIN_UNIT_PRICE:
            raise ValidationError({"items": f"Product {product.pk} has no sellable price."})
        priced.append((product, line, unit_price))
    return priced


def _persist_order(order_no, fields, priced):
    with transaction.atomic():
        order = Order.objects.create(order_no=order_no, **fields)
        OrderItem.objects.bulk_create(
            [
                OrderItem(
                    order=order,
                    product=product,
                    product_snapshot_name=product.name,
                    unit_price=unit_price,
                    quantity=line.quantity,
                    subtotal=OrderItem.calculate_subtotal(unit_price, line.quantity),
                )
                for product, line, unit_price in priced
            ]
        )
        if getattr(settings, "ORDERS_RESERVE_STOCK_ON_CREATE", False):
            # ascending product id keeps lock order consistent across orders
            for product, line, _ in sorted(priced, key=lambda p: p[0].pk):
                catalog.decrease_stock(product.pk, line.quantity)
    return order


# ---------------------------------- creation ----------------------------------

def create_order(
    *,
    recipient_name,
    recipient_phone,
    recipient_address,
    items,
    payment_method=Order.PaymentMethod.ON_DELIVERY,
    delivery_date=None,
    delivery_time=None,
    card_content="",
    card_sender="",
    notes="",
    user=None,
) -> Order:
    """Validate, price and persist a new order with all of its lines.

    `user` is the authenticated customer or None for a guest order. Raises
    ValidationError for bad input, ProductNotFound for unknown or delisted
    products, OrderNumberConflict when no free order number was found within
    ORDERS_NUMBER_MAX_ATTEMPTS draws, and InternalError on storage failure.
    Nothing is persisted unless the whole order is.
    """
    lines = _parse_lines(items)
    _validate_recipient(recipient_name, recipient_phone, recipient_address)
    payment_method = _validate_payment_method(payment_method)
    delivery_at = _combine_delivery(delivery_date, delivery_time)

    priced = _price_lines(lines)
    total_amount = sum(
        (OrderItem.calculate_subtotal(unit_price, line.quantity) for _, line, unit_price in priced),
        ZERO,
    )
    delivery_fee = ZERO

    # Collect-on-delivery orders need no payment step before preparation.
    if payment_method == Order.PaymentMethod.ON_DELIVERY:
        initial_status = Status.PREPARING
    else:
        initial_status = Status.PENDING

    fields = {
        "user": user if user is not None and user.is_authenticated else None,
        "customer_name": recipient_name.strip(),
        "customer_phone": recipient_phone,
        "delivery_address": recipient_address.strip(),
        "delivery_time": delivery_at,
        "card_content": card_content or "",
        "card_sender": card_sender or "",
        "notes": notes or "",
        "payment_method": payment_method,
        "payment_status": Order.PaymentStatus.PENDING,
        "status": initial_status,
        "total_amount": total_amount,
        "delivery_fee": delivery_fee,
        "final_amount": total_amount + delivery_fee,
    }

    max_attempts = max(1, getattr(settings, "ORDERS_NUMBER_MAX_ATTEMPTS", 5))
    for attempt in range(1, max_attempts + 1):
        order_no = generate_order_no()
        try:
            order = _persist_order(order_no, fields, priced)
        except IntegrityError as exc:
            if not Order.objects.filter(order_no=order_no).exists():
                logger.exception("Storing order failed")
                raise InternalError() from exc
            logger.warning(
                "Order number %s already taken (attempt %s/%s)", order_no, attempt, max_attempts
            )
            continue
        except DatabaseError as exc:
            logger.exception("Storing order failed")
            raise InternalError() from exc

        logger.info(
            "Created order %s with %s line(s), final amount %s, status %s",
            order.order_no, len(priced), order.final_amount, order.status,
        )
        return order

    raise OrderNumberConflict()


# ----------------------------- helpers (transitions) -----------------------------

def _lock_order(order_id) -> Order:
    try:
        return Order.objects.select_for_update().get(pk=order_id)
    except Order.DoesNotExist:
        raise OrderNotFound(order_id)


def _append_note(notes, line):
    return f"{notes}\n{line}" if notes else line


def _is_lock_timeout(exc) -> bool:
    message = str(exc).lower()
    return "locked" in message or "lock timeout" in message


def _apply_transition(order_id, action, side_effect):
    _, target = TRANSITIONS[action]
    with transaction.atomic():
        order = _lock_order(order_id)
        previous = order.status
        if not order.can(action):
            logger.info(
                "Rejected %s on order %s in status %s", action, order.order_no, previous
            )
            raise InvalidStateTransition(action, previous)

        update_fields = ["status", "updated_at"]
        if side_effect is not None:
            update_fields += side_effect(order)
        order.status = target
        order.save(update_fields=update_fields)

    logger.info("Order %s: %s -> %s", order.order_no, previous, target)
    return order


def _transition(order_id, action, side_effect=None) -> Order:
    """Run one lifecycle action in its own transaction.

    A transaction that could not get its locks in time is rolled back and run
    again, so a caller that lost a race re-reads the status and is rejected
    with InvalidStateTransition instead of failing with a storage error.
    """
    for attempt in range(1, LOCK_ATTEMPTS + 1):
        try:
            return _apply_transition(order_id, action, side_effect)
        except OperationalError as exc:
            if attempt < LOCK_ATTEMPTS and _is_lock_timeout(exc):
                logger.warning(
                    "Order %s is locked, retrying %s (attempt %s/%s)",
                    order_id, action, attempt, LOCK_ATTEMPTS,
                )
                continue
            logger.exception("Could not %s order %s", action, order_id)
            raise InternalError() from exc
        except DatabaseError as exc:
            logger.exception("Could not %s order %s", action, order_id)
            raise InternalError() from exc


def _mark_paid(order):
    order.payment_status = Order.PaymentStatus.PAID
    return ["payment_status"]


def _restore_stock(reason):
    def apply(order):
        # every line is restored or, on the first failure, none is
        for item in order.items.order_by("product_id", "id"):
            catalog.increase_stock(item.product_id, item.quantity)
        reason_text = (reason or "").strip()
        if not reason_text:
            return []
        order.notes = _append_note(order.notes, f"Cancellation reason: {reason_text}")
        return ["notes"]
    return apply


# --------------------------------- transitions ---------------------------------

def confirm_order(order_id) -> Order:
    """PENDING -> PREPARING."""
    return _transition(order_id, CONFIRM)


def start_delivery(order_id) -> Order:
    """PREPARING -> DELIVERING."""
    return _transition(order_id, START_DELIVERY)


def complete_order(order_id) -> Order:
    """DELIVERING -> COMPLETED; the payment is recorded as received."""
    return _transition(order_id, COMPLETE, _mark_paid)


def cancel_order(order_id, reason=None) -> Order:
    """PENDING | PREPARING -> CANCELLED.

    Puts the quantity of every line back into stock and appends the reason,
    if one is given, to the order notes.
    """
    return _transition(order_id, CANCEL, _restore_stock(reason))
