"""Order query service.

Read paths for customer and staff clients. Every list shape returns a
`common.pagination.Page`; a page past the end is empty and still reports the
total. Results are always ordered with `id` as tie-breaker so pages never
overlap or skip rows.
"""

from django.db.models import Count, Q
from rest_framework.exceptions import ValidationError

from common.pagination import Page, paginate

from .exceptions import OrderNotFound
from .models import Order

SORTABLE_FIELDS = ("created_at", "updated_at", "total_amount", "final_amount", "order_no", "status")
SORT_ORDERS = ("asc", "desc")
DEFAULT_SORT_BY = "created_at"
DEFAULT_SORT_ORDER = "desc"


def _list_queryset(status=None):
    qs = Order.objects.annotate(item_count=Count("items"))
    if status and status not in Order.Status.values:
        raise ValidationError({"status": f"Allowed values: {', '.join(Order.Status.values)}."})
    if status:
        qs = qs.filter(status=status)
    return qs


def _newest_first(qs):
    return qs.order_by("-created_at", "-id")


def orders_for_user(user_id, status=None, page=1, size=10) -> Page:
    """Orders owned by a registered user, newest first."""
    qs = _list_queryset(status).filter(user_id=user_id)
    return paginate(_newest_first(qs), page, size)


def orders_for_phone(phone, status=None, page=1, size=10) -> Page:
    """Orders placed with this contact phone (guest or registered), newest first."""
    qs = _list_queryset(status).filter(customer_phone=phone)
    return paginate(_newest_first(qs), page, size)


def search_orders(
    keyword=None,
    status=None,
    start_date=None,
    end_date=None,
    page=1,
    size=10,
    sort_by=DEFAULT_SORT_BY,
    sort_order=DEFAULT_SORT_ORDER,
) -> Page:
    """Staff search over order number, customer name and phone.

    `start_date` and `end_date` are inclusive calendar dates on `created_at`.
    `sort_by` must be one of SORTABLE_FIELDS and `sort_order` asc or desc.
    """
    if sort_by not in SORTABLE_FIELDS:
        raise ValidationError({"sort_by": f"Allowed values: {', '.join(SORTABLE_FIELDS)}."})
    if sort_order not in SORT_ORDERS:
        raise ValidationError({"sort_order": "Allowed values: asc, desc."})

    qs = _list_queryset(status)
    keyword = (keyword or "").strip()
    if keyword:
        qs = qs.filter(
            Q(order_no__icontains=keyword)
            | Q(customer_name__icontains=keyword)
            | Q(customer_phone__icontains=keyword)
        )
    if start_date:
        qs = qs.filter(created_at__date__gte=start_date)
    if end_date:
        qs = qs.filter(created_at__date__lte=end_date)

    prefix = "-" if sort_order == "desc" else ""
    qs = qs.order_by(f"{prefix}{sort_by}", f"{prefix}id")
    return paginate(qs, page, size)


def get_order_detail(order_id) -> Order:
    """One order with its line items loaded."""
    try:
        return Order.objects.prefetch_related("items").get(pk=order_id)
    except Order.DoesNotExist:
        raise OrderNotFound(order_id)
