from django.contrib import admin, messages
from django.utils.html import format_html
from rest_framework.exceptions import APIException

from . import services
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    fields = ("product", "product_snapshot_name", "unit_price", "quantity", "subtotal", "created_at")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Order overview for staff:
    - List: number, status (badge), customer, phone, amount, payment, created
    - Filter: status, payment status, payment method, created (date hierarchy)
    - Search: order number, customer name, phone
    - Status only changes through the lifecycle actions, never by editing
    """
    list_display = (
        "order_no",
        "status_badge",
        "customer_name",
        "customer_phone",
        "final_amount",
        "payment_method",
        "payment_status",
        "created_at",
    )
    list_select_related = ("user",)
    list_filter = ("status", "payment_status", "payment_method", "created_at")
    date_hierarchy = "created_at"
    ordering = ("-created_at", "-id")
    search_fields = ("order_no", "customer_name", "customer_phone")
    inlines = [OrderItemInline]
    actions = ["confirm_orders", "start_delivery", "complete_orders", "cancel_orders"]

    # Only notes are editable; everything else is set by the lifecycle engine
    readonly_fields = (
        "order_no",
        "user",
        "status",
        "customer_name",
        "customer_phone",
        "delivery_address",
        "delivery_time",
        "total_amount",
        "delivery_fee",
        "final_amount",
        "payment_method",
        "payment_status",
        "card_content",
        "card_sender",
        "created_at",
        "updated_at",
    )
    fields = readonly_fields[:3] + ("notes",) + readonly_fields[3:]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    # Badges
    def status_badge(self, obj):
        color = {
            Order.Status.PENDING: "#f59e0b",
            Order.Status.PREPARING: "#0ea5e9",
            Order.Status.DELIVERING: "#6366f1",
            Order.Status.COMPLETED: "#22c55e",
            Order.Status.CANCELLED: "#ef4444",
        }.get(obj.status, "#9ca3af")
        return format_html(
            '<span style="display:inline-block;padding:2px 8px;border-radius:999px;'
            'font-size:12px;font-weight:600;color:#fff;background:{};">{}</span>',
            color,
            obj.get_status_display(),
        )
    status_badge.short_description = "status"
    status_badge.admin_order_field = "status"

    # Lifecycle actions
    def _run_transition(self, request, queryset, transition, verb):
        done = 0
        for order in queryset:
            try:
                transition(order.pk)
            except APIException as exc:
                detail = exc.detail.get("detail", exc.detail) if isinstance(exc.detail, dict) else exc.detail
                self.message_user(request, f"{order.order_no}: {detail}", level=messages.WARNING)
            else:
                done += 1
        if done:
            self.message_user(request, f"{done} order(s) {verb}.", level=messages.SUCCESS)

    @admin.action(description="Confirm selected orders")
    def confirm_orders(self, request, queryset):
        self._run_transition(request, queryset, services.confirm_order, "confirmed")

    @admin.action(description="Start delivery for selected orders")
    def start_delivery(self, request, queryset):
        self._run_transition(request, queryset, services.start_delivery, "out for delivery")

    @admin.action(description="Complete selected orders (payment received)")
    def complete_orders(self, request, queryset):
        self._run_transition(request, queryset, services.complete_order, "completed")

    @admin.action(description="Cancel selected orders and restore stock")
    def cancel_orders(self, request, queryset):
        self._run_transition(request, queryset, services.cancel_order, "cancelled")
