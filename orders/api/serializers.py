"""Orders API serializers.

Input serializers for placing and cancelling orders and for the query
parameters of the list endpoints; output serializers for list rows and the
order detail with its line items. Amounts, statuses and snapshots are always
computed by the lifecycle engine and never taken from the payload.
"""

from decimal import Decimal

from django.conf import settings
from rest_framework import serializers

from orders import queries, services
from orders.models import Order, OrderItem
from orders.validators import mobile_phone_validator


def _max_page_size():
    return getattr(settings, "ORDERS_MAX_PAGE_SIZE", 100)


def _default_page_size():
    return getattr(settings, "ORDERS_DEFAULT_PAGE_SIZE", 10)


# ------------------------------------ input ------------------------------------

class OrderLineInputSerializer(serializers.Serializer):
    """One requested line: product id, quantity >= 1 and unit price >= 0.01."""

    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0.01")
    )


class OrderCreateSerializer(serializers.Serializer):
    """Input serializer for placing an order.

    The owning user is taken from the request context (None for guests) and
    handed to the lifecycle engine explicitly.
    """

    recipient_name = serializers.CharField(max_length=100)
    recipient_phone = serializers.CharField(max_length=20, validators=[mobile_phone_validator])
    recipient_address = serializers.CharField()
    delivery_date = serializers.DateField(required=False, allow_null=True)
    delivery_time = serializers.TimeField(required=False, allow_null=True)
    card_content = serializers.CharField(required=False, allow_blank=True, default="")
    card_sender = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    payment_method = serializers.ChoiceField(
        choices=Order.PaymentMethod.choices, default=Order.PaymentMethod.ON_DELIVERY
    )
    items = OrderLineInputSerializer(many=True, allow_empty=False)

    def validate(self, attrs):
        """Delivery date and time come as a pair or not at all."""
        has_date = attrs.get("delivery_date") is not None
        has_time = attrs.get("delivery_time") is not None
        if has_date != has_time:
            raise serializers.ValidationError(
                {"delivery_time": "Delivery date and time must be given together."}
            )
        return attrs

    def create(self, validated_data):
        request = self.context.get("request")
        user = getattr(request, "user", None)
        return services.create_order(user=user, **validated_data)


class OrderCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500, default="")


class OrderListParamsSerializer(serializers.Serializer):
    """Query parameters shared by the list endpoints."""

    status = serializers.ChoiceField(choices=Order.Status.choices, required=False, allow_blank=True)
    page = serializers.IntegerField(min_value=1, default=1)
    size = serializers.IntegerField(min_value=1, required=False)

    def validate_size(self, value):
        if value > _max_page_size():
            raise serializers.ValidationError(f"Must be <= {_max_page_size()}.")
        return value

    def validate(self, attrs):
        attrs.setdefault("size", _default_page_size())
        if not attrs.get("status"):
            attrs["status"] = None
        return attrs


class OrderPhoneParamsSerializer(OrderListParamsSerializer):
    phone = serializers.CharField(max_length=20)


class OrderSearchParamsSerializer(OrderListParamsSerializer):
    keyword = serializers.CharField(required=False, allow_blank=True, default="")
    start_date = serializers.DateField(required=False, allow_null=True, default=None)
    end_date = serializers.DateField(required=False, allow_null=True, default=None)
    sort_by = serializers.ChoiceField(choices=queries.SORTABLE_FIELDS, default=queries.DEFAULT_SORT_BY)
    sort_order = serializers.ChoiceField(choices=queries.SORT_ORDERS, default=queries.DEFAULT_SORT_ORDER)

    def validate(self, attrs):
        attrs = super().validate(attrs)
        start, end = attrs.get("start_date"), attrs.get("end_date")
        if start and end and start > end:
            raise serializers.ValidationError({"end_date": "Must not be before start_date."})
        return attrs


# ------------------------------------ output ------------------------------------

class OrderItemOutputSerializer(serializers.ModelSerializer):
    """Line item as stored at order time."""

    product_id = serializers.IntegerField(read_only=True)
    product_name = serializers.CharField(source="product_snapshot_name", read_only=True)

    class Meta:
        model = OrderItem
        fields = ["id", "product_id", "product_name", "unit_price", "quantity", "subtotal", "created_at"]


class OrderListSerializer(serializers.ModelSerializer):
    """Compact order row for list endpoints; `item_count` is annotated by the query."""

    user = serializers.IntegerField(source="user_id", read_only=True, allow_null=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    payment_method_display = serializers.CharField(source="get_payment_method_display", read_only=True)
    payment_status_display = serializers.CharField(source="get_payment_status_display", read_only=True)
    item_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_no",
            "user",
            "customer_name",
            "customer_phone",
            "total_amount",
            "delivery_fee",
            "final_amount",
            "status",
            "status_display",
            "payment_method",
            "payment_method_display",
            "payment_status",
            "payment_status_display",
            "item_count",
            "delivery_time",
            "created_at",
            "updated_at",
        ]


class OrderOutputSerializer(OrderListSerializer):
    """Full order representation including line items."""

    items = OrderItemOutputSerializer(many=True, read_only=True)
    item_count = serializers.SerializerMethodField()
    allowed_actions = serializers.ListField(child=serializers.CharField(), read_only=True)

    class Meta(OrderListSerializer.Meta):
        fields = [
            f for f in OrderListSerializer.Meta.fields if f != "item_count"
        ] + [
            "item_count",
            "delivery_address",
            "notes",
            "card_content",
            "card_sender",
            "allowed_actions",
            "items",
        ]

    def get_item_count(self, obj):
        return len(obj.items.all())
