"""Orders API views.

Place orders and list the caller's own orders on the same endpoint, look up
orders by contact phone, let staff search all orders, fetch a single order
with its items, and drive the fulfillment lifecycle (confirm, deliver,
complete, cancel). Business rules live in `orders.services` and
`orders.queries`; the views only validate input and shape responses.
"""

from rest_framework import generics, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from orders import queries, services
from orders.models import Order
from .permissions import CanViewOrder, IsAdminStaff, IsStaffOrOrderOwner
from .serializers import (
    OrderCancelSerializer,
    OrderCreateSerializer,
    OrderListParamsSerializer,
    OrderListSerializer,
    OrderOutputSerializer,
    OrderPhoneParamsSerializer,
    OrderSearchParamsSerializer,
)


# ----------------------------- helpers (module-level) -----------------------------

def _validated_params(serializer_class, request):
    """Validate query parameters; raises ValidationError (400) on bad input."""
    ser = serializer_class(data=request.query_params)
    ser.is_valid(raise_exception=True)
    return ser.validated_data


def _page_response(page):
    return Response(
        {
            "count": page.total,
            "page": page.page,
            "size": page.size,
            "pages": page.pages,
            "results": OrderListSerializer(page.records, many=True).data,
        },
        status=status.HTTP_200_OK,
    )


def _detail_response(order_id, status_code=status.HTTP_200_OK):
    order = queries.get_order_detail(order_id)
    return Response(OrderOutputSerializer(order).data, status=status_code)


# --------------------------------------- views ---------------------------------------

class OrderListCreateAPIView(generics.ListCreateAPIView):
    """GET: paginated orders of the authenticated user (optional status filter).
    POST: place an order; anonymous callers create guest orders.
    """

    queryset = Order.objects.all()

    def get_permissions(self):
        """Anyone may order; listing needs an account."""
        if self.request.method == "POST":
            return [AllowAny()]
        return [IsAuthenticated()]

    def get_serializer_class(self):
        return OrderListSerializer if self.request.method == "GET" else OrderCreateSerializer

    # --- GET ---
    def list(self, request, *args, **kwargs):
        params = _validated_params(OrderListParamsSerializer, request)
        page = queries.orders_for_user(
            request.user.id, status=params["status"], page=params["page"], size=params["size"]
        )
        return _page_response(page)

    # --- POST ---
    def create(self, request, *args, **kwargs):
        """Validate and place the order, returning it with its line items."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = serializer.save()
        return _detail_response(order.pk, status.HTTP_201_CREATED)


class OrderPhoneLookupAPIView(generics.GenericAPIView):
    """GET /api/orders/by-phone/?phone=... -> orders placed with that phone."""

    permission_classes = [AllowAny]

    def get(self, request):
        params = _validated_params(OrderPhoneParamsSerializer, request)
        page = queries.orders_for_phone(
            params["phone"], status=params["status"], page=params["page"], size=params["size"]
        )
        return _page_response(page)


class OrderSearchAPIView(generics.GenericAPIView):
    """GET /api/orders/search/ -> staff search with filters, sorting and paging."""

    permission_classes = [IsAdminStaff]

    def get(self, request):
        params = _validated_params(OrderSearchParamsSerializer, request)
        page = queries.search_orders(
            keyword=params["keyword"],
            status=params["status"],
            start_date=params["start_date"],
            end_date=params["end_date"],
            page=params["page"],
            size=params["size"],
            sort_by=params["sort_by"],
            sort_order=params["sort_order"],
        )
        return _page_response(page)


class OrderDetailAPIView(generics.RetrieveAPIView):
    """GET /api/orders/{id}/ -> order with its line items."""

    serializer_class = OrderOutputSerializer
    permission_classes = [CanViewOrder]

    def get_object(self):
        order = queries.get_order_detail(self.kwargs["pk"])
        self.check_object_permissions(self.request, order)
        return order


class OrderTransitionAPIView(generics.GenericAPIView):
    """PUT on a lifecycle action route; staff only.

    Subclasses set `transition` to the lifecycle engine function to run.
    """

    permission_classes = [IsAdminStaff]
    transition = None

    def put(self, request, pk):
        order = self.transition(pk)
        return _detail_response(order.pk)


class OrderConfirmAPIView(OrderTransitionAPIView):
    """PENDING -> PREPARING."""

    transition = staticmethod(services.confirm_order)


class OrderStartDeliveryAPIView(OrderTransitionAPIView):
    """PREPARING -> DELIVERING."""

    transition = staticmethod(services.start_delivery)


class OrderCompleteAPIView(OrderTransitionAPIView):
    """DELIVERING -> COMPLETED and payment marked as paid."""

    transition = staticmethod(services.complete_order)


class OrderCancelAPIView(generics.GenericAPIView):
    """PUT /api/orders/{id}/cancel/ with optional {"reason": "..."}.

    Staff may cancel any order, customers only their own. Stock of every line
    is restored.
    """

    permission_classes = [IsStaffOrOrderOwner]

    def put(self, request, pk):
        order = queries.get_order_detail(pk)
        self.check_object_permissions(request, order)
        ser = OrderCancelSerializer(data=request.data or {})
        ser.is_valid(raise_exception=True)
        services.cancel_order(order.pk, reason=ser.validated_data["reason"])
        return _detail_response(order.pk)
