from django.urls import path
from .views import (
    OrderCancelAPIView,
    OrderCompleteAPIView,
    OrderConfirmAPIView,
    OrderDetailAPIView,
    OrderListCreateAPIView,
    OrderPhoneLookupAPIView,
    OrderSearchAPIView,
    OrderStartDeliveryAPIView,
)

urlpatterns = [
    path("orders/", OrderListCreateAPIView.as_view(), name="order-list-create"),
    path("orders/by-phone/", OrderPhoneLookupAPIView.as_view(), name="order-by-phone"),
    path("orders/search/", OrderSearchAPIView.as_view(), name="order-search"),
    path("orders/<int:pk>/", OrderDetailAPIView.as_view(), name="order-detail"),
    path("orders/<int:pk>/confirm/", OrderConfirmAPIView.as_view(), name="order-confirm"),
    path("orders/<int:pk>/deliver/", OrderStartDeliveryAPIView.as_view(), name="order-deliver"),
    path("orders/<int:pk>/complete/", OrderCompleteAPIView.as_view(), name="order-complete"),
    path("orders/<int:pk>/cancel/", OrderCancelAPIView.as_view(), name="order-cancel"),
]
