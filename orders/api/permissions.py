"""Orders API permissions.

Staff run the fulfillment lifecycle; customers may read and cancel their own
orders. Guests have no account, so they identify an order by the contact
phone it was placed with.
"""

from rest_framework.permissions import BasePermission


def _is_staff(user):
    return bool(user and user.is_authenticated and user.is_staff)


def _is_owner(user, order):
    return bool(
        user and user.is_authenticated and order.user_id is not None and order.user_id == user.id
    )


class IsAdminStaff(BasePermission):
    """Allows access only to authenticated staff (admin) users."""

    message = "Only staff users may manage orders."

    def has_permission(self, request, view):
        return _is_staff(request.user)


class CanViewOrder(BasePermission):
    """Staff, the owning user, or a caller presenting the order's phone number."""

    message = "You may not view this order."

    def has_object_permission(self, request, view, obj):
        if _is_staff(request.user) or _is_owner(request.user, obj):
            return True
        phone = request.query_params.get("phone")
        return bool(phone) and phone == obj.customer_phone


class IsStaffOrOrderOwner(BasePermission):
    """Allows the action for staff or the registered owner of the order."""

    message = "Only staff or the customer who placed this order may do this."

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        return _is_staff(request.user) or _is_owner(request.user, obj)
