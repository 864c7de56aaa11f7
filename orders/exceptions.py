"""Order-specific error kinds, rendered by DRF with their status codes."""

from rest_framework.exceptions import NotFound

from common.exceptions import Conflict


class OrderNotFound(NotFound):
    default_detail = "Order not found."
    default_code = "order_not_found"

    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found.")


class InvalidStateTransition(Conflict):
    """The requested action is not allowed from the order's current status.

    The response body carries the current status so the caller can decide
    whether to retry or abandon.
    """

    default_detail = "This action is not allowed in the order's current status."
    default_code = "invalid_state_transition"

    def __init__(self, action, current_status):
        self.action = action
        self.current_status = current_status
        super().__init__(
            {
                "detail": f"Cannot {action} an order in status {current_status}.",
                "action": action,
                "current_status": current_status,
            }
        )


class OrderNumberConflict(Conflict):
    default_detail = "Could not allocate a unique order number, please retry."
    default_code = "order_number_conflict"
