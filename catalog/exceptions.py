from rest_framework.exceptions import NotFound

from common.exceptions import Conflict


class ProductNotFound(NotFound):
    default_detail = "Product not found."
    default_code = "product_not_found"

    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found.")


class InsufficientStock(Conflict):
    default_detail = "Not enough stock for this product."
    default_code = "insufficient_stock"

    def __init__(self, product_id, requested, available):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Product {product_id} has {available} in stock, {requested} requested."
        )
