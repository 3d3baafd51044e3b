"""
Domain exceptions.

Each carries the HTTP status the API layer answers with; the FastAPI
exception handler in ``food_ordering.main`` does the mapping.
"""

__all__ = [
    "OrderingError",
    "NotAuthenticatedError",
    "RestaurantNotFoundError",
    "MenuItemNotFoundError",
    "InvalidQuantityError",
    "OrderNotFoundError",
    "OrderForbiddenError",
    "InvalidOrderStateError",
    "PaymentProviderError",
    "WebhookSignatureError",
]


class OrderingError(Exception):
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotAuthenticatedError(OrderingError):
    status_code = 401
    default_message = "Not authenticated"


# Validation errors
class RestaurantNotFoundError(OrderingError):
    status_code = 404
    default_message = "Restaurant not found"


class MenuItemNotFoundError(OrderingError):
    status_code = 400

    def __init__(self, menu_item_id):
        self.menu_item_id = menu_item_id
        super().__init__(f"Menu item not found: {menu_item_id}")


class InvalidQuantityError(OrderingError):
    status_code = 400

    def __init__(self, quantity):
        self.quantity = quantity
        super().__init__(f"Invalid quantity: {quantity!r}")


class OrderNotFoundError(OrderingError):
    status_code = 404
    default_message = "Order not found"


# Authorization errors
class OrderForbiddenError(OrderingError):
    status_code = 403
    default_message = "Unauthorized to modify this order"


# State errors
class InvalidOrderStateError(OrderingError):
    status_code = 400
    default_message = "Order cannot be changed in its current state"


# Integration errors
class PaymentProviderError(OrderingError):
    status_code = 502
    default_message = "Error creating payment session"


class WebhookSignatureError(OrderingError):
    status_code = 400
    default_message = "Webhook signature verification failed"
