"""
Domain errors for cart, order and payment services.

Every error carries the HTTP status it maps to, a stable machine code and
a message that is safe to show to a customer. The handler registered in
`framel.main` renders them; anything else falls through to FastAPI's
generic 500 so storage errors never leak.
"""
from typing import Any, Optional


class ShopError(Exception):
    """Base exception for all storefront service failures."""

    status_code = 400
    code = "shop_error"
    message = "Request could not be processed"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"error": self.code, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class NotFound(ShopError):
    status_code = 404
    code = "not_found"
    message = "Not found"


class EmptyCart(ShopError):
    status_code = 400
    code = "empty_cart"
    message = "Your cart is empty"


class OutOfStock(ShopError):
    status_code = 409
    code = "out_of_stock"
    message = "Not enough stock available"


class CartInvalid(ShopError):
    """Raised when cart lines no longer fit current stock. `details` lists the lines."""

    status_code = 409
    code = "cart_invalid"
    message = "Some items in your cart are no longer available in the requested quantity"


class StockConflict(ShopError):
    """Raised when another checkout consumed the stock first."""

    status_code = 409
    code = "stock_conflict"
    message = "An item in your cart just sold out, please review your cart"


class InvalidState(ShopError):
    status_code = 409
    code = "invalid_state"
    message = "Order cannot be changed in its current state"


class InvalidTransition(ShopError):
    status_code = 409
    code = "invalid_transition"
    message = "Requested status change is not allowed"


class AlreadyPaid(ShopError):
    status_code = 409
    code = "already_paid"
    message = "Order already paid"


class AmountMismatch(ShopError):
    status_code = 400
    code = "amount_mismatch"
    message = "Payment amount does not match order total"


class ProviderError(ShopError):
    """Raised when the payment provider request itself fails."""

    status_code = 502
    code = "provider_error"
    message = "Payment could not be started, please retry"
