from typing import Optional


class CheckoutError(Exception):
    """Base for checkout outcomes other than a confirmed order.

    `message` is safe to return to the caller as-is.
    """

    status_code = 500
    message = "Internal error"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class CartValidationError(CheckoutError):
    status_code = 400
    message = "Invalid cart item"


class PaymentFailedError(CheckoutError):
    # Covers both a declined charge and unavailable inventory.
    status_code = 402
    message = "Payment failed"


class InternalCheckoutError(CheckoutError):
    status_code = 500
    message = "Internal error"


class UnknownProviderError(ValueError):
    pass
