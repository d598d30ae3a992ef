"""Order lifecycle exceptions"""

from typing import Optional


class OrderError(Exception):
    """Base class for errors surfaced to the order-lifecycle caller"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(OrderError):
    """Malformed or out-of-range input, rejected before any write"""

    status_code = 422


class ProductUnavailable(OrderError):
    """A cart line references a product that is currently disabled"""

    status_code = 422

    def __init__(self, product_name: str):
        super().__init__(
            f"Sorry, {product_name} is currently unavailable. "
            "Please remove it from your cart and try again."
        )
        self.product_name = product_name


class InvalidTransition(OrderError):
    status_code = 422

    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot transition from {current} to {requested}")
        self.current = current
        self.requested = requested


class OrderNotFound(OrderError):
    status_code = 404

    def __init__(self, reference: str):
        super().__init__("Order not found")
        self.reference = reference


class CodeGenerationExhausted(OrderError):
    """No free order code was found within the configured attempts"""

    status_code = 500

    def __init__(self, attempts: int):
        super().__init__(f"Could not generate a unique order code after {attempts} attempts")
        self.attempts = attempts


class DeliveryFailure(Exception):
    """A single push endpoint could not be reached.

    Raised by per-endpoint senders and always handled by the dispatcher that
    owns them; ``permanent`` marks endpoints that should be pruned.
    """

    def __init__(self, endpoint: str, reason: str, permanent: bool = False, status_code: Optional[int] = None):
        super().__init__(reason)
        self.endpoint = endpoint
        self.reason = reason
        self.permanent = permanent
        self.status_code = status_code
