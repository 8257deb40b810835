"""Error taxonomy for checkout and order lifecycle.

Client-correctable conditions extend Protean's ``ValidationError`` and missing
records extend ``ObjectNotFoundError``, so they surface through the same
exception handlers as the framework's own errors. Every error carries a
``messages`` dict keyed by the offending field.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError


class EmptyCart(ValidationError):
    def __init__(self, customer_id):
        self.customer_id = str(customer_id)
        super().__init__({"cart": ["Your cart is empty. Please add items before placing an order."]})


class InsufficientStock(ValidationError):
    """Raised when a reservation asks for more units than are in stock."""

    def __init__(self, product_name, available, requested, product_id=None):
        self.product_id = str(product_id) if product_id is not None else None
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(
            {
                "stock": [
                    f"Insufficient stock for {product_name}. Available: {available}, Requested: {requested}",
                ]
            }
        )


class IllegalTransition(ValidationError):
    def __init__(self, from_status, to_status):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__({"status": [f"Cannot change status from {from_status} to {to_status}"]})


class OrderNotCancellable(ValidationError):
    def __init__(self, current_status):
        self.current_status = current_status
        super().__init__({"status": [f"Order cannot be cancelled at this stage ({current_status})"]})


class ProductNotFound(ObjectNotFoundError):
    def __init__(self, product_id):
        self.product_id = str(product_id)
        super().__init__(f"Product {product_id} not found")
        # ObjectNotFoundError carries no field messages of its own
        self.messages = {"product_id": [f"Product {product_id} not found"]}


class OrderNotFound(ObjectNotFoundError):
    def __init__(self, reference):
        self.reference = reference
        super().__init__(f"Order {reference} not found")
        self.messages = {"order": ["Order not found"]}


class OrderingError(Exception):
    """Base for ordering failures that are not field validation errors."""


class ConcurrencyConflict(OrderingError):
    """Another transaction holds, or changed, the stock this one needs.

    Always safe to retry: nothing was committed by the failed attempt.
    """

    retryable = True

    def __init__(self, reason, product_ids=None):
        self.reason = reason
        self.product_ids = list(product_ids or [])
        self.messages = {"_concurrency": [reason]}
        super().__init__(reason)
