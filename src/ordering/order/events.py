"""Domain events for the Order aggregate.

All events are versioned, immutable facts raised by the aggregate and
dispatched when the Unit of Work that persisted the change commits.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A cart was converted into a priced order with its stock reserved."""

    __version__ = 1

    order_id = Identifier(required=True)
    reference = String(required=True)
    customer_id = Identifier(required=True)
    item_count = Integer(required=True)
    total = Float(required=True)
    payment_method = String()
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    reference = String(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    message = String()
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """A customer cancelled an order before it was prepared."""

    __version__ = 1

    order_id = Identifier(required=True)
    reference = String(required=True)
    customer_id = Identifier(required=True)
    reason = String()
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderRefunded:
    __version__ = 1

    order_id = Identifier(required=True)
    reference = String(required=True)
    refund_amount = Float(required=True)
    refunded_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentRecorded:
    """The payment collaborator reported the outcome of a payment attempt."""

    __version__ = 1

    order_id = Identifier(required=True)
    reference = String(required=True)
    payment_status = String(required=True)
    transaction_id = String()
    recorded_at = DateTime(required=True)
