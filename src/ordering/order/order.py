"""Order aggregate — the core of the ordering domain.

An order is a priced snapshot of a cart, created once by the checkout
transaction and then moved through a small status state machine:

    pending → confirmed → preparing → shipped → delivered → refunded
    pending / confirmed / preparing / shipped → cancelled

``cancelled`` and ``refunded`` are terminal. Every successful transition
appends an entry to the order's tracking history, which is never edited.
Line items, prices and the shipping address never change after creation.
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.domain import ordering
from ordering.errors import IllegalTransition, OrderNotCancellable
from ordering.order.events import (
    OrderCancelled,
    OrderPlaced,
    OrderRefunded,
    OrderStatusChanged,
    PaymentRecorded,
)
from ordering.pricing import TOTAL_TOLERANCE, round_money

RETURN_WINDOW = timedelta(days=7)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    COD = "cod"
    CARD = "card"
    UPI = "upi"
    RAZORPAY = "razorpay"


class PaymentStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.REFUNDED: set(),  # Terminal
}

# Customers may only cancel before the order is being prepared
_CUSTOMER_CANCELLABLE_STATES = {OrderStatus.PENDING, OrderStatus.CONFIRMED}

STATUS_MESSAGES = {
    OrderStatus.PENDING: "Order placed successfully",
    OrderStatus.CONFIRMED: "Order confirmed and being processed",
    OrderStatus.PREPARING: "Order is being prepared for shipment",
    OrderStatus.SHIPPED: "Order has been shipped",
    OrderStatus.DELIVERED: "Order delivered successfully",
    OrderStatus.CANCELLED: "Order has been cancelled",
    OrderStatus.REFUNDED: "Order has been refunded",
}


def allowed_transitions(status) -> set[str]:
    return {target.value for target in _VALID_TRANSITIONS[OrderStatus(status)]}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class ShippingAddress:
    """Where the order ships to, captured at checkout and never edited."""

    full_name = String(required=True, max_length=255)
    address = String(required=True, max_length=500)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    pincode = String(required=True, max_length=20)
    phone = String(required=True, max_length=20)


@ordering.value_object(part_of="Order")
class OrderPricing:
    """Financial summary of an order, fixed at checkout.

    ``total`` always equals subtotal + shipping + tax - discount (to the cent).
    """

    subtotal = Float(default=0.0)
    shipping = Float(default=0.0)
    tax = Float(default=0.0)
    discount = Float(default=0.0)
    total = Float(default=0.0)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A purchased line, snapshotting the product's name, price and image."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    image = String(max_length=500, default="")


@ordering.entity(part_of="Order")
class TrackingUpdate:
    sequence = Integer(required=True)
    status = String(required=True, max_length=20)
    message = String(max_length=500)
    timestamp = DateTime(required=True)
    location = String(max_length=255, default="")


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    reference = String(required=True, max_length=32)
    customer_id = Identifier(required=True)
    status = String(
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    items = HasMany(OrderItem)
    pricing = ValueObject(OrderPricing)
    shipping_address = ValueObject(ShippingAddress)

    # Payment sub-record
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.COD.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    transaction_id = String(max_length=255)
    gateway_order_id = String(max_length=255)
    gateway_payment_id = String(max_length=255)
    paid_at = DateTime()

    tracking = HasMany(TrackingUpdate)

    cancel_reason = String(max_length=500)
    admin_notes = Text()
    notes = Text()
    coupon_code = String(max_length=100)
    refund_amount = Float()
    delivered_at = DateTime()
    cancelled_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_match_components(self):
        if self.pricing is None:
            return
        p = self.pricing
        expected = p.subtotal + p.shipping + p.tax - p.discount
        if abs(p.total - expected) > TOTAL_TOLERANCE:
            raise ValidationError({"pricing": ["Order total does not match subtotal + shipping + tax - discount"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        reference,
        customer_id,
        items,
        pricing,
        shipping_address,
        payment_method=PaymentMethod.COD.value,
        notes=None,
        coupon_code=None,
    ):
        """Create a pending order from checkout data.

        Args:
            reference: Unique human-readable order reference.
            customer_id: The customer placing the order.
            items: List of dicts with product_id, name, unit_price, quantity, image.
            pricing: A ``PricingBreakdown`` (or dict with the same keys).
            shipping_address: Dict with full_name, address, city, state, pincode, phone.
        """
        now = datetime.now(UTC)
        if not isinstance(pricing, dict):
            pricing = pricing.to_dict()

        order = cls(
            reference=reference,
            customer_id=str(customer_id),
            status=OrderStatus.PENDING.value,
            pricing=OrderPricing(**pricing),
            shipping_address=ShippingAddress(**shipping_address),
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING.value,
            notes=notes,
            coupon_code=coupon_code,
            created_at=now,
            updated_at=now,
        )
        for item in items:
            order.add_items(
                OrderItem(
                    product_id=str(item["product_id"]),
                    name=item["name"],
                    unit_price=item["unit_price"],
                    quantity=item["quantity"],
                    image=item.get("image") or "",
                )
            )
        order._track(OrderStatus.PENDING.value, STATUS_MESSAGES[OrderStatus.PENDING], "", now)

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                reference=reference,
                customer_id=str(customer_id),
                item_count=order.total_items,
                total=order.pricing.total,
                payment_method=payment_method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Derived (computed at read time, never stored)
    # -------------------------------------------------------------------
    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def is_cancellable(self) -> bool:
        return OrderStatus(self.status) in _CUSTOMER_CANCELLABLE_STATES

    def is_returnable(self, now=None) -> bool:
        if OrderStatus(self.status) != OrderStatus.DELIVERED:
            return False
        delivered = self.delivered_at or self.updated_at
        if delivered is None:
            return False
        now = now or datetime.now(UTC)
        return now <= delivered + RETURN_WINDOW

    def calculate_refund(self) -> float:
        """Total paid, less shipping once the order has left the warehouse."""
        amount = self.pricing.total
        if OrderStatus(self.status) in (OrderStatus.SHIPPED, OrderStatus.DELIVERED):
            amount -= self.pricing.shipping
        return round_money(amount)

    def timeline(self) -> list:
        """Tracking updates in the order they were appended."""
        return sorted(self.tracking, key=lambda update: update.sequence)

    # -------------------------------------------------------------------
    # Tracking helper
    # -------------------------------------------------------------------
    def _track(self, status, message, location, timestamp):
        sequence = max((update.sequence for update in self.tracking), default=0) + 1
        self.add_tracking(
            TrackingUpdate(
                sequence=sequence,
                status=status,
                message=message,
                timestamp=timestamp,
                location=location or "",
            )
        )

    # -------------------------------------------------------------------
    # Lifecycle transitions
    # -------------------------------------------------------------------
    def transition(self, new_status, message=None, location=None):
        """Move the order to ``new_status``.

        Raises ``IllegalTransition`` (leaving the order untouched) when the
        state machine does not allow the move.
        """
        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise ValidationError({"status": [f"Invalid status: {new_status}"]}) from None

        current = OrderStatus(self.status)
        if target not in _VALID_TRANSITIONS[current]:
            raise IllegalTransition(current.value, target.value)

        now = datetime.now(UTC)

        if target == OrderStatus.REFUNDED:
            # Refund is computed against the delivered state
            self.refund_amount = self.calculate_refund()
            if self.payment_status == PaymentStatus.COMPLETED.value:
                self.payment_status = PaymentStatus.REFUNDED.value

        self.status = target.value
        if target == OrderStatus.DELIVERED:
            self.delivered_at = now
        elif target == OrderStatus.CANCELLED:
            self.cancelled_at = now

        message = message or STATUS_MESSAGES[target]
        self._track(target.value, message, location, now)
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                reference=self.reference,
                from_status=current.value,
                to_status=target.value,
                message=message,
                changed_at=now,
            )
        )
        if target == OrderStatus.REFUNDED:
            self.raise_(
                OrderRefunded(
                    order_id=str(self.id),
                    reference=self.reference,
                    refund_amount=self.refund_amount,
                    refunded_at=now,
                )
            )

    def cancel(self, reason=""):
        """Customer cancellation, allowed only while pending or confirmed."""
        if not self.is_cancellable:
            raise OrderNotCancellable(self.status)

        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancel_reason = reason
        self.cancelled_at = now
        self._track(
            OrderStatus.CANCELLED.value,
            f"Order cancelled by customer. Reason: {reason}",
            "",
            now,
        )
        self.updated_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                reference=self.reference,
                customer_id=str(self.customer_id),
                reason=reason,
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Payment and admin bookkeeping
    # -------------------------------------------------------------------
    def record_payment(
        self,
        payment_status,
        transaction_id=None,
        gateway_order_id=None,
        gateway_payment_id=None,
    ):
        if payment_status not in (PaymentStatus.COMPLETED.value, PaymentStatus.FAILED.value):
            raise ValidationError({"payment_status": ["Payment status must be completed or failed"]})
        if self.payment_status in (PaymentStatus.COMPLETED.value, PaymentStatus.REFUNDED.value):
            raise ValidationError({"payment_status": [f"Payment already {self.payment_status}"]})

        now = datetime.now(UTC)
        self.payment_status = payment_status
        self.transaction_id = transaction_id or self.transaction_id
        self.gateway_order_id = gateway_order_id or self.gateway_order_id
        self.gateway_payment_id = gateway_payment_id or self.gateway_payment_id
        if payment_status == PaymentStatus.COMPLETED.value:
            self.paid_at = now
        self.updated_at = now

        self.raise_(
            PaymentRecorded(
                order_id=str(self.id),
                reference=self.reference,
                payment_status=payment_status,
                transaction_id=transaction_id,
                recorded_at=now,
            )
        )

    def update_admin_notes(self, admin_notes):
        self.admin_notes = admin_notes
        self.updated_at = datetime.now(UTC)
