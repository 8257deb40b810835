"""Order service — the application-facing entry point for checkout and order queries.

Constructed once at process start with the notification sender to use. Every
operation that moves stock holds the stock locks of the products involved
while its command is processed, and retries a bounded number of times when
it loses a race for them.
"""

import json
import math
import os
import time
from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.errors import ConcurrencyConflict
from ordering.inventory.locks import stock_locks
from ordering.notifications.dispatch import NotificationDispatcher
from ordering.order.cancellation import CancelOrder
from ordering.order.creation import PlaceOrder
from ordering.order.lifecycle import RecordPayment, TransitionOrderStatus, UpdateAdminNotes
from ordering.order.order import Order, OrderStatus, PaymentMethod

logger = structlog.get_logger(__name__)

# Progress milestones shown to customers, in order
_MILESTONES = [
    (OrderStatus.PENDING, "Order placed successfully"),
    (OrderStatus.CONFIRMED, "Order confirmed"),
    (OrderStatus.PREPARING, "Order is being prepared"),
    (OrderStatus.SHIPPED, "Order shipped"),
    (OrderStatus.DELIVERED, "Order delivered"),
]
_PROGRESS = [status for status, _ in _MILESTONES]


@dataclass(frozen=True)
class CheckoutSettings:
    max_attempts: int = 3
    retry_backoff: float = 0.05

    @classmethod
    def from_env(cls) -> "CheckoutSettings":
        return cls(
            max_attempts=max(1, int(os.environ.get("CHECKOUT_MAX_ATTEMPTS", cls.max_attempts))),
            retry_backoff=float(os.environ.get("CHECKOUT_RETRY_BACKOFF", cls.retry_backoff)),
        )


def _pagination(page, limit, total) -> dict:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "current_page": page,
        "total_pages": total_pages,
        "total_orders": total,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }


class OrderService:
    def __init__(self, notifier, settings: CheckoutSettings | None = None, executor=None):
        self.settings = settings or CheckoutSettings.from_env()
        self.dispatcher = NotificationDispatcher(notifier, executor=executor)

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _orders(self):
        return current_domain.repository_for(Order)

    def _run_locked(self, action, product_ids_fn, **log_context):
        """Run ``action`` holding the locks named by ``product_ids_fn()``.

        The product ids are re-read on every attempt. A ``ConcurrencyConflict``
        is retried until ``max_attempts`` is exhausted, then re-raised.
        """
        attempts = self.settings.max_attempts
        for attempt in range(1, attempts + 1):
            try:
                with stock_locks.hold(product_ids_fn()):
                    return action()
            except ConcurrencyConflict as exc:
                if attempt >= attempts:
                    logger.warning(
                        "Concurrency conflict, giving up",
                        attempts=attempt,
                        reason=exc.reason,
                        **log_context,
                    )
                    raise
                logger.info(
                    "Concurrency conflict, retrying",
                    attempt=attempt,
                    reason=exc.reason,
                    **log_context,
                )
                time.sleep(self.settings.retry_backoff * attempt)

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    def create_order(
        self,
        user_id,
        shipping_address: dict,
        payment_method=PaymentMethod.COD.value,
        notes=None,
        coupon_code=None,
        customer_email=None,
        discount=0.0,
    ) -> Order:
        """Turn the customer's cart into a pending order.

        ``discount`` is an amount already resolved from ``coupon_code`` by the
        caller; it is subtracted from the computed total before the order is saved.
        """
        user_id = str(user_id)
        command = PlaceOrder(
            customer_id=user_id,
            shipping_address=json.dumps(shipping_address),
            payment_method=payment_method or PaymentMethod.COD.value,
            notes=notes,
            coupon_code=coupon_code,
            discount=discount or 0.0,
        )

        def cart_product_ids():
            cart = current_domain.repository_for(ShoppingCart).for_customer(user_id)
            return cart.product_ids() if cart else []

        try:
            reference = self._run_locked(
                lambda: current_domain.process(command, asynchronous=False),
                cart_product_ids,
                customer_id=user_id,
            )
        except Exception as exc:
            logger.info("Checkout aborted", customer_id=user_id, error=type(exc).__name__)
            raise

        order = self._orders().get_by_reference(reference)
        logger.info(
            "Order placed",
            order_reference=order.reference,
            customer_id=user_id,
            items=order.total_items,
            total=order.pricing.total,
        )

        user = {
            "id": user_id,
            "name": order.shipping_address.full_name,
            "email": customer_email,
        }
        self.dispatcher.order_created(order, user)
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get_order(self, reference, user_id=None) -> Order:
        return self._orders().get_by_reference(reference, customer_id=user_id)

    def list_orders(self, user_id, page=1, limit=10) -> dict:
        orders, total = self._orders().find_for_customer(user_id, page=page, limit=limit)
        return {"orders": orders, "pagination": _pagination(page, limit, total)}

    def list_all_orders(self, page=1, limit=10, status=None) -> dict:
        orders, total = self._orders().find_all(page=page, limit=limit, status=status)
        return {"orders": orders, "pagination": _pagination(page, limit, total)}

    def track_order(self, reference, user_id) -> dict:
        order = self.get_order(reference, user_id=user_id)
        updates = order.timeline()
        current = OrderStatus(order.status)

        def first_update(status):
            return next((u.timestamp for u in updates if u.status == status.value), None)

        timeline = []
        for status, message in _MILESTONES:
            if status == OrderStatus.PENDING:
                timestamp = order.created_at
                completed = True
            else:
                timestamp = order.delivered_at if status == OrderStatus.DELIVERED else first_update(status)
                completed = current in _PROGRESS and _PROGRESS.index(current) >= _PROGRESS.index(status)
            timeline.append(
                {
                    "status": status.value,
                    "message": message,
                    "timestamp": timestamp,
                    "completed": completed,
                }
            )

        return {
            "reference": order.reference,
            "current_status": order.status,
            "timeline": timeline,
            "updates": [
                {
                    "status": u.status,
                    "message": u.message,
                    "timestamp": u.timestamp,
                    "location": u.location,
                }
                for u in updates
            ],
        }

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def cancel_order(self, reference, user_id, reason="") -> Order:
        """Customer cancellation; restores the stock of every line item."""
        order = self.get_order(reference, user_id=user_id)
        product_ids = [str(item.product_id) for item in order.items]

        self._run_locked(
            lambda: current_domain.process(
                CancelOrder(reference=reference, customer_id=str(user_id), reason=reason),
                asynchronous=False,
            ),
            lambda: product_ids,
            order_reference=reference,
        )

        order = self._orders().get_by_reference(reference)
        logger.info("Order cancelled", order_reference=reference, customer_id=str(user_id), reason=reason)
        return order

    def transition_status(self, reference, new_status, message=None, location=None) -> Order:
        """Administrative status change. Cancelling this way also restores stock."""
        order = self._orders().get_by_reference(reference)
        previous_status = order.status
        product_ids = (
            [str(item.product_id) for item in order.items] if new_status == OrderStatus.CANCELLED.value else []
        )

        self._run_locked(
            lambda: current_domain.process(
                TransitionOrderStatus(
                    reference=reference,
                    new_status=new_status,
                    message=message,
                    location=location,
                ),
                asynchronous=False,
            ),
            lambda: product_ids,
            order_reference=reference,
        )

        order = self._orders().get_by_reference(reference)
        logger.info(
            "Order status changed",
            order_reference=reference,
            from_status=previous_status,
            to_status=order.status,
        )
        return order

    def record_payment(
        self,
        reference,
        payment_status,
        transaction_id=None,
        gateway_order_id=None,
        gateway_payment_id=None,
    ) -> Order:
        current_domain.process(
            RecordPayment(
                reference=reference,
                payment_status=payment_status,
                transaction_id=transaction_id,
                gateway_order_id=gateway_order_id,
                gateway_payment_id=gateway_payment_id,
            ),
            asynchronous=False,
        )
        order = self._orders().get_by_reference(reference)
        logger.info("Payment recorded", order_reference=reference, payment_status=payment_status)
        return order

    def update_admin_notes(self, reference, admin_notes) -> Order:
        current_domain.process(
            UpdateAdminNotes(reference=reference, admin_notes=admin_notes),
            asynchronous=False,
        )
        return self._orders().get_by_reference(reference)

    def shutdown(self, wait: bool = True):
        self.dispatcher.shutdown(wait=wait)
