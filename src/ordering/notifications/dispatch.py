"""Fire-and-forget delivery of order notifications.

Notifications go out after the order has committed, on a worker thread, so a
slow or broken channel never delays or fails a checkout. Failures are logged
and dropped: there is no retry.
"""

from concurrent.futures import ThreadPoolExecutor

import structlog

from ordering.notifications.port import NotificationSender

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    def __init__(self, sender: NotificationSender, executor: ThreadPoolExecutor | None = None):
        self.sender = sender
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="notifications")

    def order_created(self, order, user: dict):
        """Queue the confirmation for ``order``. Returns the pending future."""
        return self.executor.submit(self._send_confirmation, order, user)

    def _send_confirmation(self, order, user: dict) -> dict | None:
        try:
            result = self.sender.send_order_confirmation(order, user)
        except Exception as exc:
            logger.error(
                "Order confirmation failed",
                order_reference=order.reference,
                customer_id=str(order.customer_id),
                error=str(exc),
            )
            return None

        if not result or result.get("status") != "sent":
            logger.error(
                "Order confirmation not delivered",
                order_reference=order.reference,
                customer_id=str(order.customer_id),
                error=(result or {}).get("error"),
            )
        else:
            logger.info(
                "Order confirmation sent",
                order_reference=order.reference,
                message_id=result.get("message_id"),
            )
        return result

    def shutdown(self, wait: bool = True):
        if self._owns_executor:
            self.executor.shutdown(wait=wait)
