"""Notification ports (abstract interfaces).

The order service only knows ``NotificationSender``; how a confirmation
actually reaches the customer is the adapter's business. ``EmailPort`` is the
transport an email-backed sender writes to.
"""

from abc import ABC, abstractmethod


class NotificationSender(ABC):
    """Abstract customer notification interface."""

    @abstractmethod
    def send_order_confirmation(self, order, user: dict) -> dict:
        """Tell the customer their order was placed.

        Returns:
            dict with keys: status ("sent" or "failed"), message_id, error (optional)
        """
        ...


class EmailPort(ABC):
    """Abstract interface for email dispatch adapters."""

    @abstractmethod
    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> dict:
        """Send an email message.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
