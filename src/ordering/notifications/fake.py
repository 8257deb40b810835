"""Fake notification adapters — record messages in memory for tests and local runs."""

from uuid import uuid4

from ordering.notifications.port import EmailPort, NotificationSender


class FakeEmailAdapter(EmailPort):
    def __init__(self):
        self.sent_emails: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Email delivery failed"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def send(self, to, subject, body, html_body=None) -> dict:
        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        message_id = f"email-{uuid4().hex[:12]}"
        self.sent_emails.append(
            {
                "message_id": message_id,
                "to": to,
                "subject": subject,
                "body": body,
                "html_body": html_body,
            }
        )
        return {"message_id": message_id, "status": "sent"}


class FakeNotificationSender(NotificationSender):
    """Records every confirmation it is asked to send.

    ``configure(should_succeed=False)`` makes it report a failed delivery;
    ``configure(raise_error=...)`` makes it raise instead.
    """

    def __init__(self):
        self.sent: list[dict] = []
        self.should_succeed = True
        self.raise_error: Exception | None = None

    def configure(self, should_succeed: bool = True, raise_error: Exception | None = None):
        self.should_succeed = should_succeed
        self.raise_error = raise_error

    def send_order_confirmation(self, order, user: dict) -> dict:
        if self.raise_error is not None:
            raise self.raise_error
        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": "Notification delivery failed"}

        message_id = f"notification-{uuid4().hex[:12]}"
        self.sent.append(
            {
                "message_id": message_id,
                "reference": order.reference,
                "customer_id": str(order.customer_id),
                "user": dict(user),
            }
        )
        return {"message_id": message_id, "status": "sent"}

    def reset(self):
        self.sent.clear()
        self.should_succeed = True
        self.raise_error = None
