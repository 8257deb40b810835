"""Email-backed notification sender."""

from ordering.notifications.port import EmailPort, NotificationSender
from ordering.notifications.template import OrderConfirmationTemplate


class EmailNotificationSender(NotificationSender):
    def __init__(self, email: EmailPort, template=OrderConfirmationTemplate):
        self.email = email
        self.template = template

    def send_order_confirmation(self, order, user: dict) -> dict:
        recipient = user.get("email")
        if not recipient:
            return {"message_id": None, "status": "failed", "error": "No email address for customer"}

        rendered = self.template.render(order, user)
        return self.email.send(to=recipient, subject=rendered["subject"], body=rendered["body"])
