"""Notification adapter registry.

Uses the fake sender by default; ``NOTIFICATION_ADAPTER=email`` routes
confirmations through the email sender.
"""

import os

from ordering.notifications.port import NotificationSender


def build_sender(adapter: str | None = None) -> NotificationSender:
    adapter = (adapter or os.environ.get("NOTIFICATION_ADAPTER", "fake")).lower()

    if adapter == "fake":
        from ordering.notifications.fake import FakeNotificationSender

        return FakeNotificationSender()
    if adapter == "email":
        from ordering.notifications.email_sender import EmailNotificationSender
        from ordering.notifications.fake import FakeEmailAdapter

        return EmailNotificationSender(FakeEmailAdapter())

    raise ValueError(f"Unknown notification adapter: {adapter}")
