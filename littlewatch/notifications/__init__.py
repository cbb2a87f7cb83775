"""Alert inbox and push-token registration."""

from littlewatch.notifications.inbox import NotificationInbox, register_push_token

__all__ = ["NotificationInbox", "register_push_token"]
