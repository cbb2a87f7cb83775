"""Notification inbox and push-token registration.

Local state only changes after the backend reports success, so a failed
"mark read" never shows an item as read.
"""

from __future__ import annotations

import logging

from littlewatch.api.client import LittleWatchClient
from littlewatch.api.errors import AuthenticationError, LittleWatchError
from littlewatch.api.models import Notification

logger = logging.getLogger("littlewatch.notifications")


class NotificationInbox:
    """Client-side view of ``/notifications``."""

    def __init__(self, api: LittleWatchClient) -> None:
        self._api = api
        self.notifications: list[Notification] = []
        self.error: str | None = None

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.notifications if not n.read)

    async def refresh(self) -> list[Notification]:
        """Reload the list.  On failure keeps the old list and sets ``error``."""
        try:
            self.notifications = await self._api.list_notifications()
        except AuthenticationError:
            raise
        except LittleWatchError as exc:
            logger.warning("Failed to load notifications: %s", exc)
            self.error = "Failed to load notifications"
            return self.notifications
        self.error = None
        return self.notifications

    async def mark_read(self, notification_id: int | str) -> bool:
        try:
            await self._api.mark_notification_read(notification_id)
        except AuthenticationError:
            raise
        except LittleWatchError as exc:
            logger.warning("Mark as read failed for %s: %s", notification_id, exc)
            return False
        self.notifications = [
            n.model_copy(update={"read": True}) if n.id == notification_id else n
            for n in self.notifications
        ]
        return True

    async def mark_all_read(self) -> bool:
        try:
            await self._api.mark_all_notifications_read()
        except AuthenticationError:
            raise
        except LittleWatchError as exc:
            logger.warning("Mark all as read failed: %s", exc)
            return False
        self.notifications = [n.model_copy(update={"read": True}) for n in self.notifications]
        return True

    async def clear_all(self) -> bool:
        try:
            await self._api.clear_notifications()
        except AuthenticationError:
            raise
        except LittleWatchError as exc:
            logger.warning("Clear all notifications failed: %s", exc)
            return False
        self.notifications = []
        return True


async def register_push_token(api: LittleWatchClient, token: str) -> bool:
    """Send the device's push token to the backend.

    Without a session the token is kept by the caller and sent after the
    next login.  Network failures are logged, not raised.

    Returns:
        True if the backend accepted the token.
    """
    if api.session is None:
        logger.info("No session; push token will be sent after the next login")
        return False
    try:
        await api.update_fcm_token(token)
    except AuthenticationError:
        logger.info("Session rejected; push token will be sent after the next login")
        return False
    except LittleWatchError as exc:
        logger.warning("Failed to save push token: %s", exc)
        return False
    logger.info("Push token saved")
    return True
