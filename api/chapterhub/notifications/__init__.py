"""Notifications about activity on a reader's comments.

Note: Router is imported directly in main.py to avoid circular imports.
"""

from chapterhub.notifications.models import (
    NOTIFICATIONS_TABLES_CQL,
    Notification,
    NotificationType,
)
from chapterhub.notifications.service import NotificationService


__all__ = [
    "NOTIFICATIONS_TABLES_CQL",
    "Notification",
    "NotificationService",
    "NotificationType",
]
