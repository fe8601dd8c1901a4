"""Notification system for user-visible messages."""

from app.events.notifications import (
    Notification,
    NotificationBus,
    NotificationCategory,
    NotificationLevel,
    get_notification_bus,
    notify,
)

__all__ = [
    "Notification",
    "NotificationBus",
    "NotificationCategory",
    "NotificationLevel",
    "get_notification_bus",
    "notify",
]
