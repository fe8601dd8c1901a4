"""Notification bus for user-visible info, warning and error messages.

Store and history operations report their outcomes here ("no more
history", "jumped to X", write failures) without depending on who, if
anyone, is listening. Hosts subscribe to surface messages in their UI.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from log_config.logger import get_logger

logger = get_logger(__name__)


class NotificationLevel(Enum):
    """Notification severity levels."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class NotificationCategory(Enum):
    """Notification categories for classification."""

    HISTORY = "history"
    STATE = "state"
    THEME = "theme"
    BOOKMARK = "bookmark"
    CONFIG = "config"


@dataclass
class Notification:
    """Notification with context information."""

    category: NotificationCategory
    level: NotificationLevel
    message: str
    source: str
    timestamp: float = field(default_factory=time.time)
    exception: Optional[Exception] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        exc_info = f" ({self.exception.__class__.__name__})" if self.exception else ""
        return f"[{self.level.value.upper()}] {self.category.value}/{self.source}: {self.message}{exc_info}"


NotificationCallback = Callable[[Notification], None]

_LOG_LEVELS = {
    NotificationLevel.INFO: "INFO",
    NotificationLevel.WARNING: "WARNING",
    NotificationLevel.ERROR: "ERROR",
}


class NotificationBus:
    """Publish-subscribe sink for notifications."""

    def __init__(self, max_history: int = 100):
        self._subscribers: Dict[NotificationCategory, List[NotificationCallback]] = {}
        self._all_subscribers: List[NotificationCallback] = []
        self._lock = threading.Lock()
        self._history: List[Notification] = []
        self._max_history = max_history
        self._counts: Dict[NotificationLevel, int] = {}

    def subscribe(
        self, callback: NotificationCallback, category: Optional[NotificationCategory] = None
    ) -> None:
        """Subscribe to notifications.

        Args:
            callback: Function to call for each notification
            category: Specific category to subscribe to, or None for all
        """
        with self._lock:
            if category is None:
                self._all_subscribers.append(callback)
            else:
                self._subscribers.setdefault(category, []).append(callback)
        callback_name = getattr(callback, "__name__", repr(callback))
        logger.debug(f"Subscribed to {category.value if category else 'all'} notifications: {callback_name}")

    def unsubscribe(
        self, callback: NotificationCallback, category: Optional[NotificationCategory] = None
    ) -> bool:
        """Unsubscribe from notifications.

        Returns:
            True if the callback was found and removed
        """
        with self._lock:
            if category is None:
                subscribers = self._all_subscribers
            else:
                subscribers = self._subscribers.get(category, [])
            if callback in subscribers:
                subscribers.remove(callback)
                return True
        return False

    def publish(self, notification: Notification) -> None:
        """Publish notification to subscribers.

        Subscribers run on the publisher's thread. A failing subscriber is
        logged and does not stop delivery to the others.
        """
        with self._lock:
            self._history.append(notification)
            if len(self._history) > self._max_history:
                self._history.pop(0)
            self._counts[notification.level] = self._counts.get(notification.level, 0) + 1

            category_subscribers = self._subscribers.get(notification.category, []).copy()
            all_subscribers = self._all_subscribers.copy()

        # Only raised exceptions carry a traceback worth printing
        if notification.exception is not None and notification.exception.__traceback__ is not None:
            logger.opt(exception=notification.exception).log(_LOG_LEVELS[notification.level], str(notification))
        else:
            logger.log(_LOG_LEVELS[notification.level], str(notification))

        # Notify subscribers outside lock to avoid deadlocks
        for callback in category_subscribers + all_subscribers:
            try:
                callback(notification)
            except Exception as e:
                callback_name = getattr(callback, "__name__", repr(callback))
                logger.error(f"Error in notification subscriber {callback_name}: {e}")

    def notify(
        self,
        category: NotificationCategory,
        level: NotificationLevel,
        message: str,
        source: str,
        exception: Optional[Exception] = None,
        **metadata: Any,
    ) -> Notification:
        """Build and publish a notification in one call."""
        notification = Notification(
            category=category,
            level=level,
            message=message,
            source=source,
            exception=exception,
            metadata=metadata,
        )
        self.publish(notification)
        return notification

    def get_history(
        self, category: Optional[NotificationCategory] = None, limit: int = 100
    ) -> List[Notification]:
        """Get recent notifications, oldest first."""
        with self._lock:
            history = self._history.copy()

        if category is not None:
            history = [n for n in history if n.category == category]

        return history[-limit:]

    def get_counts(self) -> Dict[NotificationLevel, int]:
        """Get notification counts by level."""
        with self._lock:
            return self._counts.copy()

    def clear_history(self) -> None:
        """Clear notification history and counts."""
        with self._lock:
            self._history.clear()
            self._counts.clear()


# Process-wide bus, used only when a component is not given one explicitly
_notification_bus: Optional[NotificationBus] = None
_bus_lock = threading.Lock()


def get_notification_bus() -> NotificationBus:
    """Get the process-wide notification bus."""
    global _notification_bus
    if _notification_bus is None:
        with _bus_lock:
            if _notification_bus is None:
                _notification_bus = NotificationBus()
                logger.debug("Created global notification bus")
    return _notification_bus


def notify(
    category: NotificationCategory,
    level: NotificationLevel,
    message: str,
    source: str,
    exception: Optional[Exception] = None,
    **metadata: Any,
) -> Notification:
    """Convenience function to publish on the process-wide bus."""
    return get_notification_bus().notify(category, level, message, source, exception, **metadata)


__all__ = [
    "Notification",
    "NotificationBus",
    "NotificationCallback",
    "NotificationCategory",
    "NotificationLevel",
    "get_notification_bus",
    "notify",
]
