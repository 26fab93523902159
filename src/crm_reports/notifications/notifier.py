"""User-facing notifications.

The reporting subsystem never talks to a UI toast surface directly. It receives
a notifier and fires short, user-safe messages at it:
- informational messages (e.g. nothing selected yet)
- destructive messages (e.g. a report query failed)
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Protocol

from crm_reports.common.logging import get_logger
from crm_reports.common.time_utils import utc_now

logger = get_logger(__name__)


class NotificationLevel(Enum):
    """Notification severity."""

    INFO = "info"
    DESTRUCTIVE = "destructive"


@dataclass
class Notification:
    """A message shown to the user."""

    level: NotificationLevel
    title: str
    message: str
    timestamp: datetime = field(default_factory=utc_now)
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "level": self.level.value,
            "title": self.title,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }


class Notifier(Protocol):
    """Protocol for notification sinks."""

    def notify(self, notification: Notification) -> None:
        """Deliver a notification.

        Args:
            notification: Notification to deliver.
        """
        ...


class LogNotifier:
    """Notifier that writes notifications to the log."""

    def notify(self, notification: Notification) -> None:
        """Log the notification."""
        log_func = (
            logger.warning
            if notification.level is NotificationLevel.DESTRUCTIVE
            else logger.info
        )
        log_func(
            "notification",
            level=notification.level.value,
            title=notification.title,
            message=notification.message,
            data=notification.data,
        )


class CallbackNotifier:
    """Notifier that forwards notifications to a callback."""

    def __init__(self, callback: Callable[[Notification], None]):
        """Initialize notifier.

        Args:
            callback: Function to call with each notification.
        """
        self.callback = callback

    def notify(self, notification: Notification) -> None:
        """Call the callback."""
        self.callback(notification)


class CollectingNotifier:
    """Notifier that keeps a bounded history of notifications."""

    def __init__(self, max_history: int = 100):
        """Initialize notifier.

        Args:
            max_history: Maximum number of notifications kept.
        """
        self.max_history = max_history
        self.history: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        """Record the notification."""
        self.history.append(notification)
        if len(self.history) > self.max_history:
            self.history = self.history[-self.max_history :]

    def by_level(self, level: NotificationLevel) -> list[Notification]:
        """Get recorded notifications of one level."""
        return [n for n in self.history if n.level is level]

    def clear(self) -> None:
        """Forget recorded notifications."""
        self.history.clear()


class CompositeNotifier:
    """Fans notifications out to several notifiers.

    A failing notifier is logged and skipped; delivery is fire-and-forget.
    """

    def __init__(self, notifiers: list[Notifier] | None = None):
        self.notifiers: list[Notifier] = list(notifiers or [])

    def add(self, notifier: Notifier) -> None:
        """Add a notifier."""
        self.notifiers.append(notifier)

    def notify(self, notification: Notification) -> None:
        """Deliver to every notifier."""
        for notifier in self.notifiers:
            try:
                notifier.notify(notification)
            except Exception as e:
                logger.error(
                    "notifier_failed",
                    notifier=type(notifier).__name__,
                    error=str(e),
                )


def info(title: str, message: str, **data: Any) -> Notification:
    """Build an informational notification."""
    return Notification(NotificationLevel.INFO, title, message, data=data)


def destructive(title: str, message: str, **data: Any) -> Notification:
    """Build a destructive (error) notification."""
    return Notification(NotificationLevel.DESTRUCTIVE, title, message, data=data)
