"""User notification interfaces."""

from crm_reports.notifications.notifier import (
    CallbackNotifier,
    CollectingNotifier,
    CompositeNotifier,
    LogNotifier,
    Notification,
    NotificationLevel,
    Notifier,
    destructive,
    info,
)

__all__ = [
    "CallbackNotifier",
    "CollectingNotifier",
    "CompositeNotifier",
    "LogNotifier",
    "Notification",
    "NotificationLevel",
    "Notifier",
    "destructive",
    "info",
]
