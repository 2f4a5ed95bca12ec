"""
Notifications - User-facing messages emitted while workflows run.

Notifiers are fire-and-forget: callers never wait on them and their
failures never change a run's outcome.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class NotificationLevel(Enum):
    """Severity of a notification."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """A toast-style message."""
    level: NotificationLevel
    title: str
    description: str | None = None
    duration_ms: int | None = None

    def __str__(self) -> str:
        if self.description:
            return f"{self.title}: {self.description}"
        return self.title


@runtime_checkable
class Notifier(Protocol):
    """Anything that can surface a notification to the user."""

    def notify(self, notification: Notification) -> None:
        ...


_LOG_LEVELS = {
    NotificationLevel.INFO: logging.INFO,
    NotificationLevel.SUCCESS: logging.INFO,
    NotificationLevel.WARNING: logging.WARNING,
    NotificationLevel.ERROR: logging.ERROR,
}


class LoggingNotifier:
    """Writes notifications to the log."""

    def __init__(self, log: logging.Logger | None = None):
        self._log = log or logger

    def notify(self, notification: Notification) -> None:
        self._log.log(
            _LOG_LEVELS[notification.level],
            "%s",
            notification,
            extra={"notification_level": notification.level.value},
        )


class RecordingNotifier:
    """Keeps notifications in memory, optionally forwarding them."""

    def __init__(self, forward_to: Notifier | None = None):
        self.notifications: list[Notification] = []
        self._forward_to = forward_to

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)
        if self._forward_to is not None:
            self._forward_to.notify(notification)

    def titles(self, level: NotificationLevel | None = None) -> list[str]:
        return [
            n.title for n in self.notifications
            if level is None or n.level is level
        ]

    def clear(self) -> None:
        self.notifications.clear()


def info(title: str, description: str | None = None, duration_ms: int | None = None) -> Notification:
    return Notification(NotificationLevel.INFO, title, description, duration_ms)


def success(title: str, description: str | None = None, duration_ms: int | None = None) -> Notification:
    return Notification(NotificationLevel.SUCCESS, title, description, duration_ms)


def warning(title: str, description: str | None = None, duration_ms: int | None = None) -> Notification:
    return Notification(NotificationLevel.WARNING, title, description, duration_ms)


def error(title: str, description: str | None = None, duration_ms: int | None = None) -> Notification:
    return Notification(NotificationLevel.ERROR, title, description, duration_ms)
