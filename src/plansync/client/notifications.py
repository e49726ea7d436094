"""System notifications for PlanSync.

This module provides:
- Native OS notifications (macOS notification center, Linux notify-send)
- Fallback to console output if notifications are unavailable
- DesktopNotifier: an EventBus listener turning sync events into notifications
"""

from __future__ import annotations

import logging
import platform
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto

import click

from plansync.client.sync.events import EventBus, SyncEvent, SyncEventType

logger = logging.getLogger(__name__)

APP_NAME = "PlanSync"


class NotificationType(Enum):
    """Type of notification."""

    INFO = auto()
    WARNING = auto()
    ERROR = auto()
    CONFLICT = auto()


@dataclass
class Notification:
    """Represents a notification to display."""

    title: str
    message: str
    type: NotificationType = NotificationType.INFO


def _notify_macos(notification: Notification) -> bool:
    """Send notification on macOS using osascript.

    Args:
        notification: The notification to send.

    Returns:
        True if notification was sent successfully.
    """
    try:
        # Escape quotes in title and message
        title = notification.title.replace('"', '\\"')
        message = notification.message.replace('"', '\\"')

        script = f'display notification "{message}" with title "{title}"'
        subprocess.run(
            ["osascript", "-e", script],
            capture_output=True,
            check=True,
        )
        return True
    except Exception as e:
        logger.debug(f"macOS notification failed: {e}")
        return False


def _notify_linux(notification: Notification) -> bool:
    """Send notification on Linux using notify-send.

    Args:
        notification: The notification to send.

    Returns:
        True if notification was sent successfully.
    """
    urgency = "critical" if notification.type is NotificationType.ERROR else "normal"
    try:
        subprocess.run(
            [
                "notify-send",
                "--urgency", urgency,
                "--app-name", APP_NAME,
                notification.title,
                notification.message,
            ],
            capture_output=True,
            check=True,
        )
        return True
    except FileNotFoundError:
        logger.debug("notify-send not found")
        return False
    except Exception as e:
        logger.debug(f"Linux notification failed: {e}")
        return False


def _notify_console(notification: Notification) -> bool:
    err = notification.type in (NotificationType.ERROR, NotificationType.WARNING)
    click.echo(f"[{notification.title}] {notification.message}", err=err)
    return True


def send_notification(notification: Notification) -> bool:
    """Send a system notification, falling back to the console.

    Returns:
        True if the notification was shown somewhere.
    """
    system = platform.system()

    if system == "Darwin" and _notify_macos(notification):
        return True
    if system == "Linux" and _notify_linux(notification):
        return True
    return _notify_console(notification)


_EVENT_TYPES = {
    SyncEventType.SYNC_SUCCEEDED: ("Sync complete", NotificationType.INFO),
    SyncEventType.SYNC_FAILED: ("Sync error", NotificationType.ERROR),
    SyncEventType.NETWORK_ERROR: ("Network error", NotificationType.WARNING),
    SyncEventType.CONFLICT_RESOLVED: ("Conflict resolved", NotificationType.CONFLICT),
    SyncEventType.PLANS_DOWNLOADED: ("New plans", NotificationType.INFO),
    SyncEventType.PLAN_CREATED: ("Plan created", NotificationType.INFO),
    SyncEventType.PLAN_CREATED_LOCAL_ONLY: ("Saved locally only", NotificationType.WARNING),
    SyncEventType.CHOICE_REQUIRED: ("Choose a sync strategy", NotificationType.INFO),
    SyncEventType.MIGRATION_PROPOSED: ("Save your plans", NotificationType.INFO),
}


def to_notification(event: SyncEvent) -> Notification | None:
    """Map a sync event to a notification, or None for silent events."""
    mapped = _EVENT_TYPES.get(event.type)
    if mapped is None:
        return None
    title, kind = mapped
    return Notification(title=f"{APP_NAME} - {title}", message=event.message, type=kind)


class DesktopNotifier:
    """EventBus listener showing sync events as notifications."""

    def __init__(self, sender: Callable[[Notification], bool] = send_notification) -> None:
        self._sender = sender

    def __call__(self, event: SyncEvent) -> None:
        notification = to_notification(event)
        if notification is not None:
            self._sender(notification)

    def attach(self, bus: EventBus) -> Callable[[], None]:
        """Subscribe to ``bus``; returns the unsubscribe function."""
        return bus.subscribe(self)
