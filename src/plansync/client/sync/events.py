"""Event emission for sync observers.

The engine reports what it does (sync start/end, conflicts, uploads) by
emitting SyncEvent objects on an EventBus. Listeners (desktop
notifications, a CLI, tests) subscribe; the engine never depends on any of
them being present, and a failing listener never fails a sync.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto

logger = logging.getLogger(__name__)


class SyncEventType(Enum):
    """Kinds of sync events."""

    SYNC_STARTED = auto()
    SYNC_SUCCEEDED = auto()
    SYNC_FAILED = auto()
    CONFLICT_RESOLVED = auto()
    PLAN_UPLOADED = auto()
    PLANS_DOWNLOADED = auto()
    PLAN_CREATED = auto()
    PLAN_CREATED_LOCAL_ONLY = auto()
    NETWORK_ERROR = auto()
    CHOICE_REQUIRED = auto()
    MIGRATION_PROPOSED = auto()


@dataclass(frozen=True)
class SyncEvent:
    """Something observers may want to show to the user."""

    type: SyncEventType
    message: str
    plan_name: str | None = None
    count: int | None = None
    winner: str | None = None  # "local" or "remote"


SyncListener = Callable[[SyncEvent], None]


class EventBus:
    """Synchronous observer list."""

    def __init__(self) -> None:
        self._listeners: list[SyncListener] = []

    def subscribe(self, listener: SyncListener) -> Callable[[], None]:
        """Register a listener.

        Returns:
            Function removing the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: SyncEvent) -> None:
        """Deliver an event to every listener."""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Sync event listener failed on {event.type.name}: {e}")


def emit(bus: EventBus | None, event: SyncEvent) -> None:
    """Emit on ``bus`` if there is one."""
    if bus is not None:
        bus.emit(event)


# === Event builders ===


def conflict_resolved(plan_name: str, winner: str) -> SyncEvent:
    version = "local" if winner == "local" else "remote"
    return SyncEvent(
        SyncEventType.CONFLICT_RESOLVED,
        f'Conflict resolved for "{plan_name}": kept the {version} version',
        plan_name=plan_name,
        winner=winner,
    )


def sync_started() -> SyncEvent:
    return SyncEvent(SyncEventType.SYNC_STARTED, "Synchronizing plans...")


def sync_succeeded(count: int) -> SyncEvent:
    return SyncEvent(SyncEventType.SYNC_SUCCEEDED, f"{count} plan(s) synchronized", count=count)


def sync_failed(message: str) -> SyncEvent:
    return SyncEvent(SyncEventType.SYNC_FAILED, f"Error: {message}")


def network_error() -> SyncEvent:
    return SyncEvent(SyncEventType.NETWORK_ERROR, "Network error. Check your connection.")


def plan_uploaded(plan_name: str) -> SyncEvent:
    return SyncEvent(SyncEventType.PLAN_UPLOADED, f'"{plan_name}" saved', plan_name=plan_name)


def plans_downloaded(count: int) -> SyncEvent:
    return SyncEvent(SyncEventType.PLANS_DOWNLOADED, f"{count} plan(s) downloaded", count=count)


def plan_created(plan_name: str) -> SyncEvent:
    return SyncEvent(
        SyncEventType.PLAN_CREATED,
        f'Plan "{plan_name}" created and saved',
        plan_name=plan_name,
    )


def plan_created_local_only(plan_name: str) -> SyncEvent:
    return SyncEvent(
        SyncEventType.PLAN_CREATED_LOCAL_ONLY,
        f'Plan "{plan_name}" created locally only. The cloud save failed; '
        "your data is kept on this device.",
        plan_name=plan_name,
    )


def choice_required(local_count: int, cloud_count: int) -> SyncEvent:
    return SyncEvent(
        SyncEventType.CHOICE_REQUIRED,
        f"You have {local_count} local plan(s) and {cloud_count} plan(s) in the cloud. "
        "Choose how to synchronize them.",
        count=cloud_count,
    )


def migration_proposed(local_count: int) -> SyncEvent:
    return SyncEvent(
        SyncEventType.MIGRATION_PROPOSED,
        f"{local_count} local plan(s) can be saved to your account",
        count=local_count,
    )
