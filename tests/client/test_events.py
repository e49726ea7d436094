"""Tests for the sync event bus."""

from __future__ import annotations

from plansync.client.sync import events
from plansync.client.sync.events import EventBus, SyncEvent, SyncEventType


class TestEventBus:
    """Tests for EventBus."""

    def test_subscribe_and_emit(self) -> None:
        bus = EventBus()
        seen: list[SyncEvent] = []
        bus.subscribe(seen.append)

        bus.emit(events.sync_started())

        assert [e.type for e in seen] == [SyncEventType.SYNC_STARTED]

    def test_unsubscribe(self) -> None:
        bus = EventBus()
        seen: list[SyncEvent] = []
        unsubscribe = bus.subscribe(seen.append)

        unsubscribe()
        unsubscribe()
        bus.emit(events.sync_started())

        assert seen == []

    def test_failing_listener_does_not_stop_others(self) -> None:
        bus = EventBus()
        seen: list[SyncEvent] = []

        def broken(event: SyncEvent) -> None:
            raise RuntimeError("listener down")

        bus.subscribe(broken)
        bus.subscribe(seen.append)
        bus.emit(events.network_error())

        assert len(seen) == 1

    def test_emit_without_bus(self) -> None:
        events.emit(None, events.sync_started())


class TestEventBuilders:
    """Tests for human-readable event messages."""

    def test_conflict_resolved(self) -> None:
        event = events.conflict_resolved("March", "remote")
        assert event.type is SyncEventType.CONFLICT_RESOLVED
        assert event.plan_name == "March"
        assert event.winner == "remote"
        assert event.message == 'Conflict resolved for "March": kept the remote version'

    def test_sync_succeeded_count(self) -> None:
        event = events.sync_succeeded(3)
        assert event.count == 3
        assert event.message == "3 plan(s) synchronized"

    def test_created_local_only(self) -> None:
        event = events.plan_created_local_only("April")
        assert event.type is SyncEventType.PLAN_CREATED_LOCAL_ONLY
        assert "locally only" in event.message

    def test_choice_required(self) -> None:
        event = events.choice_required(2, 5)
        assert "2 local plan(s)" in event.message
        assert "5 plan(s) in the cloud" in event.message
