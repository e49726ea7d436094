"""Tests for single-plan synchronization."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import pytest
from fakes import FlakyTransport, make_plan, seed_remote

from plansync.client.codec import SELECT_PLAN, row_to_plan
from plansync.client.sync.events import EventBus, SyncEvent, SyncEventType
from plansync.client.sync.record import PlanSyncer
from plansync.client.sync.remote import RemotePlans
from plansync.client.sync.types import FetchResult
from plansync.core.types import ErrorCode
from plansync.server.database import Database

USER = "user-1"


@pytest.fixture
def bus_events() -> tuple[EventBus, list[SyncEvent]]:
    bus = EventBus()
    seen: list[SyncEvent] = []
    bus.subscribe(seen.append)
    return bus, seen


def remote_row(db: Database, plan_id: str) -> dict[str, Any]:
    rows = db.execute(SELECT_PLAN, [USER, plan_id])
    return rows[0]


class TestPlanSyncer:
    """Tests for PlanSyncer.sync_plan()."""

    @pytest.mark.asyncio
    async def test_new_plan_is_inserted(
        self, remote: RemotePlans, transport: FlakyTransport, server_db: Database
    ) -> None:
        local = make_plan("p1", "January")

        result = await PlanSyncer(remote).sync_plan(local, USER)

        assert result.success
        assert result.plan == local
        assert not result.conflict
        assert row_to_plan(remote_row(server_db, "p1")) == local
        assert len(transport.writes) == 1

    @pytest.mark.asyncio
    async def test_new_plan_upload_is_announced(
        self,
        remote: RemotePlans,
        transport: FlakyTransport,
        bus_events: tuple[EventBus, list[SyncEvent]],
    ) -> None:
        bus, seen = bus_events

        await PlanSyncer(remote, bus).sync_plan(make_plan("p1", "January"), USER)
        transport.fail_code = ErrorCode.NETWORK
        await PlanSyncer(remote, bus).sync_plan(make_plan("p2", "February"), USER)

        assert [e.type for e in seen] == [SyncEventType.PLAN_UPLOADED]
        assert seen[0].plan_name == "January"

    @pytest.mark.asyncio
    async def test_newer_remote_is_adopted(
        self,
        remote: RemotePlans,
        transport: FlakyTransport,
        server_db: Database,
        bus_events: tuple[EventBus, list[SyncEvent]],
    ) -> None:
        """Remote T2 > local T1: remote wins, nothing is written."""
        bus, seen = bus_events
        seed_remote(server_db, USER, make_plan("p1", "Remote", updated=timedelta(hours=2)))
        local = make_plan("p1", "Local", updated=timedelta(hours=1))

        result = await PlanSyncer(remote, bus).sync_plan(local, USER)

        assert result.success
        assert result.conflict
        assert result.plan is not None
        assert result.plan.name == "Remote"
        assert transport.writes == []
        assert [e.type for e in seen] == [SyncEventType.CONFLICT_RESOLVED]
        assert seen[0].winner == "remote"

    @pytest.mark.asyncio
    async def test_newer_local_overwrites_remote(
        self,
        remote: RemotePlans,
        server_db: Database,
        bus_events: tuple[EventBus, list[SyncEvent]],
    ) -> None:
        bus, seen = bus_events
        seed_remote(server_db, USER, make_plan("p1", "Remote", updated=timedelta(hours=1)))
        local = make_plan("p1", "Local", updated=timedelta(hours=2))

        result = await PlanSyncer(remote, bus).sync_plan(local, USER)

        assert result.success
        assert result.conflict
        assert result.plan == local
        stored = row_to_plan(remote_row(server_db, "p1"))
        assert stored.name == "Local"
        assert stored.updated_at == local.updated_at
        assert seen[0].winner == "local"
        assert "kept the local version" in seen[0].message

    @pytest.mark.asyncio
    async def test_equal_timestamps_do_nothing(
        self, remote: RemotePlans, transport: FlakyTransport, server_db: Database
    ) -> None:
        seed_remote(server_db, USER, make_plan("p1", "Same"))

        result = await PlanSyncer(remote).sync_plan(make_plan("p1", "Same"), USER)

        assert result.success
        assert not result.conflict
        assert transport.writes == []

    @pytest.mark.asyncio
    async def test_fetch_failure_keeps_local(
        self, remote: RemotePlans, transport: FlakyTransport
    ) -> None:
        transport.fail_code = ErrorCode.NETWORK
        local = make_plan("p1")

        result = await PlanSyncer(remote).sync_plan(local, USER)

        assert not result.success
        assert result.plan == local
        assert result.error is not None
        assert result.error.code is ErrorCode.NETWORK

    @pytest.mark.asyncio
    async def test_upload_failure_keeps_local(
        self, remote: RemotePlans, transport: FlakyTransport, server_db: Database
    ) -> None:
        seed_remote(server_db, USER, make_plan("p1", "Remote"))
        transport.fail_code = ErrorCode.SERVER
        transport.fail_if = lambda query: query.startswith("UPDATE")
        local = make_plan("p1", "Local", updated=timedelta(hours=1))

        result = await PlanSyncer(remote).sync_plan(local, USER)

        assert not result.success
        assert result.conflict
        assert result.plan == local

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_reported(self, remote: RemotePlans) -> None:
        class BrokenRemote(RemotePlans):
            async def fetch(self, user_id: str, plan_id: str) -> FetchResult:
                raise RuntimeError("boom")

        local = make_plan("p1")
        result = await PlanSyncer(BrokenRemote(remote.transport)).sync_plan(local, USER)

        assert not result.success
        assert result.plan == local
        assert result.error is not None
        assert result.error.code is ErrorCode.UNKNOWN
