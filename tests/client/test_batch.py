"""Tests for batch synchronization of plan collections."""

from __future__ import annotations

from datetime import timedelta

import pytest
from fakes import FlakyTransport, make_plan, seed_remote

from plansync.client.codec import SELECT_PLAN, SELECT_PLANS, row_to_plan
from plansync.client.sync.batch import BatchSynchronizer, batched, partition
from plansync.client.sync.record import PlanSyncer
from plansync.client.sync.remote import RemotePlans
from plansync.core.types import ErrorCode
from plansync.server.database import Database

USER = "user-1"


def make_batch(remote: RemotePlans, batch_size: int = 5) -> BatchSynchronizer:
    return BatchSynchronizer(PlanSyncer(remote), remote, batch_size=batch_size)


class TestHelpers:
    """Tests for partition() and batched()."""

    def test_partition(self) -> None:
        demo = make_plan("d", syncable=False)
        plans = [make_plan("a"), demo, make_plan("b")]
        syncable, non_syncable = partition(plans)
        assert [p.id for p in syncable] == ["a", "b"]
        assert non_syncable == [demo]

    def test_batched(self) -> None:
        plans = [make_plan(str(i)) for i in range(7)]
        groups = batched(plans, 3)
        assert [len(g) for g in groups] == [3, 3, 1]

    def test_invalid_batch_size(self, remote: RemotePlans) -> None:
        with pytest.raises(ValueError):
            make_batch(remote, batch_size=0)


class TestSyncAll:
    """Tests for BatchSynchronizer.sync_all()."""

    @pytest.mark.asyncio
    async def test_uploads_new_plans(self, remote: RemotePlans, server_db: Database) -> None:
        plans = [make_plan("p1"), make_plan("p2")]

        result = await make_batch(remote).sync_all(plans, USER)

        assert result.success
        assert result.synced_count == 2
        assert result.conflict_count == 0
        assert result.plans == plans
        assert len(server_db.execute(SELECT_PLANS, [USER])) == 2

    @pytest.mark.asyncio
    async def test_idempotent(self, remote: RemotePlans, transport: FlakyTransport) -> None:
        """A second sync of an unchanged collection writes nothing."""
        batch = make_batch(remote)
        first = await batch.sync_all([make_plan("p1"), make_plan("p2")], USER)
        transport.calls.clear()

        second = await batch.sync_all(first.plans, USER)

        assert second.success
        assert second.conflict_count == 0
        assert second.plans == first.plans
        assert transport.writes == []

    @pytest.mark.asyncio
    async def test_idempotent_after_conflicts(
        self, remote: RemotePlans, transport: FlakyTransport, server_db: Database
    ) -> None:
        """Resolved conflicts do not come back on the next sync."""
        seed_remote(server_db, USER, make_plan("p1", "Remote", updated=timedelta(hours=1)))
        local = [make_plan("p1", "Local", updated=timedelta(hours=2))]
        batch = make_batch(remote)

        first = await batch.sync_all(local, USER)
        second = await batch.sync_all(first.plans, USER)

        assert first.conflict_count == 1
        assert second.conflict_count == 0
        assert second.plans == first.plans

    @pytest.mark.asyncio
    async def test_no_data_loss_when_everything_fails(
        self, remote: RemotePlans, transport: FlakyTransport
    ) -> None:
        transport.fail_code = ErrorCode.NETWORK
        plans = [make_plan("p1"), make_plan("d1", syncable=False), make_plan("p2")]

        result = await make_batch(remote).sync_all(plans, USER)

        assert not result.success
        assert result.synced_count == 0
        assert result.failed_count == 2
        assert {p.id: p for p in result.plans} == {p.id: p for p in plans}
        assert len(result.plans) == len(plans)

    @pytest.mark.asyncio
    async def test_non_syncable_plans_never_reach_transport(
        self, remote: RemotePlans, transport: FlakyTransport
    ) -> None:
        demo = make_plan("demo", "Demo", syncable=False)
        plans = [make_plan("p1"), demo]

        result = await make_batch(remote).sync_all(plans, USER)

        assert result.plans[0] == demo
        assert result.synced_count == 1
        assert all("demo" not in params for _, params in transport.calls)

    @pytest.mark.asyncio
    async def test_newer_remote_replaces_local(
        self, remote: RemotePlans, server_db: Database
    ) -> None:
        """Local p1 at T1, remote p1 at T2 > T1: the remote version wins."""
        seed_remote(
            server_db,
            USER,
            make_plan("p1", "Remote", updated=timedelta(hours=2), incomes=[{"amount": 10}]),
        )
        local = [make_plan("p1", "Local", updated=timedelta(hours=1))]

        result = await make_batch(remote).sync_all(local, USER)

        assert result.conflict_count == 1
        assert len(result.plans) == 1
        assert result.plans[0].name == "Remote"
        assert result.plans[0].incomes == [{"amount": 10}]

    @pytest.mark.asyncio
    async def test_remote_only_plans_are_appended(
        self, remote: RemotePlans, server_db: Database
    ) -> None:
        seed_remote(server_db, USER, make_plan("r1", "From phone"))
        demo = make_plan("d1", syncable=False)

        result = await make_batch(remote).sync_all([demo, make_plan("p1")], USER)

        assert [p.id for p in result.plans] == ["d1", "p1", "r1"]
        assert result.downloaded_count == 1

    @pytest.mark.asyncio
    async def test_other_users_plans_are_invisible(
        self, remote: RemotePlans, server_db: Database
    ) -> None:
        seed_remote(server_db, "someone-else", make_plan("x1"))

        result = await make_batch(remote).sync_all([], USER)

        assert result.plans == []

    @pytest.mark.asyncio
    async def test_one_failure_does_not_abort_siblings(
        self, remote: RemotePlans, transport: FlakyTransport, server_db: Database
    ) -> None:
        transport.fail_code = ErrorCode.SERVER
        transport.fail_if = lambda query: query.startswith("INSERT")
        seed_remote(server_db, USER, make_plan("p2", "Remote", updated=timedelta(hours=1)))
        plans = [make_plan("p1"), make_plan("p2")]

        result = await make_batch(remote, batch_size=1).sync_all(plans, USER)

        assert not result.success
        assert result.failed_count == 1
        assert result.synced_count == 1
        assert [p.id for p in result.plans] == ["p1", "p2"]
        assert result.plans[1].name == "Remote"

    @pytest.mark.asyncio
    async def test_auth_failure_halts_remaining_batches(
        self, remote: RemotePlans, transport: FlakyTransport
    ) -> None:
        transport.fail_code = ErrorCode.AUTH
        plans = [make_plan("p1"), make_plan("p2"), make_plan("p3")]

        result = await make_batch(remote, batch_size=1).sync_all(plans, USER)

        assert not result.success
        assert result.error is not None
        assert result.error.code is ErrorCode.AUTH
        assert result.plans == plans
        assert len(transport.calls) == 1
        assert transport.queries_starting(SELECT_PLANS) == []

    @pytest.mark.asyncio
    async def test_download_failure_is_reported(
        self, remote: RemotePlans, transport: FlakyTransport
    ) -> None:
        transport.fail_code = ErrorCode.NETWORK
        transport.fail_if = lambda query: query == SELECT_PLANS

        result = await make_batch(remote).sync_all([make_plan("p1")], USER)

        assert not result.success
        assert result.synced_count == 1
        assert [p.id for p in result.plans] == ["p1"]

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded_by_batch_size(
        self, remote: RemotePlans, transport: FlakyTransport
    ) -> None:
        transport.delay = 0.01
        plans = [make_plan(f"p{i}") for i in range(5)]

        result = await make_batch(remote, batch_size=2).sync_all(plans, USER)

        assert result.synced_count == 5
        assert transport.max_in_flight == 2

    @pytest.mark.asyncio
    async def test_duplicate_ids_are_merged(self, remote: RemotePlans) -> None:
        plan = make_plan("p1")

        result = await make_batch(remote).sync_all([plan, plan], USER)

        assert result.plans == [plan]


class TestUploadAll:
    """Tests for BatchSynchronizer.upload_all()."""

    @pytest.mark.asyncio
    async def test_overwrites_remote_with_local(
        self, remote: RemotePlans, server_db: Database
    ) -> None:
        seed_remote(server_db, USER, make_plan("p1", "Newer remote", updated=timedelta(hours=5)))
        local = [make_plan("p1", "Local"), make_plan("p2", "Only local")]

        result = await make_batch(remote).upload_all(local, USER)

        assert result.success
        assert result.synced_count == 2
        assert result.plans == local
        stored = row_to_plan(server_db.execute(SELECT_PLAN, [USER, "p1"])[0])
        assert stored.name == "Local"

    @pytest.mark.asyncio
    async def test_keeps_remote_only_rows(self, remote: RemotePlans, server_db: Database) -> None:
        seed_remote(server_db, USER, make_plan("r1"))

        await make_batch(remote).upload_all([make_plan("p1")], USER)

        assert len(server_db.execute(SELECT_PLANS, [USER])) == 2

    @pytest.mark.asyncio
    async def test_skips_non_syncable(self, remote: RemotePlans, transport: FlakyTransport) -> None:
        result = await make_batch(remote).upload_all([make_plan("d", syncable=False)], USER)

        assert result.synced_count == 0
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_reports_failures(self, remote: RemotePlans, transport: FlakyTransport) -> None:
        transport.fail_code = ErrorCode.NETWORK

        result = await make_batch(remote).upload_all([make_plan("p1")], USER)

        assert not result.success
        assert result.failed_count == 1
