"""Batch synchronization of a plan collection.

Algorithm:
    1. Split the collection into syncable and non-syncable plans. Non-syncable
       plans (demo content) never touch the network.
    2. Sync syncable plans in fixed-size batches: plans of one batch run
       concurrently, batches run one after another.
    3. Keep the local version of every plan whose sync failed.
    4. Download every remote plan once and append those unknown locally,
       except plans deleted locally whose remote deletion is still pending.
    5. Result = non-syncable + winners (deduplicated by id) + remote-only.

An AUTH failure stops the remaining batches and the download: the session
is no longer valid, so the rest of the collection is kept as-is.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from plansync.client.sync.types import BatchSyncResult, PlanSyncResult
from plansync.core.types import ErrorCode

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence

    from plansync.client.sync.record import PlanSyncer
    from plansync.client.sync.remote import RemotePlans
    from plansync.core.types import Plan

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5


def partition(plans: Sequence[Plan]) -> tuple[list[Plan], list[Plan]]:
    """Split plans into (syncable, non_syncable)."""
    syncable: list[Plan] = []
    non_syncable: list[Plan] = []
    for plan in plans:
        (syncable if plan.is_syncable else non_syncable).append(plan)
    return syncable, non_syncable


def batched(plans: Sequence[Plan], size: int) -> list[list[Plan]]:
    """Cut ``plans`` into consecutive groups of at most ``size``."""
    return [list(plans[i : i + size]) for i in range(0, len(plans), size)]


def _dedupe(plans: Sequence[Plan]) -> list[Plan]:
    seen: set[str] = set()
    unique: list[Plan] = []
    for plan in plans:
        if plan.id not in seen:
            seen.add(plan.id)
            unique.append(plan)
    return unique


class BatchSynchronizer:
    """Synchronizes whole plan collections with bounded concurrency."""

    def __init__(
        self,
        syncer: PlanSyncer,
        remote: RemotePlans,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        """Initialize the synchronizer.

        Args:
            syncer: Single-record syncer.
            remote: Remote query surface (download and upload-all).
            batch_size: Maximum number of concurrent record syncs.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._syncer = syncer
        self._remote = remote
        self._batch_size = batch_size

    @property
    def batch_size(self) -> int:
        return self._batch_size

    async def sync_all(
        self,
        plans: Sequence[Plan],
        user_id: str,
        skip_ids: Collection[str] = (),
    ) -> BatchSyncResult:
        """Merge the local collection with the remote store.

        Args:
            plans: Full local collection.
            user_id: Owner of the plans.
            skip_ids: Plans deleted locally; never adopted from the cloud.

        Returns:
            BatchSyncResult with the merged collection.
        """
        syncable, non_syncable = partition(_dedupe(plans))

        if not syncable:
            logger.info(f"No syncable plans locally ({len(non_syncable)} demo plans kept)")
        else:
            logger.info(
                f"Synchronizing {len(syncable)} plans "
                f"({len(non_syncable)} demo plans excluded)"
            )

        winners: list[Plan] = []
        synced = conflicts = failed = 0
        last_error = None
        halted = False

        for batch in batched(syncable, self._batch_size):
            if halted:
                winners.extend(batch)
                continue

            results: list[PlanSyncResult] = await asyncio.gather(
                *(self._syncer.sync_plan(plan, user_id) for plan in batch)
            )

            for local, result in zip(batch, results):
                if result.success and result.plan is not None:
                    winners.append(result.plan)
                    synced += 1
                    if result.conflict:
                        conflicts += 1
                    continue

                logger.error(f"Sync failed for plan {local.id}: {result.error}")
                # Keep the original local version
                winners.append(local)
                failed += 1
                last_error = result.error or last_error
                if result.error is not None and result.error.code is ErrorCode.AUTH:
                    halted = True

        remote_only: list[Plan] = []
        if halted:
            logger.error("Authentication lost during sync, remaining plans kept locally")
        else:
            download = await self._remote.fetch_all(user_id)
            if download.success:
                known = {plan.id for plan in plans} | set(skip_ids)
                remote_only = _dedupe([p for p in download.plans if p.id not in known])
                if remote_only:
                    names = ", ".join(p.name for p in remote_only)
                    logger.info(f"{len(remote_only)} new plans from the cloud: {names}")
            else:
                logger.error(f"Download of remote plans failed: {download.error}")
                last_error = download.error or last_error

        merged = non_syncable + _dedupe(winners) + remote_only
        return BatchSyncResult(
            success=last_error is None,
            plans=merged,
            synced_count=synced,
            conflict_count=conflicts,
            failed_count=failed,
            downloaded_count=len(remote_only),
            error=last_error,
        )

    async def upload_all(self, plans: Sequence[Plan], user_id: str) -> BatchSyncResult:
        """Upload every syncable plan, overwriting remote rows.

        Remote plans missing locally are left untouched. The local
        collection is returned unchanged.
        """
        syncable, _ = partition(_dedupe(plans))
        uploaded = failed = 0
        last_error = None

        for batch in batched(syncable, self._batch_size):
            results = await asyncio.gather(
                *(self._remote.upload(plan, user_id) for plan in batch)
            )
            for plan, result in zip(batch, results):
                if result.success:
                    uploaded += 1
                else:
                    logger.error(f"Upload failed for plan {plan.id}: {result.error}")
                    failed += 1
                    last_error = result.error or last_error

        logger.info(f"Uploaded {uploaded} plans ({failed} failed)")
        return BatchSyncResult(
            success=last_error is None,
            plans=list(plans),
            synced_count=uploaded,
            failed_count=failed,
            error=last_error,
        )
