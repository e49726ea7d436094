"""Session-level sync orchestration.

State machine:
    IDLE -> WAITING_FOR_HYDRATION -> DECIDING -> [AWAITING_CHOICE] -> SYNCING -> SETTLED

- Leaving IDLE requires a signed-in user.
- DECIDING starts once the local store is hydrated, and only if no
  automatic sync already ran in this session.
- Entering DECIDING offers the migration of local plans into the account
  (see propose_migration_if_needed), whatever the cloud holds.
- DECIDING counts the remote plans:
    remote == 0                 -> SETTLED (nothing to merge)
    remote > 0, local == 0      -> SYNCING with MERGE, no prompt
    remote > 0, local > 0       -> AWAITING_CHOICE until choose_strategy()
- SYNCING always ends in SETTLED; failures are reported as events.
- logout() returns to IDLE from any state and cancels in-flight work.

The "synced this session" flag is set when SYNCING is entered, so repeated
login/hydration signals start at most one automatic sync per session.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from plansync.client.sync import events
from plansync.client.sync.batch import BatchSynchronizer
from plansync.client.sync.debounce import Debouncer
from plansync.client.sync.migration import should_propose_migration
from plansync.client.sync.record import PlanSyncer
from plansync.core.config import SyncSettings
from plansync.core.types import ErrorCode, utc_now

if TYPE_CHECKING:
    from plansync.client.store import LocalPlanStore
    from plansync.client.sync.events import EventBus
    from plansync.client.sync.remote import RemotePlans
    from plansync.client.sync.types import BatchSyncResult
    from plansync.core.types import Plan, SyncError

logger = logging.getLogger(__name__)


class OrchestratorState(Enum):
    IDLE = "idle"
    WAITING_FOR_HYDRATION = "waiting_for_hydration"
    DECIDING = "deciding"
    AWAITING_CHOICE = "awaiting_choice"
    SYNCING = "syncing"
    SETTLED = "settled"


class SyncStrategy(Enum):
    """How to reconcile local plans with the cloud."""

    MERGE = "merge"  # last-write-wins on every plan
    DOWNLOAD_CLOUD = "download"  # same algorithm as MERGE
    UPLOAD_LOCAL = "upload"  # overwrite the cloud with local plans


class SyncOrchestrator:
    """Drives the sync engine for one signed-in user at a time."""

    def __init__(
        self,
        store: LocalPlanStore,
        remote: RemotePlans,
        bus: EventBus | None = None,
        settings: SyncSettings | None = None,
        batch: BatchSynchronizer | None = None,
        debouncer: Debouncer | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            store: Hydratable local plan store.
            remote: Remote query surface.
            bus: Optional event bus.
            settings: Sync settings (batch size, debounce delay, cooldown).
            batch: Batch synchronizer; built from ``remote`` if omitted.
            debouncer: Scheduler for request_sync(); one per orchestrator.
            clock: Returns the current time (injectable for tests).
        """
        self._store = store
        self._remote = remote
        self._bus = bus
        self._settings = settings or SyncSettings()
        self._batch = batch or BatchSynchronizer(
            PlanSyncer(remote, bus), remote, self._settings.batch_size
        )
        self._debouncer = debouncer or Debouncer(self._settings.debounce_delay)
        self._clock = clock

        self._state = OrchestratorState.IDLE
        self._user_id: str | None = None
        self._session = 0
        self._synced_this_session = False
        self._migration_proposed = False
        self._pending_choice: tuple[int, int] | None = None
        self._task: asyncio.Task[BatchSyncResult] | None = None
        self._last_result: BatchSyncResult | None = None

    # === Read-only state ===

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def synced_this_session(self) -> bool:
        return self._synced_this_session

    @property
    def pending_choice(self) -> tuple[int, int] | None:
        """(local_count, cloud_count) while waiting for the user's strategy."""
        return self._pending_choice

    @property
    def migration_proposed(self) -> bool:
        return self._migration_proposed

    @property
    def last_result(self) -> BatchSyncResult | None:
        return self._last_result

    @property
    def debouncer(self) -> Debouncer:
        return self._debouncer

    # === Session signals ===

    async def login(self, user_id: str) -> None:
        """Signal that ``user_id`` is authenticated."""
        if self._user_id is not None and self._user_id != user_id:
            self.logout()
        if self._user_id == user_id and self._state is not OrchestratorState.IDLE:
            await self._maybe_start()
            return
        self._user_id = user_id
        self._session += 1
        self._state = OrchestratorState.WAITING_FOR_HYDRATION
        logger.info(f"User {user_id} signed in")
        await self._maybe_start()

    async def mark_hydrated(self) -> None:
        """Signal that the local store finished loading."""
        await self._maybe_start()

    def logout(self) -> None:
        """Forget the user and abandon any pending or running sync.

        Results of a cancelled sync are never applied to the local store.
        """
        self._debouncer.cancel_pending()
        if self._task is not None and not self._task.done():
            logger.info("Cancelling in-flight sync on logout")
            self._task.cancel()
        self._task = None
        self._session += 1
        self._user_id = None
        self._synced_this_session = False
        self._migration_proposed = False
        self._pending_choice = None
        self._state = OrchestratorState.IDLE

    async def _maybe_start(self) -> None:
        if (
            self._user_id is None
            or self._state is not OrchestratorState.WAITING_FOR_HYDRATION
            or not self._store.hydrated
            or self._synced_this_session
        ):
            return
        self._state = OrchestratorState.DECIDING
        self.propose_migration_if_needed()
        await self._decide(self._user_id, self._session)

    async def _decide(self, user_id: str, session: int) -> None:
        counted = await self._remote.count(user_id)
        if session != self._session:
            return
        if not counted.success:
            logger.error(f"Could not count remote plans: {counted.error}")
            self._report_failure(counted.error)
            self._state = OrchestratorState.SETTLED
            return

        local_count = self._store.syncable_count()
        cloud_count = counted.count
        logger.info(f"Local syncable plans: {local_count}, cloud plans: {cloud_count}")

        if cloud_count == 0:
            self._state = OrchestratorState.SETTLED
            return

        if local_count == 0:
            await self._sync(SyncStrategy.MERGE, user_id)
            return

        self._pending_choice = (local_count, cloud_count)
        self._state = OrchestratorState.AWAITING_CHOICE
        events.emit(self._bus, events.choice_required(local_count, cloud_count))

    async def choose_strategy(self, strategy: SyncStrategy) -> BatchSyncResult | None:
        """Resume a sync that waits for the user's choice.

        Raises:
            RuntimeError: If no choice is pending.
        """
        user_id = self._user_id
        if self._state is not OrchestratorState.AWAITING_CHOICE or user_id is None:
            raise RuntimeError("No synchronization choice is pending")
        self._pending_choice = None
        logger.info(f"User chose strategy {strategy.value}")
        return await self._sync(strategy, user_id)

    # === Explicit and debounced syncs ===

    async def sync_now(
        self, strategy: SyncStrategy = SyncStrategy.MERGE
    ) -> BatchSyncResult | None:
        """Run a sync immediately.

        Waits for a sync already in flight before starting. Returns None when
        no user is signed in, the store is not hydrated, or the sync was
        cancelled.
        """
        user_id = self._user_id
        if user_id is None or not self._store.hydrated:
            return None
        session = self._session
        if self._task is not None and not self._task.done():
            await asyncio.wait({self._task})
            if session != self._session:
                return None
        self._pending_choice = None
        return await self._sync(strategy, user_id)

    def request_sync(self) -> bool:
        """Schedule a debounced merge sync after local edits.

        Only takes effect once the session sync settled; before that, the
        automatic flow will pick up the edits.

        Returns:
            True if a sync was scheduled.
        """
        if self._user_id is None or self._state not in (
            OrchestratorState.SETTLED,
            OrchestratorState.SYNCING,
        ):
            return False
        self._debouncer.schedule(self.sync_now)
        return True

    async def flush(self) -> BatchSyncResult | None:
        """Run a scheduled sync right away instead of waiting for the delay."""
        if not self._debouncer.cancel_pending():
            await self._debouncer.drain()
            return None
        return await self.sync_now()

    async def _sync(self, strategy: SyncStrategy, user_id: str) -> BatchSyncResult | None:
        session = self._session
        self._state = OrchestratorState.SYNCING
        self._synced_this_session = True

        task = asyncio.ensure_future(self._run(strategy, user_id, session))
        self._task = task
        await asyncio.wait({task})
        if self._task is task:
            self._task = None
        if task.cancelled() or session != self._session:
            logger.info("Sync abandoned")
            return None
        return task.result()

    async def _run(self, strategy: SyncStrategy, user_id: str, session: int) -> BatchSyncResult:
        events.emit(self._bus, events.sync_started())
        still_pending = await self._retry_deletions(user_id)
        before = {plan.id: plan for plan in self._store.plans}

        if strategy is SyncStrategy.UPLOAD_LOCAL:
            result = await self._batch.upload_all(list(before.values()), user_id)
        else:
            result = await self._batch.sync_all(
                list(before.values()), user_id, skip_ids=still_pending
            )

        if session == self._session:
            if strategy is not SyncStrategy.UPLOAD_LOCAL:
                self._apply(before, result.plans)
            self._last_result = result
            self._state = OrchestratorState.SETTLED
            self._report(result)
        return result

    async def _retry_deletions(self, user_id: str) -> set[str]:
        """Run remote deletions that failed earlier.

        Returns:
            Ids whose remote deletion is still pending.
        """
        still_pending: set[str] = set()
        for plan_id in self._store.get_pending_deletions():
            result = await self._remote.delete(user_id, plan_id)
            if result.success:
                self._store.discard_pending_deletion(plan_id)
                logger.info(f"Remote deletion of plan {plan_id} completed")
            else:
                logger.warning(f"Remote deletion of plan {plan_id} still failing: {result.error}")
                still_pending.add(plan_id)
        return still_pending

    def _apply(self, before: dict[str, Plan], merged: list[Plan]) -> None:
        """Write a merge result to the store, keeping edits made meanwhile."""
        current = {plan.id: plan for plan in self._store.plans}
        applied: list[Plan] = []
        seen: set[str] = set()

        for plan in merged:
            seen.add(plan.id)
            if plan.id in before:
                if plan.id not in current:
                    continue  # deleted during the sync
                if current[plan.id] != before[plan.id]:
                    applied.append(current[plan.id])
                    continue
                applied.append(plan)
            else:
                applied.append(current.get(plan.id, plan))

        for plan in current.values():
            if plan.id not in seen and plan.id not in before:
                applied.append(plan)

        self._store.replace_all(applied)

    def _report(self, result: BatchSyncResult) -> None:
        if result.downloaded_count:
            events.emit(self._bus, events.plans_downloaded(result.downloaded_count))
        if result.success:
            logger.info(
                f"Sync complete: {result.synced_count} synced, "
                f"{result.conflict_count} conflicts, {result.downloaded_count} downloaded"
            )
            events.emit(self._bus, events.sync_succeeded(result.synced_count))
        else:
            logger.warning(
                f"Sync finished with errors: {result.failed_count} failed ({result.error})"
            )
            self._report_failure(result.error)

    def _report_failure(self, error: SyncError | None) -> None:
        if error is not None and error.code is ErrorCode.NETWORK:
            events.emit(self._bus, events.network_error())
        else:
            message = error.message if error is not None else "Synchronization failed"
            events.emit(self._bus, events.sync_failed(message))

    # === Migration of local data ===

    def propose_migration_if_needed(self) -> bool:
        """Offer to move local plans into the account when appropriate.

        Returns:
            True if a proposal was emitted.
        """
        if self._user_id is None:
            return False
        local_count = self._store.syncable_count()
        if not should_propose_migration(
            self._store.get_migration_status(),
            local_count,
            self._clock(),
            cooldown=self._settings.migration_cooldown,
            proposed_this_session=self._migration_proposed,
        ):
            return False
        self._migration_proposed = True
        logger.info(f"Proposing migration of {local_count} local plans")
        events.emit(self._bus, events.migration_proposed(local_count))
        return True

    async def accept_migration(self) -> BatchSyncResult | None:
        """Upload every local plan; completion is recorded on success."""
        result = await self.sync_now(SyncStrategy.UPLOAD_LOCAL)
        if result is not None and result.success:
            status = self._store.get_migration_status()
            status.completed = True
            self._store.set_migration_status(status)
            logger.info("Migration of local plans completed")
        return result

    def decline_migration(self) -> None:
        """Remember the refusal; the proposal is not repeated during the cooldown."""
        status = self._store.get_migration_status()
        status.declined = True
        status.last_proposed_at = self._clock()
        self._store.set_migration_status(status)
        logger.info("Migration declined")
