"""Single-record synchronization.

PlanSyncer reconciles exactly one local plan with its remote counterpart:
fetch the row, resolve the conflict by last-write-wins, then write the
winner to whichever side is stale. The caller always gets a plan back to
keep in memory, even when the write failed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from plansync.client.codec import row_to_plan
from plansync.client.sync import events
from plansync.client.sync.conflict import Resolution, resolve_conflict
from plansync.client.sync.types import PlanSyncResult
from plansync.core.types import SyncError

if TYPE_CHECKING:
    from plansync.client.sync.events import EventBus
    from plansync.client.sync.remote import RemotePlans
    from plansync.core.types import Plan

logger = logging.getLogger(__name__)


class PlanSyncer:
    """Synchronizes one plan at a time."""

    def __init__(self, remote: RemotePlans, bus: EventBus | None = None) -> None:
        """Initialize the syncer.

        Args:
            remote: Remote query surface.
            bus: Optional event bus for conflict notifications.
        """
        self._remote = remote
        self._bus = bus

    async def sync_plan(self, local: Plan, user_id: str) -> PlanSyncResult:
        """Synchronize ``local`` with its remote counterpart.

        Args:
            local: Local version of the plan.
            user_id: Owner of the plan.

        Returns:
            PlanSyncResult with the winning version.
        """
        try:
            return await self._sync(local, user_id)
        except Exception as e:
            logger.error(f"Unexpected error syncing plan {local.id}: {e}")
            return PlanSyncResult(success=False, plan=local, error=SyncError.from_exception(e))

    async def _sync(self, local: Plan, user_id: str) -> PlanSyncResult:
        fetched = await self._remote.fetch(user_id, local.id)
        if not fetched.success:
            return PlanSyncResult(success=False, plan=local, error=fetched.error)

        if fetched.row is None:
            upload = await self._remote.insert(local, user_id)
            if upload.success:
                events.emit(self._bus, events.plan_uploaded(local.name))
            else:
                logger.warning(f"Upload of new plan {local.id} failed: {upload.error}")
            return PlanSyncResult(success=upload.success, plan=local, error=upload.error)

        remote = row_to_plan(fetched.row)
        resolution = resolve_conflict(local.updated_at, remote.updated_at)

        if resolution is Resolution.ADOPT_REMOTE:
            logger.info(f"Conflict on {local.id}: remote version is newer")
            events.emit(self._bus, events.conflict_resolved(remote.name, "remote"))
            return PlanSyncResult(success=True, plan=remote, conflict=True)

        if resolution is Resolution.UPLOAD_LOCAL:
            logger.info(f"Conflict on {local.id}: local version is newer")
            events.emit(self._bus, events.conflict_resolved(local.name, "local"))
            if fetched.row.id is not None:
                upload = await self._remote.update(fetched.row.id, local, user_id)
            else:
                upload = await self._remote.upload(local, user_id)
            if not upload.success:
                logger.warning(f"Overwriting remote plan {local.id} failed: {upload.error}")
            return PlanSyncResult(
                success=upload.success,
                plan=local,
                conflict=True,
                error=upload.error,
            )

        return PlanSyncResult(success=True, plan=local)
