"""Remote query surface used by the sync engine.

RemotePlans turns plan-level operations (fetch, upload, delete...) into
parameterized statements executed through a Transport. Every method returns
a typed result; transport failures and unexpected exceptions are reported,
never raised. Non-syncable plans are skipped before reaching the transport.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from plansync.client.codec import (
    COUNT_PLANS,
    DELETE_PLAN,
    INSERT_PLAN,
    SELECT_PLAN,
    SELECT_PLAN_ROW_ID,
    SELECT_PLANS,
    UPDATE_PLAN,
    PlanRow,
    plan_to_row,
    row_to_plan,
)
from plansync.client.sync.types import (
    CountResult,
    DeleteResult,
    DownloadResult,
    FetchResult,
    UploadResult,
)
from plansync.core.types import SyncError

if TYPE_CHECKING:
    from plansync.client.transport import Transport
    from plansync.core.types import Plan

logger = logging.getLogger(__name__)


class RemotePlans:
    """Plan operations against the remote store."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    @property
    def transport(self) -> Transport:
        return self._transport

    async def fetch(self, user_id: str, plan_id: str) -> FetchResult:
        """Fetch the remote row for one plan."""
        try:
            result = await self._transport.execute(
                SELECT_PLAN, [self._transport.user_param(user_id), plan_id]
            )
            if not result.success:
                return FetchResult(success=False, error=result.error)
            row = PlanRow.from_dict(result.rows[0]) if result.rows else None
            return FetchResult(success=True, row=row)
        except Exception as e:
            logger.error(f"Error fetching plan {plan_id}: {e}")
            return FetchResult(success=False, error=SyncError.from_exception(e))

    async def fetch_all(self, user_id: str) -> DownloadResult:
        """Download every remote plan of a user, newest first."""
        try:
            result = await self._transport.execute(
                SELECT_PLANS, [self._transport.user_param(user_id)]
            )
            if not result.success:
                logger.error(f"Download failed: {result.error}")
                return DownloadResult(success=False, error=result.error)
            plans = [row_to_plan(row) for row in result.rows]
            logger.debug(f"Downloaded {len(plans)} plans")
            return DownloadResult(success=True, plans=plans)
        except Exception as e:
            logger.error(f"Error downloading plans: {e}")
            return DownloadResult(success=False, error=SyncError.from_exception(e))

    async def count(self, user_id: str) -> CountResult:
        """Count remote plans of a user."""
        try:
            result = await self._transport.execute(
                COUNT_PLANS, [self._transport.user_param(user_id)]
            )
            if not result.success:
                return CountResult(success=False, error=result.error)
            total = int(result.rows[0]["total"]) if result.rows else 0
            return CountResult(success=True, count=total)
        except Exception as e:
            logger.error(f"Error counting plans: {e}")
            return CountResult(success=False, error=SyncError.from_exception(e))

    async def insert(self, plan: Plan, user_id: str) -> UploadResult:
        """Insert a new remote row for ``plan``."""
        if not plan.is_syncable:
            logger.debug(f"Skipping insert of non-syncable plan {plan.id}")
            return UploadResult(success=True)
        try:
            row = plan_to_row(plan, user_id)
            result = await self._transport.execute(
                INSERT_PLAN, row.insert_params(self._transport.user_param(user_id))
            )
            if not result.success:
                return UploadResult(success=False, error=result.error)
            return UploadResult(success=True, synced=1)
        except Exception as e:
            logger.error(f"Error inserting plan {plan.id}: {e}")
            return UploadResult(success=False, error=SyncError.from_exception(e))

    async def update(self, row_id: int, plan: Plan, user_id: str) -> UploadResult:
        """Overwrite the remote row ``row_id`` with ``plan``.

        The local ``updated_at`` is written as-is so the next comparison
        sees both sides as equal.
        """
        if not plan.is_syncable:
            logger.debug(f"Skipping update of non-syncable plan {plan.id}")
            return UploadResult(success=True)
        try:
            row = plan_to_row(plan, user_id)
            result = await self._transport.execute(
                UPDATE_PLAN, row.update_params(row_id, self._transport.user_param(user_id))
            )
            if not result.success:
                return UploadResult(success=False, error=result.error)
            return UploadResult(success=True, synced=1)
        except Exception as e:
            logger.error(f"Error updating plan {plan.id}: {e}")
            return UploadResult(success=False, error=SyncError.from_exception(e))

    async def upload(self, plan: Plan, user_id: str) -> UploadResult:
        """Write ``plan`` remotely: update its row if one exists, insert otherwise."""
        if not plan.is_syncable:
            logger.debug(f"Skipping upload of non-syncable plan {plan.id}")
            return UploadResult(success=True)
        try:
            lookup = await self._transport.execute(
                SELECT_PLAN_ROW_ID, [self._transport.user_param(user_id), plan.id]
            )
            if not lookup.success:
                return UploadResult(success=False, error=lookup.error)
        except Exception as e:
            logger.error(f"Error looking up plan {plan.id}: {e}")
            return UploadResult(success=False, error=SyncError.from_exception(e))

        if lookup.rows:
            return await self.update(int(lookup.rows[0]["id"]), plan, user_id)
        return await self.insert(plan, user_id)

    async def delete(self, user_id: str, plan_id: str) -> DeleteResult:
        """Delete the remote row of a plan. Deleting a missing row succeeds."""
        try:
            result = await self._transport.execute(
                DELETE_PLAN, [self._transport.user_param(user_id), plan_id]
            )
            if not result.success:
                return DeleteResult(success=False, error=result.error)
            return DeleteResult(success=True)
        except Exception as e:
            logger.error(f"Error deleting plan {plan_id}: {e}")
            return DeleteResult(success=False, error=SyncError.from_exception(e))
