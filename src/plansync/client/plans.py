"""Local plan mutations with cloud persistence.

PlanService is the entry point for creating, editing and deleting plans.
Local state is always written first; the cloud is updated afterwards and
its failures never undo a local change.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from plansync.client.sync import events
from plansync.client.sync.retry import retry_upload
from plansync.core.config import SyncSettings
from plansync.core.types import Plan

if TYPE_CHECKING:
    from plansync.client.store import LocalPlanStore
    from plansync.client.sync.events import EventBus
    from plansync.client.sync.orchestrator import SyncOrchestrator
    from plansync.client.sync.remote import RemotePlans
    from plansync.client.sync.types import DeleteResult, UploadResult

logger = logging.getLogger(__name__)


class PlanService:
    """Creates and edits plans for the current user."""

    def __init__(
        self,
        store: LocalPlanStore,
        orchestrator: SyncOrchestrator,
        remote: RemotePlans,
        settings: SyncSettings | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._store = store
        self._orchestrator = orchestrator
        self._remote = remote
        self._settings = settings or SyncSettings()
        self._bus = bus

    @property
    def user_id(self) -> str | None:
        return self._orchestrator.user_id

    async def create_plan(
        self,
        name: str,
        *,
        incomes: list[Any] | None = None,
        expenses: list[Any] | None = None,
        envelopes: list[Any] | None = None,
    ) -> tuple[Plan, UploadResult | None]:
        """Create a plan and save it to the cloud.

        The first save is retried with backoff. If it still fails, the plan
        stays local-only and the user is told so.

        Returns:
            The new plan and the upload result (None when signed out).
        """
        plan = Plan.new(
            _clean_name(name), incomes=incomes, expenses=expenses, envelopes=envelopes
        )
        self._store.upsert(plan)
        logger.info(f"Created plan {plan.id} ({plan.name})")

        user_id = self.user_id
        if user_id is None:
            return plan, None

        result = await retry_upload(
            lambda: self._remote.insert(plan, user_id),
            max_retries=self._settings.max_retries,
            base_delay=self._settings.base_delay,
            max_delay=self._settings.max_delay,
            label=f'"{plan.name}"',
        )
        if result.success:
            events.emit(self._bus, events.plan_created(plan.name))
        else:
            logger.warning(f"Plan {plan.id} kept locally only: {result.error}")
            events.emit(self._bus, events.plan_created_local_only(plan.name))
        return plan, result

    def create_demo_plan(self, name: str = "Demo plan") -> Plan:
        """Create a sample plan that is never synchronized."""
        plan = Plan.new(_clean_name(name), is_syncable=False)
        self._store.upsert(plan)
        logger.info(f"Created demo plan {plan.id}")
        return plan

    def update_plan(self, plan_id: str, **changes: Any) -> Plan:
        """Apply ``changes`` to a plan and schedule a sync.

        Raises:
            KeyError: If the plan does not exist.
            ValueError: If an immutable field is changed.
        """
        plan = self._store.get(plan_id)
        if plan is None:
            raise KeyError(plan_id)
        updated = plan.with_changes(**changes)
        self._store.upsert(updated)
        if updated.is_syncable:
            self._orchestrator.request_sync()
        return updated

    def rename_plan(self, plan_id: str, name: str) -> Plan:
        """Rename a plan. Renaming to the current name changes nothing.

        Raises:
            KeyError: If the plan does not exist.
            ValueError: If the name is empty.
        """
        clean = _clean_name(name)
        plan = self._store.get(plan_id)
        if plan is None:
            raise KeyError(plan_id)
        if plan.name == clean:
            return plan
        return self.update_plan(plan_id, name=clean)

    async def delete_plan(self, plan_id: str) -> DeleteResult | None:
        """Delete a plan locally, then from the cloud.

        A remote deletion that cannot run now (signed out, or failed) is
        remembered and retried by the next sync, which also keeps the plan
        from being downloaded again meanwhile.

        Returns:
            The remote result, or None when nothing was deleted remotely.

        Raises:
            KeyError: If the plan does not exist.
        """
        plan = self._store.get(plan_id)
        if plan is None:
            raise KeyError(plan_id)
        self._store.remove(plan_id)
        logger.info(f"Deleted plan {plan_id} locally")

        if not plan.is_syncable:
            return None

        user_id = self.user_id
        if user_id is None:
            self._store.add_pending_deletion(plan_id)
            return None

        result = await self._remote.delete(user_id, plan_id)
        if not result.success:
            logger.error(f"Remote deletion of plan {plan_id} failed: {result.error}")
            self._store.add_pending_deletion(plan_id)
            events.emit(self._bus, events.sync_failed(f'could not delete "{plan.name}" remotely'))
        return result


def _clean_name(name: str) -> str:
    clean = name.strip()
    if not clean:
        raise ValueError("Plan name cannot be empty")
    return clean
