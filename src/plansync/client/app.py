"""Client-side wiring of the sync engine.

PlanSyncClient assembles the local store, the transport, the engine and
the plan service for one signed-in user. The transport is chosen by the
caller; nothing here inspects the runtime environment.
"""

from __future__ import annotations

import logging
from pathlib import Path

from plansync.client.plans import PlanService
from plansync.client.store import LocalPlanStore
from plansync.client.sync.events import EventBus
from plansync.client.sync.orchestrator import SyncOrchestrator
from plansync.client.sync.remote import RemotePlans
from plansync.client.transport import ProxyTransport, Transport
from plansync.core.config import ServerConfig, SyncSettings

logger = logging.getLogger(__name__)


class PlanSyncClient:
    """A local plan collection synchronized for one user."""

    def __init__(
        self,
        db_path: Path,
        transport: Transport,
        user_id: str | None,
        settings: SyncSettings | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self.settings = settings or SyncSettings.from_env()
        self.bus = bus or EventBus()
        self.transport = transport
        self.user_id = user_id
        self.store = LocalPlanStore(db_path)
        self.remote = RemotePlans(transport)
        self.orchestrator = SyncOrchestrator(
            self.store, self.remote, bus=self.bus, settings=self.settings
        )
        self.plans = PlanService(
            self.store, self.orchestrator, self.remote, settings=self.settings, bus=self.bus
        )

    @classmethod
    def connect(
        cls,
        db_path: Path,
        config: ServerConfig,
        user_id: str | None,
        settings: SyncSettings | None = None,
        bus: EventBus | None = None,
    ) -> PlanSyncClient:
        """Build a client talking to a query proxy."""
        return cls(db_path, ProxyTransport(config), user_id, settings=settings, bus=bus)

    async def start(self, sign_in: bool = True) -> None:
        """Load local plans and, if requested, open the user's session."""
        self.store.hydrate()
        if sign_in and self.user_id is not None:
            await self.orchestrator.login(self.user_id)
            await self.orchestrator.mark_hydrated()

    async def close(self) -> None:
        """Run any scheduled sync, then release resources."""
        try:
            await self.orchestrator.flush()
        finally:
            self.orchestrator.logout()
            aclose = getattr(self.transport, "aclose", None)
            if aclose is not None:
                await aclose()
            self.store.close()

    async def __aenter__(self) -> PlanSyncClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
