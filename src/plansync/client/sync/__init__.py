"""Plan synchronization engine.

Architecture:
    SyncOrchestrator → BatchSynchronizer → PlanSyncer → RemotePlans → Transport

Components:
- **SyncOrchestrator**: Session state machine (hydration, strategy choice, logout)
- **BatchSynchronizer**: Bounded-concurrency sync of a whole collection
- **PlanSyncer**: Last-write-wins sync of a single plan
- **retry_upload**: Exponential backoff for first saves
- **Debouncer**: Coalesces sync requests after local edits
- **EventBus**: Observer list for UI-facing sync events
"""

from plansync.client.sync.events import EventBus, SyncEvent, SyncEventType
from plansync.client.sync.batch import BatchSynchronizer, batched, partition
from plansync.client.sync.conflict import Resolution, resolve_conflict
from plansync.client.sync.debounce import Debouncer
from plansync.client.sync.migration import MigrationStatus, should_propose_migration
from plansync.client.sync.orchestrator import OrchestratorState, SyncOrchestrator, SyncStrategy
from plansync.client.sync.record import PlanSyncer
from plansync.client.sync.remote import RemotePlans
from plansync.client.sync.retry import (
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_BASE_DELAY,
    DEFAULT_MAX_DELAY,
    DEFAULT_MAX_RETRIES,
    retry_upload,
)
from plansync.client.sync.types import (
    BatchSyncResult,
    CountResult,
    DeleteResult,
    DownloadResult,
    FetchResult,
    PlanSyncResult,
    UploadResult,
)

__all__ = [
    # Orchestration
    "OrchestratorState",
    "SyncOrchestrator",
    "SyncStrategy",
    # Engine
    "BatchSynchronizer",
    "PlanSyncer",
    "RemotePlans",
    "batched",
    "partition",
    # Conflict
    "Resolution",
    "resolve_conflict",
    # Retry
    "DEFAULT_BACKOFF_MULTIPLIER",
    "DEFAULT_BASE_DELAY",
    "DEFAULT_MAX_DELAY",
    "DEFAULT_MAX_RETRIES",
    "retry_upload",
    # Scheduling
    "Debouncer",
    # Migration
    "MigrationStatus",
    "should_propose_migration",
    # Events
    "EventBus",
    "SyncEvent",
    "SyncEventType",
    # Results
    "BatchSyncResult",
    "CountResult",
    "DeleteResult",
    "DownloadResult",
    "FetchResult",
    "PlanSyncResult",
    "UploadResult",
]
