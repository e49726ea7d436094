"""Shared result types for sync operations.

This module provides:
- UploadResult, DeleteResult, CountResult: Remote operation results
- DownloadResult: Plans fetched from the remote store
- FetchResult: Single remote row lookup
- PlanSyncResult: Outcome of synchronizing one plan
- BatchSyncResult: Outcome of synchronizing a collection

None of the sync operations raise; failures travel in the ``error`` field.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from plansync.client.codec import PlanRow
from plansync.core.types import Plan, SyncError


@dataclass
class UploadResult:
    """Result of writing one plan to the remote store."""

    success: bool
    synced: int = 0
    error: SyncError | None = None


@dataclass
class DeleteResult:
    """Result of deleting one plan remotely."""

    success: bool
    error: SyncError | None = None


@dataclass
class CountResult:
    """Number of remote plans for a user."""

    success: bool
    count: int = 0
    error: SyncError | None = None


@dataclass
class FetchResult:
    """Lookup of one remote row (``row`` is None when absent)."""

    success: bool
    row: PlanRow | None = None
    error: SyncError | None = None


@dataclass
class DownloadResult:
    """Plans fetched from the remote store."""

    success: bool
    plans: list[Plan] = field(default_factory=list)
    error: SyncError | None = None


@dataclass
class PlanSyncResult:
    """Outcome of synchronizing one plan.

    Attributes:
        success: False when the lookup or the write failed.
        plan: Winning version to keep in memory (local on write failure).
        conflict: True when timestamps differed and one side won.
        error: Failure details.
    """

    success: bool
    plan: Plan | None = None
    conflict: bool = False
    error: SyncError | None = None


@dataclass
class BatchSyncResult:
    """Outcome of synchronizing a whole collection.

    Attributes:
        success: False if any record or the download step failed.
        plans: Merged collection (always populated, never loses local data).
        synced_count: Records synchronized successfully.
        conflict_count: Records where one side won over the other.
        failed_count: Records kept as local version after a failure.
        downloaded_count: Remote-only records appended.
        error: Last failure seen, if any.
    """

    success: bool
    plans: list[Plan] = field(default_factory=list)
    synced_count: int = 0
    conflict_count: int = 0
    failed_count: int = 0
    downloaded_count: int = 0
    error: SyncError | None = None
