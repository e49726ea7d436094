"""Last-write-wins conflict resolution.

Compares the modification timestamps of a local plan and its remote
counterpart, at whole-record granularity:

| Remote row | Timestamps       | Resolution    | Network write        |
|------------|------------------|---------------|----------------------|
| absent     | -                | UPLOAD_NEW    | insert local         |
| present    | remote > local   | ADOPT_REMOTE  | none                 |
| present    | local > remote   | UPLOAD_LOCAL  | overwrite remote row |
| present    | equal            | KEEP_LOCAL    | none                 |
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum, auto


class Resolution(Enum):
    """Outcome of comparing a local plan with its remote counterpart."""

    UPLOAD_NEW = auto()
    ADOPT_REMOTE = auto()
    UPLOAD_LOCAL = auto()
    KEEP_LOCAL = auto()

    @property
    def winner(self) -> str:
        """Side whose version is kept: "local" or "remote"."""
        return "remote" if self is Resolution.ADOPT_REMOTE else "local"

    @property
    def needs_upload(self) -> bool:
        return self in (Resolution.UPLOAD_NEW, Resolution.UPLOAD_LOCAL)

    @property
    def is_conflict(self) -> bool:
        """True when both sides existed and one replaced the other."""
        return self in (Resolution.ADOPT_REMOTE, Resolution.UPLOAD_LOCAL)


def resolve_conflict(local_updated_at: datetime, remote_updated_at: datetime | None) -> Resolution:
    """Decide which version of a plan wins.

    Args:
        local_updated_at: Modification time of the local plan.
        remote_updated_at: Modification time of the remote row, or None
            when the plan does not exist remotely.

    Returns:
        Resolution to apply.
    """
    if remote_updated_at is None:
        return Resolution.UPLOAD_NEW
    if remote_updated_at > local_updated_at:
        return Resolution.ADOPT_REMOTE
    if local_updated_at > remote_updated_at:
        return Resolution.UPLOAD_LOCAL
    return Resolution.KEEP_LOCAL
