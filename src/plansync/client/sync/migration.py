"""Migration of anonymous local plans into a user's account.

The first time a previously anonymous user signs in, their local plans can
be uploaded to the cloud. The proposal is only made when:
- the migration has not completed before,
- there is at least one syncable local plan,
- it was not already proposed in this session,
- the user did not decline it within the cooldown window (7 days).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timedelta

from plansync.client.codec import format_timestamp, parse_timestamp

DEFAULT_DECLINE_COOLDOWN = timedelta(days=7)


@dataclass
class MigrationStatus:
    """Persisted state of the local-data migration."""

    completed: bool = False
    declined: bool = False
    last_proposed_at: datetime | None = None

    def to_json(self) -> str:
        return json.dumps(
            {
                "completed": self.completed,
                "declined": self.declined,
                "last_proposed_at": (
                    format_timestamp(self.last_proposed_at) if self.last_proposed_at else None
                ),
            }
        )

    @classmethod
    def from_json(cls, raw: str | None) -> MigrationStatus:
        if not raw:
            return cls()
        data = json.loads(raw)
        last = data.get("last_proposed_at")
        return cls(
            completed=bool(data.get("completed")),
            declined=bool(data.get("declined")),
            last_proposed_at=parse_timestamp(last) if last else None,
        )


def should_propose_migration(
    status: MigrationStatus,
    local_syncable_count: int,
    now: datetime,
    cooldown: timedelta = DEFAULT_DECLINE_COOLDOWN,
    proposed_this_session: bool = False,
) -> bool:
    """Decide whether to offer moving local plans into the account."""
    if status.completed or local_syncable_count == 0 or proposed_this_session:
        return False
    if status.declined and status.last_proposed_at is not None:
        if now - status.last_proposed_at < cooldown:
            return False
    return True
