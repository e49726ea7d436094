"""Backup export of the remote plan store.

Writes every stored plan row to a timestamped JSON file before risky
maintenance such as schema migrations.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from plansync.server.database import Database

logger = logging.getLogger(__name__)

BACKUP_TABLE = "monthly_plans"


@dataclass
class BackupReport:
    """Outcome of a backup export."""

    path: Path
    count: int
    per_user: dict[str, int]


def backup_plans(db: Database, backup_dir: Path, now: datetime | None = None) -> BackupReport:
    """Export all plan rows to ``backup_dir``.

    Args:
        db: Remote store database.
        backup_dir: Directory receiving the backup (created if missing).
        now: Timestamp used for the file name (defaults to current time).

    Returns:
        BackupReport describing what was written.
    """
    now = now or datetime.now(UTC)
    rows = db.export_plans()

    backup_dir.mkdir(parents=True, exist_ok=True)
    stamp = now.strftime("%Y-%m-%dT%H-%M-%S")
    path = backup_dir / f"plansync-backup-{stamp}.json"

    payload = {
        "timestamp": now.isoformat(),
        "table": BACKUP_TABLE,
        "count": len(rows),
        "data": rows,
    }
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    per_user = dict(Counter(row["user_id"] for row in rows))
    logger.info("Backed up %d plans for %d users to %s", len(rows), len(per_user), path)
    return BackupReport(path=path, count=len(rows), per_user=per_user)
