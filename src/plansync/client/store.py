"""Local durable store for plans.

This module provides:
- LocalPlanStore: SQLite-backed plan collection with an in-memory view

The store is loaded once with hydrate(); until then it reports
``hydrated = False`` and the sync engine must not compare it with the
remote store. Order of the collection is preserved across restarts.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from pathlib import Path

from plansync.client.codec import format_timestamp, parse_timestamp
from plansync.client.sync.migration import MigrationStatus
from plansync.core.types import Plan

logger = logging.getLogger(__name__)

MIGRATION_STATUS_KEY = "migration_status"
PENDING_DELETIONS_KEY = "pending_deletions"


def _plan_from_row(row: sqlite3.Row) -> Plan:
    data = json.loads(row["data"]) if row["data"] else {}
    return Plan(
        id=row["id"],
        name=row["name"],
        incomes=list(data.get("incomes") or []),
        expenses=list(data.get("expenses") or []),
        envelopes=list(data.get("envelopes") or []),
        created_at=parse_timestamp(row["created_at"]),
        updated_at=parse_timestamp(row["updated_at"]),
        is_syncable=bool(row["is_syncable"]),
    )


class LocalPlanStore:
    """SQLite-based local plan storage.

    Reads are served from memory after hydration; every write goes to
    SQLite first and then to the in-memory view.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the local store.

        Args:
            db_path: Path to SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # Lock for thread-safe database access
        self._lock = threading.RLock()

        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")

        self._create_tables()

        self._plans: dict[str, Plan] = {}
        self._hydrated = False

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS plans (
                id TEXT PRIMARY KEY,
                position INTEGER NOT NULL,
                name TEXT NOT NULL,
                data TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                is_syncable INTEGER NOT NULL DEFAULT 1
            );

            -- Key-value client state
            CREATE TABLE IF NOT EXISTS client_state (
                key TEXT PRIMARY KEY,
                value TEXT
            );
        """)

    @property
    def path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # === Hydration ===

    @property
    def hydrated(self) -> bool:
        """True once hydrate() has loaded the collection."""
        return self._hydrated

    def hydrate(self) -> list[Plan]:
        """Load every stored plan into memory.

        Returns:
            The loaded collection.
        """
        with self._lock:
            rows = self._conn.execute("SELECT * FROM plans ORDER BY position").fetchall()
            self._plans = {}
            for row in rows:
                plan = _plan_from_row(row)
                self._plans[plan.id] = plan
            self._hydrated = True
            logger.info(f"Loaded {len(self._plans)} local plans")
            return list(self._plans.values())

    # === Plan operations ===

    @property
    def plans(self) -> list[Plan]:
        """Snapshot of the collection, in order."""
        with self._lock:
            return list(self._plans.values())

    def syncable_count(self) -> int:
        with self._lock:
            return sum(1 for plan in self._plans.values() if plan.is_syncable)

    def get(self, plan_id: str) -> Plan | None:
        with self._lock:
            return self._plans.get(plan_id)

    def upsert(self, plan: Plan) -> None:
        """Insert or replace a plan. New plans go to the end of the collection."""
        with self._lock:
            row = self._conn.execute(
                "SELECT position FROM plans WHERE id = ?", (plan.id,)
            ).fetchone()
            if row is not None:
                position = row["position"]
            else:
                top = self._conn.execute("SELECT MAX(position) AS top FROM plans").fetchone()
                position = (top["top"] if top["top"] is not None else -1) + 1
            self._write(plan, position)
            self._plans[plan.id] = plan

    def remove(self, plan_id: str) -> bool:
        """Remove a plan.

        Returns:
            True if the plan existed.
        """
        with self._lock:
            cursor = self._conn.execute("DELETE FROM plans WHERE id = ?", (plan_id,))
            existed = self._plans.pop(plan_id, None) is not None
            return existed or cursor.rowcount > 0

    def replace_all(self, plans: list[Plan]) -> None:
        """Replace the whole collection in a single transaction."""
        with self._lock:
            self._conn.execute("BEGIN")
            try:
                self._conn.execute("DELETE FROM plans")
                for position, plan in enumerate(plans):
                    self._write(plan, position)
                self._conn.execute("COMMIT")
            except sqlite3.Error:
                self._conn.execute("ROLLBACK")
                raise
            self._plans = {plan.id: plan for plan in plans}

    def _write(self, plan: Plan, position: int) -> None:
        data = json.dumps(
            {"incomes": plan.incomes, "expenses": plan.expenses, "envelopes": plan.envelopes}
        )
        self._conn.execute(
            """
            INSERT OR REPLACE INTO plans
                (id, position, name, data, created_at, updated_at, is_syncable)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                plan.id,
                position,
                plan.name,
                data,
                format_timestamp(plan.created_at),
                format_timestamp(plan.updated_at),
                1 if plan.is_syncable else 0,
            ),
        )

    # === State operations ===

    def get_state(self, key: str) -> str | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM client_state WHERE key = ?", (key,)
            ).fetchone()
        return row["value"] if row else None

    def set_state(self, key: str, value: str) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO client_state (key, value) VALUES (?, ?)",
                (key, value),
            )

    def get_migration_status(self) -> MigrationStatus:
        return MigrationStatus.from_json(self.get_state(MIGRATION_STATUS_KEY))

    def set_migration_status(self, status: MigrationStatus) -> None:
        self.set_state(MIGRATION_STATUS_KEY, status.to_json())

    def get_pending_deletions(self) -> list[str]:
        """Ids of plans deleted locally whose remote deletion has not succeeded yet."""
        raw = self.get_state(PENDING_DELETIONS_KEY)
        return [str(plan_id) for plan_id in json.loads(raw)] if raw else []

    def add_pending_deletion(self, plan_id: str) -> None:
        with self._lock:
            pending = self.get_pending_deletions()
            if plan_id not in pending:
                pending.append(plan_id)
                self.set_state(PENDING_DELETIONS_KEY, json.dumps(pending))

    def discard_pending_deletion(self, plan_id: str) -> None:
        with self._lock:
            pending = self.get_pending_deletions()
            if plan_id in pending:
                pending.remove(plan_id)
                self.set_state(PENDING_DELETIONS_KEY, json.dumps(pending))
