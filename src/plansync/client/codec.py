"""Conversion between in-memory plans and remote rows.

This module is the only place that knows the remote wire schema:
- PlanRow: Remote row representation
- plan_to_row / row_to_plan: Codec functions
- Statement texts used by the remote query surface

Wire format:
    ``data`` is a JSON document ``{"incomes": [...], "expenses": [...],
    "envelopes": [...]}``. Timestamps travel as ISO-8601 strings with a UTC
    offset; naive timestamps read back are taken as UTC.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from plansync.core.types import Plan

# === Statements ===
# $1-style placeholders; the transport binds the values.

SELECT_PLAN = (
    "SELECT id, user_id, plan_id, name, data, created_at, updated_at "
    "FROM monthly_plans WHERE user_id = $1 AND plan_id = $2 LIMIT 1"
)
SELECT_PLAN_ROW_ID = "SELECT id FROM monthly_plans WHERE user_id = $1 AND plan_id = $2 LIMIT 1"
SELECT_PLANS = (
    "SELECT id, user_id, plan_id, name, data, created_at, updated_at "
    "FROM monthly_plans WHERE user_id = $1 ORDER BY created_at DESC"
)
COUNT_PLANS = "SELECT COUNT(*) AS total FROM monthly_plans WHERE user_id = $1"
INSERT_PLAN = (
    "INSERT INTO monthly_plans (user_id, plan_id, name, data, created_at, updated_at) "
    "VALUES ($1, $2, $3, $4, $5, $6)"
)
UPDATE_PLAN = (
    "UPDATE monthly_plans SET name = $1, data = $2, updated_at = $3 "
    "WHERE id = $4 AND user_id = $5"
)
DELETE_PLAN = "DELETE FROM monthly_plans WHERE user_id = $1 AND plan_id = $2"


def format_timestamp(value: datetime) -> str:
    """Serialize a timestamp for the wire."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse a wire timestamp into an aware UTC datetime."""
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


@dataclass
class PlanRow:
    """Remote row for one plan.

    Attributes:
        id: Surrogate key assigned by the remote store (None before insert).
        user_id: Owner of the row.
        plan_id: Plan identifier, unique together with user_id.
        name: Plan name.
        data: Decoded JSON payload with the line item collections.
        created_at: ISO-8601 creation timestamp.
        updated_at: ISO-8601 modification timestamp.
    """

    id: int | None
    user_id: str
    plan_id: str
    name: str
    data: dict[str, Any]
    created_at: str
    updated_at: str

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> PlanRow:
        """Create from a result row dictionary."""
        data = row.get("data") or {}
        if isinstance(data, (str, bytes)):
            data = json.loads(data)
        return cls(
            id=row.get("id"),
            user_id=row["user_id"],
            plan_id=row["plan_id"],
            name=row.get("name") or "",
            data=dict(data),
            created_at=_as_wire(row["created_at"]),
            updated_at=_as_wire(row["updated_at"]),
        )

    def encoded_data(self) -> str:
        """JSON text stored in the ``data`` column."""
        return json.dumps(self.data, separators=(",", ":"))

    def insert_params(self, user_param: Any) -> list[Any]:
        """Positional parameters for INSERT_PLAN."""
        return [
            user_param,
            self.plan_id,
            self.name,
            self.encoded_data(),
            self.created_at,
            self.updated_at,
        ]

    def update_params(self, row_id: int, user_param: Any) -> list[Any]:
        """Positional parameters for UPDATE_PLAN."""
        return [self.name, self.encoded_data(), self.updated_at, row_id, user_param]


def _as_wire(value: str | datetime) -> str:
    return format_timestamp(value) if isinstance(value, datetime) else value


def plan_to_row(plan: Plan, user_id: str) -> PlanRow:
    """Encode a plan for the remote store."""
    return PlanRow(
        id=None,
        user_id=user_id,
        plan_id=plan.id,
        name=plan.name,
        data={
            "incomes": plan.incomes,
            "expenses": plan.expenses,
            "envelopes": plan.envelopes,
        },
        created_at=format_timestamp(plan.created_at),
        updated_at=format_timestamp(plan.updated_at),
    )


def row_to_plan(row: PlanRow | dict[str, Any]) -> Plan:
    """Decode a remote row into a plan.

    Rows only ever hold syncable plans, so the result is always syncable.
    """
    if isinstance(row, dict):
        row = PlanRow.from_dict(row)
    return Plan(
        id=row.plan_id,
        name=row.name,
        incomes=list(row.data.get("incomes") or []),
        expenses=list(row.data.get("expenses") or []),
        envelopes=list(row.data.get("envelopes") or []),
        created_at=parse_timestamp(row.created_at),
        updated_at=parse_timestamp(row.updated_at),
        is_syncable=True,
    )
