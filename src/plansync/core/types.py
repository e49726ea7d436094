"""Shared value types for plansync.

This module provides:
- Plan: The unit of synchronization (one monthly budget)
- ErrorCode: Error taxonomy shared by transports and the sync engine
- SyncError: Typed error value carried by every sync result
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any


# Query parameter replaced server-side with the authenticated user id
USER_ID_SENTINEL = "__USER_ID__"


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


class ErrorCode(Enum):
    """Error taxonomy for sync operations."""

    NETWORK = "NETWORK"  # Transport unreachable or timed out
    AUTH = "AUTH"  # Caller is not authenticated
    SERVER = "SERVER"  # Remote store misconfigured or failing
    CONFLICT = "CONFLICT"  # Reserved for field-level conflicts
    UNKNOWN = "UNKNOWN"

    @property
    def retryable(self) -> bool:
        """Whether an operation failing with this code may be retried."""
        return self in (ErrorCode.NETWORK, ErrorCode.UNKNOWN)


@dataclass
class SyncError:
    """Error value returned by sync operations.

    Attributes:
        code: Error category.
        message: Human-readable message.
        details: Optional underlying cause (exception, response body...).
        attempts: Number of attempts made before giving up.
        exhausted: True when the error is final after retries ran out.
    """

    code: ErrorCode
    message: str
    details: Any = None
    attempts: int = 1
    exhausted: bool = False

    @classmethod
    def from_exception(cls, exc: BaseException, code: ErrorCode = ErrorCode.UNKNOWN) -> SyncError:
        """Wrap an unexpected exception."""
        return cls(code=code, message=str(exc) or type(exc).__name__, details=exc)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


@dataclass
class Plan:
    """A monthly budget plan.

    The line item collections are opaque to the sync engine; they only need
    to be JSON serializable.

    Attributes:
        id: Stable identifier assigned at local creation.
        name: User-visible label.
        incomes: Income line items.
        expenses: Expense line items.
        envelopes: Envelope line items.
        created_at: Creation timestamp, never mutated.
        updated_at: Last modification timestamp, bumped by every change.
        is_syncable: False for demo content that never leaves the device.
    """

    id: str
    name: str
    incomes: list[Any] = field(default_factory=list)
    expenses: list[Any] = field(default_factory=list)
    envelopes: list[Any] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    is_syncable: bool = True

    @classmethod
    def new(
        cls,
        name: str,
        *,
        incomes: list[Any] | None = None,
        expenses: list[Any] | None = None,
        envelopes: list[Any] | None = None,
        is_syncable: bool = True,
    ) -> Plan:
        """Create a fresh plan with a new identifier."""
        now = utc_now()
        return cls(
            id=str(uuid.uuid4()),
            name=name,
            incomes=list(incomes or []),
            expenses=list(expenses or []),
            envelopes=list(envelopes or []),
            created_at=now,
            updated_at=now,
            is_syncable=is_syncable,
        )

    def with_changes(self, **changes: Any) -> Plan:
        """Return a modified copy with ``updated_at`` bumped.

        ``id`` and ``created_at`` cannot be changed.

        Raises:
            ValueError: If an immutable field is passed.
        """
        frozen = {"id", "created_at", "updated_at"} & changes.keys()
        if frozen:
            raise ValueError(f"Cannot modify immutable field(s): {', '.join(sorted(frozen))}")
        now = utc_now()
        # Keep the order strict even when the clock has not advanced
        if now <= self.updated_at:
            now = self.updated_at + timedelta(microseconds=1)
        return replace(self, updated_at=now, **changes)
