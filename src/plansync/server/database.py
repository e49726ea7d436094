"""Remote store database using SQLAlchemy with SQLite.

This module provides:
- Positional parameter binding for client-supplied queries
- Token-based authentication
- Plan export for backups
"""

from __future__ import annotations

import hashlib
import logging
import re
import secrets
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, select, text
from sqlalchemy.orm import Session

from plansync.server.models import Base, MonthlyPlanRow, Token

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\$(\d+)")


def hash_token(token: str) -> str:
    """Hash a token using SHA-256.

    Args:
        token: Raw token string.

    Returns:
        Hex-encoded SHA-256 hash.
    """
    return hashlib.sha256(token.encode()).hexdigest()


def bind_positional(query: str, params: Sequence[Any]) -> tuple[str, dict[str, Any]]:
    """Turn ``$1..$n`` placeholders into named bind parameters.

    Values are never written into the query text; SQLAlchemy binds them.

    Args:
        query: Query text using ``$1``-style placeholders.
        params: Positional parameter values.

    Returns:
        Tuple of (query with ``:pN`` placeholders, bind dictionary).

    Raises:
        ValueError: If a placeholder has no matching parameter.
    """
    binds: dict[str, Any] = {}

    def _replace(match: re.Match[str]) -> str:
        index = int(match.group(1))
        if index < 1 or index > len(params):
            raise ValueError(
                f"Placeholder ${index} has no matching parameter ({len(params)} given)"
            )
        name = f"p{index}"
        binds[name] = params[index - 1]
        return f":{name}"

    return _PLACEHOLDER.sub(_replace, query), binds


class Database:
    """SQLAlchemy database holding remote plan rows and user tokens.

    Uses SQLite with WAL mode for better concurrency with multiple readers.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the database.

        Args:
            db_path: Path to the SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # check_same_thread=False: queries run from worker threads
        self._engine: Engine = create_engine(
            f"sqlite:///{self._db_path}",
            connect_args={"check_same_thread": False},
            echo=False,
        )

        with self._engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL")

        Base.metadata.create_all(self._engine)

    @property
    def path(self) -> Path:
        """Location of the database file."""
        return self._db_path

    def close(self) -> None:
        """Close the database connection."""
        self._engine.dispose()

    def _session(self) -> Session:
        """Create a new database session."""
        return Session(self._engine)

    # === Query execution ===

    def execute(self, query: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Execute a parameterized query in its own transaction.

        Args:
            query: Query text with ``$1``-style placeholders.
            params: Positional parameter values.

        Returns:
            Result rows as dictionaries (empty for statements without rows).

        Raises:
            ValueError: If placeholders and parameters do not match.
            sqlalchemy.exc.SQLAlchemyError: On store errors.
        """
        statement, binds = bind_positional(query, params)
        with self._engine.begin() as conn:
            result = conn.execute(text(statement), binds)
            if not result.returns_rows:
                return []
            return [dict(row._mapping) for row in result]

    # === Token operations ===

    def create_token(
        self,
        user_id: str,
        expires_in: timedelta | None = None,
    ) -> tuple[str, Token]:
        """Create a new bearer token for a user.

        Args:
            user_id: Opaque identifier from the identity provider.
            expires_in: Optional expiration duration.

        Returns:
            Tuple of (raw_token, Token object).
        """
        raw_token = "ps_" + secrets.token_urlsafe(32)
        now = datetime.now(UTC)
        expires_at = (now + expires_in) if expires_in else None

        with self._session() as session:
            token = Token(
                user_id=user_id,
                token_hash=hash_token(raw_token),
                created_at=now,
                expires_at=expires_at,
            )
            session.add(token)
            session.commit()
            session.refresh(token)
            session.expunge(token)
            return raw_token, token

    def validate_token(self, raw_token: str) -> Token | None:
        """Validate a token and return it if valid.

        Args:
            raw_token: Raw token string.

        Returns:
            Token if valid, None otherwise.
        """
        token_hash = hash_token(raw_token)
        with self._session() as session:
            stmt = select(Token).where(Token.token_hash == token_hash, Token.revoked == False)  # noqa: E712
            token = session.execute(stmt).scalar_one_or_none()

            if token is None:
                return None

            if token.expires_at:
                expires_at = token.expires_at
                # SQLite hands back naive datetimes
                if expires_at.tzinfo is None:
                    expires_at = expires_at.replace(tzinfo=UTC)
                if expires_at < datetime.now(UTC):
                    return None

            session.expunge(token)
            return token

    def revoke_token(self, raw_token: str) -> bool:
        """Revoke a token.

        Returns:
            True if a token was revoked.
        """
        token_hash = hash_token(raw_token)
        with self._session() as session:
            stmt = select(Token).where(Token.token_hash == token_hash)
            token = session.execute(stmt).scalar_one_or_none()
            if token is None:
                return False
            token.revoked = True
            session.commit()
            return True

    # === Backup ===

    def export_plans(self) -> list[dict[str, Any]]:
        """Return every stored plan row, newest first."""
        with self._session() as session:
            stmt = select(MonthlyPlanRow).order_by(MonthlyPlanRow.created_at.desc())
            return [
                {
                    "id": row.id,
                    "user_id": row.user_id,
                    "plan_id": row.plan_id,
                    "name": row.name,
                    "data": row.data,
                    "created_at": row.created_at,
                    "updated_at": row.updated_at,
                }
                for row in session.execute(stmt).scalars()
            ]
