"""Transport adapters between the sync engine and the remote store.

This module provides:
- QueryResult: Typed success/error result of one query
- Transport: Protocol implemented by every adapter
- DirectTransport: Same-process adapter over a server Database
- ProxyTransport: HTTP adapter posting to the authenticated query proxy

Adapters never raise for remote failures; every outcome is a QueryResult.
Which adapter is used is decided once, at startup, by whoever builds the
engine.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

import httpx
from sqlalchemy.exc import SQLAlchemyError

from plansync.core.types import USER_ID_SENTINEL, ErrorCode, SyncError

if TYPE_CHECKING:
    from plansync.core.config import ServerConfig
    from plansync.server.database import Database

logger = logging.getLogger(__name__)


@dataclass
class QueryResult:
    """Result of executing one query."""

    success: bool
    rows: list[dict[str, Any]] = field(default_factory=list)
    error: SyncError | None = None

    @classmethod
    def ok(cls, rows: list[dict[str, Any]] | None = None) -> QueryResult:
        return cls(success=True, rows=list(rows or []))

    @classmethod
    def fail(cls, code: ErrorCode, message: str, details: Any = None) -> QueryResult:
        return cls(success=False, error=SyncError(code=code, message=message, details=details))


class Transport(Protocol):
    """Protocol for remote store adapters."""

    async def execute(self, query: str, params: list[Any]) -> QueryResult:
        """Execute a parameterized query.

        Args:
            query: Query text with ``$1``-style placeholders.
            params: Positional parameter values.

        Returns:
            QueryResult with rows or a typed error.
        """
        ...

    def user_param(self, user_id: str) -> Any:
        """Value to bind wherever a query needs the user id."""
        ...


class DirectTransport:
    """Adapter executing queries on a Database in the same process.

    Meant for trusted server-side code (scripts, admin tasks) where the
    user id is already authenticated.
    """

    def __init__(self, database: Database, user_id: str) -> None:
        """Initialize the adapter.

        Args:
            database: Remote store database.
            user_id: Authenticated user the adapter acts for.
        """
        self._db = database
        self._user_id = user_id

    def user_param(self, user_id: str) -> Any:
        return self._user_id

    async def execute(self, query: str, params: list[Any]) -> QueryResult:
        bound = [self._user_id if p == USER_ID_SENTINEL else p for p in params]
        try:
            rows = await asyncio.to_thread(self._db.execute, query, bound)
        except SQLAlchemyError as e:
            logger.error(f"Store error: {e}")
            return QueryResult.fail(ErrorCode.SERVER, "Remote store error", details=e)
        except Exception as e:
            logger.error(f"Unexpected error executing query: {e}")
            return QueryResult.fail(ErrorCode.UNKNOWN, str(e), details=e)
        return QueryResult.ok(rows)


class ProxyTransport:
    """Adapter posting queries to the authenticated query proxy.

    The user id is never sent: every user-scoped parameter is the
    ``__USER_ID__`` sentinel, which the proxy replaces with the id tied to
    the bearer token.
    """

    def __init__(
        self,
        config: ServerConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            config: Server connection settings.
            client: Optional preconfigured httpx client.
        """
        self._config = config
        self._client = client or httpx.AsyncClient(
            base_url=config.server_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers={"Authorization": f"Bearer {config.token}"},
        )

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> ProxyTransport:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    def user_param(self, user_id: str) -> Any:
        return USER_ID_SENTINEL

    async def health_check(self) -> bool:
        """Check if the proxy is reachable.

        Returns:
            True if the server answered its health endpoint.
        """
        try:
            response = await self._client.get("/health")
            return response.status_code == 200
        except httpx.RequestError:
            return False

    async def execute(self, query: str, params: list[Any]) -> QueryResult:
        try:
            response = await self._client.post(
                "/api/query",
                json={"query": query, "params": params},
            )
        except httpx.TimeoutException as e:
            logger.warning(f"Query timed out: {e}")
            return QueryResult.fail(ErrorCode.NETWORK, "Request timed out", details=e)
        except httpx.RequestError as e:
            logger.warning(f"Network error: {e}")
            return QueryResult.fail(ErrorCode.NETWORK, str(e) or "Network error", details=e)

        try:
            body = response.json()
        except ValueError:
            return QueryResult.fail(
                ErrorCode.SERVER,
                f"Unreadable response (HTTP {response.status_code})",
                details=response.text[:200],
            )

        if not isinstance(body, dict) or not body.get("success"):
            error = body.get("error") if isinstance(body, dict) else None
            error = error or {}
            code = ErrorCode.AUTH if error.get("code") == "UNAUTHORIZED" else ErrorCode.SERVER
            return QueryResult.fail(
                code,
                error.get("message") or f"Request failed (HTTP {response.status_code})",
                details=error.get("details"),
            )

        return QueryResult.ok(body.get("data"))
