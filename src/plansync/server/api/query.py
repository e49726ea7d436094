"""Authenticated query proxy route.

Clients never talk to the remote store directly. They post a query with
positional parameters; the proxy authenticates the bearer token, replaces
every ``__USER_ID__`` parameter with the authenticated user id, and lets the
database bind the values.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import SQLAlchemyError

from plansync.core.types import USER_ID_SENTINEL
from plansync.server.api.deps import get_current_token, get_db
from plansync.server.database import Database
from plansync.server.models import Token
from plansync.server.schemas import ProxyError, QueryRequest, QueryResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["query"])


def _classify_store_error(exc: SQLAlchemyError) -> ProxyError:
    """Map a store exception to a proxy error."""
    message = str(exc).lower()
    if "syntax error" in message:
        return ProxyError(
            status.HTTP_400_BAD_REQUEST,
            "SQL_SYNTAX_ERROR",
            "Query syntax error",
            details=type(exc).__name__,
        )
    if "permission denied" in message or "not authorized" in message:
        return ProxyError(
            status.HTTP_403_FORBIDDEN,
            "PERMISSION_DENIED",
            "Insufficient permissions",
            details=type(exc).__name__,
        )
    return ProxyError(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "DATABASE_ERROR",
        "Query execution failed",
        details=type(exc).__name__,
    )


@router.post("/query", response_model=QueryResponse)
def run_query(
    request: QueryRequest,
    db: Database = Depends(get_db),
    auth: Token = Depends(get_current_token),
) -> QueryResponse:
    """Execute a user-scoped query against the remote store."""
    if not request.query.strip():
        raise ProxyError(status.HTTP_400_BAD_REQUEST, "INVALID_REQUEST", "Missing query")

    params = [auth.user_id if p == USER_ID_SENTINEL else p for p in request.params]

    if "user_id" not in request.query:
        logger.warning("Query without user_id filter from user %s: %s", auth.user_id, request.query)

    try:
        rows = db.execute(request.query, params)
    except ValueError as e:
        raise ProxyError(status.HTTP_400_BAD_REQUEST, "INVALID_REQUEST", str(e)) from e
    except SQLAlchemyError as e:
        logger.error("Query failed for user %s: %s", auth.user_id, e)
        raise _classify_store_error(e) from e

    return QueryResponse(success=True, data=rows)
