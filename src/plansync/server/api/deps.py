"""FastAPI dependencies for API routes."""

from __future__ import annotations

from fastapi import Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from plansync.server.database import Database
from plansync.server.models import Token
from plansync.server.schemas import ProxyError

# Security scheme
security = HTTPBearer(auto_error=False)


def get_db(request: Request) -> Database:
    """Get database from app state."""
    db: Database = request.app.state.db
    return db


def get_current_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Token:
    """Validate bearer token and return Token object."""
    db = get_db(request)
    if credentials is None:
        raise ProxyError(
            status.HTTP_401_UNAUTHORIZED,
            "UNAUTHORIZED",
            "Authentication required",
        )
    token = db.validate_token(credentials.credentials)
    if token is None:
        raise ProxyError(
            status.HTTP_401_UNAUTHORIZED,
            "UNAUTHORIZED",
            "Invalid or expired token",
        )
    return token
