"""Health check API route."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.exc import SQLAlchemyError

from plansync.server.api.deps import get_db
from plansync.server.database import Database
from plansync.server.schemas import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health_check(response: Response, db: Database = Depends(get_db)) -> HealthResponse:
    """Check that the proxy can reach the remote store."""
    try:
        db.execute("SELECT 1")
    except SQLAlchemyError as e:
        logger.error("Health check failed: %s", e)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="degraded", database="unreachable")
    return HealthResponse(status="ok", database="ok")
