"""Main API router that includes all sub-routers."""

from __future__ import annotations

from fastapi import APIRouter

from plansync.server.api import health, query

router = APIRouter()

# Include all API routers
router.include_router(health.router)
router.include_router(query.router)
