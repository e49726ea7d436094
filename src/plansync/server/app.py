"""FastAPI application for the plansync query proxy.

This module creates and configures the FastAPI application with:
- Health endpoint
- Authenticated, user-scoped query proxy over the remote plan store

Usage:
    uvicorn plansync.server.app:app_factory --factory --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from plansync.server.api.router import router as api_router
from plansync.server.database import Database
from plansync.server.schemas import ProxyError

# Configuration from environment variables with defaults
DB_PATH = Path(os.environ.get("PLANSYNC_DB_PATH", "plansync.db"))
LOG_PATH = Path(os.environ.get("PLANSYNC_LOG_PATH", "plansync-server.log"))

logger = logging.getLogger(__name__)


def setup_logging(log_path: Path | None = None) -> None:
    """Configure logging to output to stdout and optionally a file.

    Args:
        log_path: Path to the log file, or None for stdout only.
    """
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    root_logger = logging.getLogger("plansync")
    root_logger.setLevel(logging.INFO)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    if log_path is not None:
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

        # Also capture uvicorn logs to file
        for uvicorn_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
            logging.getLogger(uvicorn_name).addHandler(file_handler)


def create_app(db: Database) -> FastAPI:
    """Create FastAPI application with a given database.

    Args:
        db: Database instance.

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        logger.info("=" * 60)
        logger.info("plansync query proxy starting")
        logger.info("  Database: %s", db.path)
        logger.info("=" * 60)

        yield

        logger.info("plansync query proxy shutting down")

    application = FastAPI(
        title="plansync",
        description="User-scoped query proxy for budget plan synchronization",
        version="0.1.0",
        lifespan=lifespan,
    )

    @application.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_response().model_dump(),
        )

    application.state.db = db
    application.include_router(api_router)

    return application


def app_factory() -> FastAPI:
    """Factory function for uvicorn --factory mode."""
    setup_logging(LOG_PATH)
    return create_app(db=Database(DB_PATH))
