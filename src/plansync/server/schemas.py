"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

# === Query proxy schemas ===


class QueryRequest(BaseModel):
    """Request body for the query proxy."""

    query: str = ""
    params: list[Any] = []


class ErrorDetail(BaseModel):
    """Error payload returned by the query proxy."""

    code: str
    message: str
    details: Any = None


class QueryResponse(BaseModel):
    """Response envelope of the query proxy."""

    success: bool
    data: list[dict[str, Any]] | None = None
    error: ErrorDetail | None = None


# === Health schema ===


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str = "ok"


# === Errors ===


class ProxyError(Exception):
    """Raised by routes to produce an error envelope with an HTTP status."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details

    def to_response(self) -> QueryResponse:
        """Convert to the response envelope."""
        return QueryResponse(
            success=False,
            error=ErrorDetail(code=self.code, message=self.message, details=self.details),
        )
