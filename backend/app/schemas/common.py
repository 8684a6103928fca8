"""
Tripmark Backend — Shared Pydantic Schemas
============================================

What:  Response models shared by every router: error envelope, health probe,
       and the offset pagination parameters.
"""

from typing import Optional

from pydantic import BaseModel, Field

from app.config import settings


class PaginationParams(BaseModel):
    """
    Offset pagination used by every list endpoint.

    page is 1-based; the query skips (page - 1) * limit rows.
    """
    page: int = Field(default=1, ge=1, description="1-based page number")
    limit: int = Field(
        default=settings.default_page_size,
        ge=1,
        le=settings.max_page_size,
        description="Items per page",
    )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Fields:
        error: Machine-readable error code (e.g., "forbidden", "not_found")
        message: Human-readable description
        details: Optional extra context (e.g., which resource was missing)
        request_id: Correlation ID for tracing this error in server logs
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /health for container and load balancer probes."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
