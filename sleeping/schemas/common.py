"""
Sleeping Backend: Shared Response Schemas
==========================================

What:  Error and health payloads shared by every router.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Fields:
        error: Machine-readable error code (e.g., "insufficient_balance", "not_found")
        message: Human-readable description for display to users
        details: Optional extra context (e.g., which field failed validation)
        request_id: Correlation ID for tracing this error in server logs

    Example:
        {
            "error": "insufficient_balance",
            "message": "Insufficient balance: item costs 300, you have 100.",
            "details": {"balance": 100, "price": 300},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class SuccessResponse(BaseModel):
    success: bool = True


class HealthResponse(BaseModel):
    """Returned by GET /health for monitoring and load balancer probes."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    media_backend: str = Field(description="Configured media storage backend")
    realtime_connections: int = Field(description="Open WebSocket connections on this process")
    uptime_seconds: float = Field(description="Seconds since service started")
