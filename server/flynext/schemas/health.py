"""Health-related Pydantic schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """Health status enumeration."""
    HEALTHY = "healthy"
    READY = "ready"
    DEGRADED = "degraded"


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: HealthStatus = Field(..., description="Service status")
    service: str = Field(..., description="Service name")
    version: str = Field("1.0.0", description="API version")
    environment: str = Field(..., description="Deployment environment")
    timestamp: datetime = Field(..., description="Current server time (ISO 8601)")


class ReadinessResponse(BaseModel):
    """Readiness check response schema."""

    status: HealthStatus = Field(..., description="Readiness status")
    checks: dict[str, str] = Field(..., description="Dependency check results")
