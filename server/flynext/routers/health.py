"""Operational endpoints: health, readiness, service info and Prometheus metrics."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import get_db
from ..core.observability import SERVICE_NAME, SERVICE_VERSION, get_prometheus_metrics
from ..schemas.health import HealthResponse, HealthStatus, ReadinessResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

DB_DEPENDENCY = Depends(get_db)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Check if the service is healthy and responsive",
)
async def health_check() -> JSONResponse:
    response_data = HealthResponse(
        status=HealthStatus.HEALTHY,
        service=SERVICE_NAME,
        version=SERVICE_VERSION,
        environment=settings.environment,
        timestamp=datetime.utcnow()
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness Check",
    description="Check that the database answers queries",
)
async def readiness_check(db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """Report ready when the database is reachable, degraded (503) otherwise."""
    try:
        await db.execute(text("SELECT 1"))
        checks = {"database": "ok"}
        overall = HealthStatus.READY
    except SQLAlchemyError as e:
        logger.error("Readiness check failed", extra={"error": str(e)})
        checks = {"database": "unavailable"}
        overall = HealthStatus.DEGRADED

    response_data = ReadinessResponse(status=overall, checks=checks)
    status_code = status.HTTP_200_OK if overall == HealthStatus.READY else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=status_code, content=response_data.model_dump(mode="json"))


@router.get("/info", summary="Service Information")
async def service_info() -> dict:
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "description": "Flight and hotel booking API",
        "environment": settings.environment,
        "debug": settings.debug,
        "features": {
            "agency_api_keys": True,
            "bearer_tokens": True,
            "idempotency": True,
            "tracing": True,
            "problem_details": True,
            "afs_search": True,
        },
        "endpoints": {
            "health": "/health",
            "readiness": "/ready",
            "metrics": "/metrics",
            "docs": "/docs" if settings.debug else None,
        },
    }


@router.get(
    "/metrics",
    summary="Prometheus Metrics",
    response_class=Response,
    tags=["Observability"],
)
async def metrics():
    """Return request and booking metrics in Prometheus text format."""
    return Response(
        content=get_prometheus_metrics(),
        media_type="text/plain; version=0.0.4; charset=utf-8"
    )
