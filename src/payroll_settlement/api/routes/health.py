"""Health check endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy import text

from payroll_settlement.api.dependencies import AppSettings, DbSession
from payroll_settlement.database import with_deadline
from payroll_settlement.errors import StorageUnavailable

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    database: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
)
async def health_check(db: DbSession, settings: AppSettings) -> HealthResponse:
    """Check API and database health."""
    db_status = "unhealthy"
    try:
        await with_deadline(db.execute(text("SELECT 1")), settings.operation_timeout_seconds)
        db_status = "healthy"
    except StorageUnavailable as exc:
        logger.warning("Health check could not reach the database: %s", exc)

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        database=db_status,
    )


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check() -> dict[str, str]:
    """Readiness check for container orchestration."""
    return {"status": "ready"}


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> dict[str, str]:
    """Liveness check for container orchestration."""
    return {"status": "alive"}
