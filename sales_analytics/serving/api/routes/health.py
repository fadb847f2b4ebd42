"""
Health Check Endpoints

Provides health and readiness checks for orchestration systems.
"""

from datetime import datetime
from typing import Dict, Any

from fastapi import APIRouter, Response
from pydantic import BaseModel
import polars as pl

from sales_analytics.config import get_settings
from sales_analytics.serving.api.dependencies import get_snapshot

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


def _snapshot_check() -> Dict[str, Any]:
    try:
        snapshot = get_snapshot()
    except (OSError, ValueError, pl.exceptions.PolarsError) as e:
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy", "rows": snapshot.row_counts}


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Checks:
    - Application status
    - Dataset snapshot availability
    """
    settings = get_settings()
    checks = {"snapshot": _snapshot_check()}
    overall_status = "healthy" if checks["snapshot"]["status"] == "healthy" else "degraded"

    return HealthResponse(
        status=overall_status,
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.utcnow(),
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """
    Liveness probe endpoint.

    Returns 200 if the application is running.
    """
    return {"status": "alive"}


@router.get("/health/ready")
def readiness_check(response: Response) -> Dict[str, str]:
    """
    Readiness probe endpoint.

    Returns 200 once the dataset snapshot can be loaded.
    """
    check = _snapshot_check()
    if check["status"] != "healthy":
        response.status_code = 503
        return {"status": "not_ready", "reason": check["error"]}
    return {"status": "ready"}
