# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: System endpoints (health, readiness, metrics).
Pure HTTP layer: no business logic.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from rollcall.core.config import settings
from rollcall.core.dependencies import get_current_repo, get_gather_service
from rollcall.core.errors import RepositoryError
from rollcall.repositories.member_repository import MemberRepository
from rollcall.services.gather_service import GatherService

router = APIRouter(tags=["System"])


@router.get("/health")
def health_check(service: GatherService = Depends(get_gather_service)):
    """Liveness check for Docker and orchestration."""
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "target_count": service.target_count,
    }


@router.get("/health/ready")
async def readiness_check(repo: MemberRepository = Depends(get_current_repo)):
    """Readiness check: verifies the roster store can be read."""
    try:
        members = await repo.get_all()
    except RepositoryError as e:
        return JSONResponse(
            status_code=503,
            content={
                "status": "unavailable",
                "service": settings.SERVICE_NAME,
                "detail": str(e),
            },
        )
    return {
        "status": "ready",
        "service": settings.SERVICE_NAME,
        "roster_size": len(members),
    }


@router.get("/metrics")
def prometheus_metrics():
    """Expose Prometheus metrics in OpenMetrics format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
