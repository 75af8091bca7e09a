"""Operational endpoints: Prometheus scrape target, health and readiness probes."""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.orm import Session

from database import get_db
from .health import (
    ComponentHealth,
    HealthStatus,
    check_database_health,
    check_object_storage_health,
    check_redis_health,
    get_overall_health,
)
from .logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Observability"])


def _describe(component: ComponentHealth) -> dict:
    return {
        "status": component.status.value,
        "message": component.message,
        "latency_ms": component.latency_ms,
    }


@router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    """Prometheus exposition of the compliance_* counters and histograms."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/health", summary="Component health: database, Redis broker, document storage")
def health_check(db: Session = Depends(get_db)) -> JSONResponse:
    """Report each component and an overall status.

    Redis only carries outbound email jobs, so losing it reports
    ``degraded`` with 200. A dead database or document store answers 503.
    """
    components = {
        "database": check_database_health(db),
        "redis": check_redis_health(),
        "object_storage": check_object_storage_health(),
    }
    overall = get_overall_health(components)

    if overall != HealthStatus.HEALTHY:
        failing = sorted(name for name, c in components.items() if c.status != HealthStatus.HEALTHY)
        logger.warning(f"Health check {overall.value}: failing={','.join(failing)}")

    return JSONResponse(
        status_code=503 if overall == HealthStatus.UNHEALTHY else 200,
        content={
            "status": overall.value,
            "components": {name: _describe(c) for name, c in components.items()},
        },
    )


@router.get("/ready", summary="Readiness probe")
def readiness_check(db: Session = Depends(get_db)):
    # Only the database gates traffic; email and storage outages surface per request
    database = check_database_health(db)
    if database.status != HealthStatus.HEALTHY:
        return JSONResponse(status_code=503, content={"status": "not_ready", "message": database.message})
    return {"status": "ready", "message": "Accepting requests"}
