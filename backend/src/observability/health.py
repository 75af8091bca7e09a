"""Component health checks used by /health and /ready.

Severity follows what each component means for the review workflow:
the database and the document store are required, while Redis only queues
notification emails and so can at worst degrade the service.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

import redis
from sqlalchemy import text
from sqlalchemy.orm import Session

from config import get_settings
from .logging_config import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None


def _probe(name: str, check: Callable[[], None], ok_message: str, failure_status: HealthStatus) -> ComponentHealth:
    """Time a check; any exception maps to failure_status."""
    started = time.perf_counter()
    try:
        check()
    except Exception as e:
        log = logger.error if failure_status == HealthStatus.UNHEALTHY else logger.warning
        log(f"{name} health check failed: {e}")
        return ComponentHealth(status=failure_status, message=f"{name} error: {e}")

    return ComponentHealth(
        status=HealthStatus.HEALTHY,
        message=ok_message,
        latency_ms=round((time.perf_counter() - started) * 1000, 2),
    )


def check_database_health(db: Session) -> ComponentHealth:
    return _probe("Database", lambda: db.execute(text("SELECT 1")), "Database connection OK", HealthStatus.UNHEALTHY)


def check_redis_health() -> ComponentHealth:
    """Ping the Celery broker; failure only degrades email delivery."""
    def ping():
        redis.from_url(get_settings().REDIS_URL, socket_timeout=2, socket_connect_timeout=2).ping()

    return _probe("Redis", ping, "Redis connection OK", HealthStatus.DEGRADED)


def check_object_storage_health() -> ComponentHealth:
    """Check the configured document store (local directory or S3 bucket)."""
    from infrastructure.storage.storage_config import build_storage

    return _probe(
        "Object storage",
        lambda: build_storage().check_health(),
        "Object storage OK",
        HealthStatus.UNHEALTHY,
    )


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    """Worst component status wins."""
    statuses = {c.status for c in components.values()}
    if HealthStatus.UNHEALTHY in statuses:
        return HealthStatus.UNHEALTHY
    if HealthStatus.DEGRADED in statuses:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY
