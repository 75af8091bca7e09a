"""HTTP middleware: request correlation, access logging and request metrics."""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging_config import get_logger
from .metrics import http_request_duration_seconds, http_requests_total
from .request_id import resolve_request_id, set_request_id

logger = get_logger(__name__)

# Probe and scrape traffic is logged at DEBUG to keep access logs readable
_QUIET_PATHS = frozenset({"/health", "/ready", "/metrics"})


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tags every request with an X-Request-ID and records its outcome."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = resolve_request_id(request.headers.get("X-Request-ID"))
        set_request_id(request_id)
        log = logger.debug if request.url.path in _QUIET_PATHS else logger.info

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            http_requests_total.labels(method=request.method, status_class="5xx").inc()
            logger.error(
                f"{request.method} {request.url.path} raised",
                extra={"duration_ms": round((time.perf_counter() - started) * 1000, 2)},
                exc_info=True,
            )
            raise

        elapsed = time.perf_counter() - started
        http_requests_total.labels(method=request.method, status_class=f"{response.status_code // 100}xx").inc()
        http_request_duration_seconds.labels(method=request.method).observe(elapsed)
        log(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={"status_code": response.status_code, "duration_ms": round(elapsed * 1000, 2)},
        )

        response.headers["X-Request-ID"] = request_id
        return response
