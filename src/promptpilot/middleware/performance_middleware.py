"""
Performance tracking middleware for request latency logging
"""
import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

SLOW_REQUEST_SECONDS = 1.0


class PerformanceMiddleware(BaseHTTPMiddleware):
    """
    Logs method, path, status and latency of every request and adds an
    X-Process-Time header (milliseconds).
    """

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start_time
        elapsed_ms = round(elapsed * 1000, 2)

        logger.info(
            "PERFORMANCE: method=%s path=%s status=%s latency=%sms request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            getattr(request.state, "request_id", "unknown"),
        )
        response.headers["X-Process-Time"] = str(elapsed_ms)

        if elapsed > SLOW_REQUEST_SECONDS:
            logger.warning(
                "SLOW_REQUEST: method=%s path=%s latency=%sms",
                request.method,
                request.url.path,
                elapsed_ms,
            )
        return response
