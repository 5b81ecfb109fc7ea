import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from swm_dashboard.core.logging import get_logger

logger = get_logger("middleware.request")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status code and duration of every request."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - started) * 1000
            logger.error(f"{request.method} {request.url.path} failed after {duration_ms:.1f}ms")
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms:.1f}ms)")
        return response
