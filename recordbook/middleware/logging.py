"""
Recordbook Backend: Request Logging Middleware
===============================================

What:  One access log line per HTTP request: method, path, status, duration.
How:   Measures time around `call_next`, picks the log level from the status
       class, and attaches the fields as `extra` for structured handlers.
When:  After RequestIDMiddleware, so the request ID is available.

Log line:
    GET /api/records 200 3.2ms [a1b2c3d4] from 127.0.0.1

Request bodies are never logged; record content and login passwords stay out
of the logs.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from recordbook.middleware.request_id import request_id_var

logger = logging.getLogger("recordbook.access")

# Polled by container health checks; not worth a log line each time
QUIET_PATHS = {"/api/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request with its status code and duration.

    Level by status:
        5xx → ERROR
        4xx → WARNING
        else → INFO
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()

        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        path = request.url.path
        rid = request_id_var.get("")

        if path in QUIET_PATHS:
            return await call_next(request)

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
