"""
PotTogether Backend: Request Logging Middleware
================================================

What:  One access-log line per request: method, path, status, duration,
       client address.
How:   Log level follows the status class (5xx ERROR, 4xx WARNING, else
       INFO), so a full room or a finished record shows up as a warning
       and a database failure as an error.
Who:   Installed by create_app() inside RequestIDMiddleware, so the
       request id is already set when the line is written.

Not logged: request bodies, uploaded images, Authorization headers.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("pottogether.access")

# Probes and static image fetches would drown out the API traffic
QUIET_PREFIXES = ("/health", "/files/")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path.startswith(QUIET_PREFIXES):
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"

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
            "%s %s %d %.1fms from %s",
            request.method,
            path,
            status,
            duration_ms,
            client_ip,
            extra={
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
