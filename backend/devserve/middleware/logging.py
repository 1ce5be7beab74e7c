"""
DevServe — Request Logging Middleware
=======================================

What:  One access log line per request: method, path, status, response time.
How:   Waits for the response, then reads X-Response-Time (set by
       TimingMiddleware) and the bot shield's decision from request.state.
When:  Outside the timing and shield steps so both have run by the time it logs.

Skipped:
    - Requests the bot shield blocked (scanner noise, and rate-limit floods)
    - /health (polled by monitors every few seconds)
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from devserve.middleware.request_id import request_id_var

logger = logging.getLogger("devserve.access")

SKIPPED_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each completed request at a level chosen from its status:
    5xx → ERROR, 4xx → WARNING, everything else → INFO.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        method = request.method
        path = request.url.path

        if path in SKIPPED_PATHS:
            return await call_next(request)

        response = await call_next(request)

        shield = getattr(request.state, "shield", None)
        if shield is not None and shield.blocked:
            return response

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        response_time = response.headers.get("X-Response-Time", "-")
        rid = request_id_var.get("")

        logger.log(
            log_level,
            "%s %s %d - %s [%s]",
            method,
            path,
            status,
            response_time,
            rid,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "response_time": response_time,
            },
        )

        return response
