"""
DevServe — Response Timing Middleware
=======================================

What:  Measures how long the rest of the pipeline took and exposes it as
       X-Response-Time (read by the access logger) and Server-Timing
       (shown in browser devtools).
"""

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response


class TimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()

        response = await call_next(request)

        duration_ms = round((time.perf_counter() - start_time) * 1000, 1)
        response.headers["X-Response-Time"] = f"{duration_ms}ms"
        response.headers.append("Server-Timing", f"app;dur={duration_ms}")

        return response
