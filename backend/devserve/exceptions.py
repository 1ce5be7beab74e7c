"""
DevServe — Custom Exception Hierarchy
=======================================

What:  Application-specific exceptions for the error scenarios that are real
       errors (as opposed to policy rejections).
How:   Each exception class carries a message, an HTTP status code and an
       optional context dict. Exception handlers registered in main.py turn
       them into responses; the vendor middleware converts upstream failures
       itself since middleware errors never reach those handlers.

Exception Hierarchy:
    DevServeError (base)                → 500 Internal Server Error
    ├── UnsupportedSubscriptionError    → 415 Unsupported Media Type
    └── UpstreamFetchFailedError        → 502 Bad Gateway (never cached)

Not exceptions:
    Denylisted paths (404) and rate-limited clients (429) are answered
    directly by the bot shield. A vendor key missing from the allow-list
    resolves to None and the request moves on to the next pipeline step.
"""

from typing import Any, Dict, Optional


class DevServeError(Exception):
    """
    Base exception for all DevServe application errors.

    Attributes:
        message:      Client-facing error description
        context:      Additional debug info (logged, not returned to the client)
        status_code:  HTTP status used by the exception handlers
    """

    status_code: int = 500
    error_code: str = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class UnsupportedSubscriptionError(DevServeError):
    """
    Raised when a client subscribes to reload events without accepting
    `text/event-stream`.

    HTTP:  415 Unsupported Media Type. The broadcaster registry is not touched.
    """

    status_code = 415
    error_code = "unsupported_media_type"

    def __init__(
        self,
        accept: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["accept"] = accept
        super().__init__(
            message="Live reload requires a client that accepts text/event-stream",
            context=ctx,
        )
        self.accept = accept


class UpstreamFetchFailedError(DevServeError):
    """
    Raised when fetching a vendor asset from its CDN fails.

    When:  The CDN answered with a non-2xx status, or the request itself failed
           (DNS, connect, timeout). status_code_upstream is None in the latter case.
    HTTP:  502 Bad Gateway with the upstream detail embedded in the message.

    The failure is never cached; the next request for the asset retries the fetch.
    """

    status_code = 502
    error_code = "bad_gateway"

    def __init__(
        self,
        url: str,
        upstream_status: Optional[int] = None,
        reason: str = "",
        context: Optional[Dict[str, Any]] = None,
    ):
        detail = f"{upstream_status} {reason}".strip() if upstream_status else reason
        ctx = context or {}
        ctx.update({"url": url, "upstream_status": upstream_status, "reason": reason})
        super().__init__(message=f"CDN fetch failed: {detail}", context=ctx)
        self.url = url
        self.upstream_status = upstream_status
        self.reason = reason
