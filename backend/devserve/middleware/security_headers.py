"""
DevServe — Security Headers Middleware
========================================

What:  Adds hardening headers to every response.
How:   Headers are set after the downstream response exists, so they also
       cover responses produced by the bot shield and vendor steps.

Headers:
    X-Content-Type-Options, Referrer-Policy, Permissions-Policy,
    Cross-Origin-Resource-Policy, Cross-Origin-Opener-Policy   always
    Strict-Transport-Security                                  production only (requires HTTPS)
    Content-Security-Policy                                    text/html without its own CSP
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

STATIC_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Cross-Origin-Opener-Policy": "same-origin",
}

HSTS_VALUE = "max-age=31536000"


def build_csp_header_value() -> str:
    # Alpine's default build evaluates expressions with Function(), hence 'unsafe-eval'.
    return "; ".join([
        "default-src 'self'",
        "base-uri 'self'",
        "object-src 'none'",
        "frame-ancestors 'none'",
        "script-src 'self' 'unsafe-eval'",
        "style-src 'self'",
        "img-src 'self' data:",
        "font-src 'self'",
        "connect-src 'self'",
        "media-src 'self'",
    ])


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, dev: bool = False):
        super().__init__(app)
        self.dev = dev

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        headers = response.headers

        for name, value in STATIC_HEADERS.items():
            headers[name] = value

        if not self.dev:
            headers["Strict-Transport-Security"] = HSTS_VALUE

        content_type = headers.get("content-type", "").lower()
        if "text/html" in content_type and "content-security-policy" not in headers:
            headers["Content-Security-Policy"] = build_csp_header_value()

        return response
