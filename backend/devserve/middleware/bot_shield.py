"""
DevServe — Bot Shield Middleware
==================================

What:  Rejects exploit-scanner probes and rate-limits clients before any
       other processing.
How:   1. Denylist: fixed path prefixes and file extensions → 404
       2. Rate check: fixed window per client identity → 429
       Both attach a BlockDecision to request.state.shield so the access
       logger can skip the request.
When:  Innermost policy step before vendor assets and routes.

Client identity:
    First entry of X-Forwarded-For (set by the hosting proxy), else the socket
    peer address, else the "unknown" sentinel. Unattributable clients are
    never rate-limited.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional, Pattern, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp

from devserve.services.rate_limiter import FixedWindowRateLimiter

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"

DEFAULT_LIMIT = 180
DEFAULT_WINDOW_SECONDS = 60

# Scanner favourites: VCS metadata, CMS admin areas, CGI directories.
# Each pattern covers the whole first segment ("/.git", "/.git/config", not "/.github").
BLOCKED_PATH_PATTERNS: Tuple[Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"^/cgi-bin(/|$)",
        r"^/\.env(\.|$)",
        r"^/\.git(/|$)",
        r"^/\.svn(/|$)",
        r"^/\.hg(/|$)",
        r"^/wp-admin(/|$)",
        r"^/wp-login\.php$",
        r"^/wp-content(/|$)",
        r"^/wp-includes(/|$)",
        r"^/phpmyadmin(/|$)",
    )
)

# Server-side scripts, dumps, backups and key material; never served by this runtime.
BLOCKED_FILE_EXTENSIONS: Pattern[str] = re.compile(
    r"\.(php|phtml|asp|aspx|jsp|cgi|pl|ini|env|sql|bak|old|swp|pem|key)$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class BlockDecision:
    """Why the shield answered a request itself. reason: "denylist" | "rate-limit"."""

    blocked: bool
    reason: str


def should_block_path(pathname: str) -> bool:
    """True when the path is a known probe target or ends in a blocked extension."""
    if BLOCKED_FILE_EXTENSIONS.search(pathname):
        return True

    return any(pattern.search(pathname) for pattern in BLOCKED_PATH_PATTERNS)


def get_client_identity(request: Request) -> str:
    """
    Identify the client for rate limiting and reload channel bookkeeping.

    "1.2.3.4, 5.6.7.8" in X-Forwarded-For yields "1.2.3.4".
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        forwarded = forwarded_for.split(",")[0].strip()
        if forwarded:
            return forwarded

    host: Optional[str] = request.client.host if request.client else None
    return host or UNKNOWN_CLIENT


class BotShieldMiddleware(BaseHTTPMiddleware):
    """
    Denylist filter plus fixed window rate limiter.

    The limiter instance is injected so one server owns exactly one bucket
    table; create_app() stores it on app.state.rate_limiter.

    Response on denylist:
        HTTP 404, empty body
    Response on rate limit:
        HTTP 429, Retry-After: <window seconds>, text/plain "Too Many Requests"
    """

    def __init__(
        self,
        app: ASGIApp,
        rate_limiter: FixedWindowRateLimiter,
        limit: int = DEFAULT_LIMIT,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
    ):
        super().__init__(app)
        self.rate_limiter = rate_limiter
        self.limit = limit
        self.window_seconds = window_seconds

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if should_block_path(request.url.path):
            request.state.shield = BlockDecision(blocked=True, reason="denylist")
            return Response(status_code=404)

        identity = get_client_identity(request)

        if identity != UNKNOWN_CLIENT and self.rate_limiter.check(
            identity, self.limit, self.window_seconds
        ):
            request.state.shield = BlockDecision(blocked=True, reason="rate-limit")
            logger.warning(
                "Rate limit exceeded for %s: more than %d requests in %ds window",
                identity,
                self.limit,
                self.window_seconds,
            )
            return PlainTextResponse(
                "Too Many Requests",
                status_code=429,
                headers={"Retry-After": str(self.window_seconds)},
            )

        return await call_next(request)
