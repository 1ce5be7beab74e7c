"""
DevServe — Vendor Asset Middleware
====================================

What:  Answers GET/HEAD requests for allow-listed vendor files from the
       VendorCache.
How:   Matches "<vendor_route>/<file name>" (exactly one segment under the
       prefix), resolves the file name against the allow-list and serves the
       cached entry. Anything else goes on down the pipeline unchanged.

Responses:
    200  cached/fetched asset, upstream Content-Type, immutable Cache-Control
    502  CDN fetch failed (text/plain, includes the upstream status and reason)
"""

import logging
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp

from devserve.exceptions import UpstreamFetchFailedError
from devserve.services.vendor_cache import VendorAllowList, VendorCache

logger = logging.getLogger(__name__)


def match_vendor_key(path: str, route: str = "/") -> Optional[str]:
    """
    Extract the file name from `path` when it sits directly under `route`.

    >>> match_vendor_key("/vendor/lib.js", "/vendor")
    'lib.js'
    >>> match_vendor_key("/vendor/a/lib.js", "/vendor") is None
    True
    """
    prefix = route.rstrip("/") + "/"
    if not path.startswith(prefix):
        return None

    key = path[len(prefix):]
    if not key or "/" in key:
        return None
    return key


class VendorMiddleware(BaseHTTPMiddleware):
    """Serves vendor assets; a file name missing from the allow-list is not ours."""

    def __init__(
        self,
        app: ASGIApp,
        allowlist: VendorAllowList,
        cache: VendorCache,
        route: str = "/",
    ):
        super().__init__(app)
        self.allowlist = allowlist
        self.cache = cache
        self.route = route

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method not in ("GET", "HEAD"):
            return await call_next(request)

        key = match_vendor_key(request.url.path, self.route)
        asset = self.allowlist.resolve(key) if key else None
        if asset is None:
            return await call_next(request)

        try:
            entry = await self.cache.get_or_fetch(asset.remote_url)
        except UpstreamFetchFailedError as e:
            return PlainTextResponse(f"Bad Gateway: {e.message}", status_code=502)

        return Response(content=entry.content, headers=dict(entry.headers))
