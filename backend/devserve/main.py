"""
DevServe — FastAPI Application Factory
========================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() builds the per-server state (rate limiter, reload
       broadcaster, vendor cache), wires it into the middleware chain and
       routes, and registers exception handlers.
Who:   uvicorn (`uvicorn devserve.main:app`) and the test suite.

Request Pipeline:
    ┌──────────────────────────────────────────────────────────────────┐
    │ RequestID → AccessLog → Timing → SecurityHeaders                 │
    │     → BotShield (404 denylist / 429 rate limit)                  │
    │     → Vendor (allow-listed CDN assets, 502 on upstream failure)  │
    │     → Routes: GET /sse · GET /updater.js · GET /health            │
    └──────────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:   logging, then the static file watcher task (dev only)
    Shutdown:  cancel the watcher, close every reload channel, close the
               vendor cache's HTTP client
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager, suppress
from typing import AsyncGenerator, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.responses import Response

from devserve import __version__
from devserve.config import Settings, settings as default_settings
from devserve.exceptions import DevServeError
from devserve.middleware.bot_shield import BotShieldMiddleware
from devserve.middleware.logging import RequestLoggingMiddleware
from devserve.middleware.request_id import RequestIDMiddleware, request_id_var
from devserve.middleware.security_headers import SecurityHeadersMiddleware
from devserve.middleware.timing import TimingMiddleware
from devserve.middleware.vendor import VendorMiddleware
from devserve.routes import health, sse, updater
from devserve.services.file_watcher import watch_static_files
from devserve.services.rate_limiter import FixedWindowRateLimiter
from devserve.services.reload_broadcaster import ReloadBroadcaster
from devserve.services.vendor_cache import VendorAllowList, VendorCache

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure the root logger once for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # DevServe writes its own access log
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("watchfiles").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(config.log_level)
    logger.info("DevServe %s starting (%s mode)", __version__, "dev" if config.dev else "production")

    watcher_task: Optional[asyncio.Task] = None
    if config.dev:
        watcher_task = asyncio.create_task(
            watch_static_files(config.static_files_path, app.state.broadcaster),
            name="static-file-watcher",
        )

    logger.info("Server ready at http://%s:%d", config.backend_host, config.backend_port)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("DevServe shutting down...")

    if watcher_task is not None:
        watcher_task.cancel()
        with suppress(asyncio.CancelledError):
            await watcher_task

    closed = app.state.broadcaster.close_all()
    if closed:
        logger.info("Closed %d live-reload channel(s)", closed)

    await app.state.vendor_cache.aclose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _wants_json(request: Request) -> bool:
    return "json" in request.headers.get("accept", "").lower()


def error_response(request: Request, status_code: int, error: str, message: str) -> Response:
    """Plain text by default; JSON for clients that ask for it."""
    rid = request_id_var.get("") or getattr(request.state, "request_id", "")
    if _wants_json(request):
        return JSONResponse(
            status_code=status_code,
            content={"error": error, "message": message, "request_id": rid},
        )
    return PlainTextResponse(f"{status_code} {message}", status_code=status_code)


def register_exception_handlers(app: FastAPI, dev: bool = False) -> None:
    """
    Handler hierarchy:
        DevServeError (and subclasses)  → exc.status_code
        Exception (fallback)            → 500, error text only in dev
    """

    @app.exception_handler(DevServeError)
    async def handle_devserve_error(request: Request, exc: DevServeError):
        if exc.status_code >= 500:
            logger.error("%s: %s | Context: %s", type(exc).__name__, exc.message, exc.context)
        else:
            logger.info("%s: %s", type(exc).__name__, exc.message)
        return error_response(request, exc.status_code, exc.error_code, exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        message = f"Internal Server Error\n\n{exc}" if dev else "Internal Server Error"
        return error_response(request, 500, "internal_server_error", message)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    config: Optional[Settings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Every stateful component is constructed here and owned by the returned
    app (app.state), so two apps never share counters, channels or cache.

    Args:
        config:       Settings to use instead of the environment-loaded singleton.
        http_client:  Client the vendor cache fetches with; created lazily
                      (and closed on shutdown) when omitted.
    """
    config = config or default_settings

    app = FastAPI(
        title="DevServe",
        description="Request pipeline with bot shield, live reload and vendor asset proxy.",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = config
    app.state.rate_limiter = FixedWindowRateLimiter(sweep_interval=config.rate_limit_sweep_interval)
    app.state.broadcaster = ReloadBroadcaster()
    app.state.vendor_allowlist = VendorAllowList(config.vendor_map)
    app.state.vendor_cache = VendorCache(client=http_client, timeout=config.vendor_fetch_timeout)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first, so this list is the pipeline order reversed.
    app.add_middleware(
        VendorMiddleware,
        allowlist=app.state.vendor_allowlist,
        cache=app.state.vendor_cache,
        route=config.vendor_route,
    )
    app.add_middleware(
        BotShieldMiddleware,
        rate_limiter=app.state.rate_limiter,
        limit=config.rate_limit_requests,
        window_seconds=config.rate_limit_window,
    )
    app.add_middleware(SecurityHeadersMiddleware, dev=config.dev)
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app, dev=config.dev)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(sse.router)
    app.include_router(updater.router)
    app.include_router(health.router)

    return app


app = create_app()
