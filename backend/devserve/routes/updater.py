"""
DevServe — Live-Reload Updater Script Route
=============================================

What:  GET /updater.js serves the browser side of live reload: an EventSource
       on /sse that reloads the page when a "reload" event arrives.
       Outside dev mode the script is a no-op so pages can always include it.
"""

from fastapi import APIRouter, Request
from fastapi.responses import Response

router = APIRouter(tags=["Live Reload"])

UPDATER_FILENAME = "updater.js"

UPDATER_SCRIPT = (
    "const sse = new EventSource('/sse'); "
    "sse.onopen = () => sse.addEventListener('reload', () => location.reload());"
)
NOOP_SCRIPT = ";"

JAVASCRIPT = "application/javascript; charset=utf-8"


@router.get(f"/{UPDATER_FILENAME}", summary="Live-reload client script")
async def updater_script(request: Request) -> Response:
    dev: bool = request.app.state.settings.dev
    return Response(content=UPDATER_SCRIPT if dev else NOOP_SCRIPT, media_type=JAVASCRIPT)
