"""
DevServe — Live-Reload Subscription Route
===========================================

What:  GET /sse opens a Server-Sent Events stream that receives "reload"
       events from the ReloadBroadcaster.
How:   Accept header negotiation → subscribe → StreamingResponse draining the
       channel. The generator's finally block unsubscribes, which runs when
       the client disconnects (Starlette cancels the stream) or the channel
       is closed by close_all().
"""

import logging
from typing import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from devserve.exceptions import UnsupportedSubscriptionError
from devserve.middleware.bot_shield import get_client_identity
from devserve.services.reload_broadcaster import ReloadBroadcaster, ReloadChannel

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Live Reload"])

EVENT_STREAM = "text/event-stream"


def accepts_event_stream(accept: str) -> bool:
    """
    True when the Accept header admits text/event-stream.

    Media ranges text/* and */* count; a q=0 entry explicitly refuses.
    A missing header means the client declared nothing and is refused.
    """
    for part in accept.split(","):
        media_range, _, params = part.partition(";")
        if media_range.strip().lower() not in (EVENT_STREAM, "text/*", "*/*"):
            continue

        quality = 1.0
        for param in params.split(";"):
            name, _, value = param.partition("=")
            if name.strip().lower() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        if quality > 0:
            return True
    return False


async def _relay(
    broadcaster: ReloadBroadcaster,
    channel: ReloadChannel,
    keepalive_seconds: float,
) -> AsyncIterator[str]:
    try:
        async for frame in channel.stream(keepalive_seconds):
            yield frame
    finally:
        broadcaster.unsubscribe(channel)


@router.get(
    "/sse",
    summary="Subscribe to live-reload events",
    response_class=StreamingResponse,
)
async def subscribe(request: Request) -> StreamingResponse:
    accept = request.headers.get("accept", "")
    if not accepts_event_stream(accept):
        raise UnsupportedSubscriptionError(accept=accept or None)

    broadcaster: ReloadBroadcaster = request.app.state.broadcaster
    keepalive_seconds: float = request.app.state.settings.sse_keepalive_seconds

    channel = broadcaster.subscribe(get_client_identity(request))

    return StreamingResponse(
        _relay(broadcaster, channel, keepalive_seconds),
        media_type=EVENT_STREAM,
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
