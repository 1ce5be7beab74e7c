"""
DevServe — Live-Reload Broadcaster
====================================

What:  Registry of open Server-Sent Events channels, one per connection,
       plus the send / close-all protocol used by the static file watcher.
How:   Each ReloadChannel wraps an asyncio.Queue of encoded SSE frames. The
       /sse route drains the queue into a StreamingResponse; the broadcaster
       only ever enqueues, so sending never waits on a slow client.

Channel lifecycle:
    subscribing → open      subscribe() registers a channel for the connection
    open        → closed    client disconnect (route calls unsubscribe) or close_all()

Reload protocol:
    After a file change the watcher calls send("reload", details) and then
    close_all(). Every page reloads and opens a fresh subscription. Both calls
    work on a snapshot of the registry; a client subscribing in between may
    miss that one event.
"""

import asyncio
import itertools
import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

logger = logging.getLogger(__name__)

KEEPALIVE_FRAME = ": keep-alive\n\n"

# Queue sentinel telling the stream to finish
_CLOSE = None


def format_event(event_type: str, payload: Any = None) -> str:
    """
    Encode one SSE frame.

    The payload is JSON-encoded on a single data line; browsers ignore frames
    without data, so an absent payload is sent as "{}".
    """
    data = json.dumps(payload if payload is not None else {}, default=str)
    return f"event: {event_type}\ndata: {data}\n\n"


class ReloadChannel:
    """A single connection's outbound event stream."""

    def __init__(self, identity: str, connection_id: int = 0):
        self.identity = identity
        self.connection_id = connection_id
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, frame: str) -> bool:
        """Enqueue a frame; returns False (and drops it) once the channel is closed."""
        if self._closed:
            return False
        self._queue.put_nowait(frame)
        return True

    def close(self) -> None:
        """Finish the stream after any frames already queued have been delivered."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSE)

    async def stream(self, keepalive_seconds: float = 15.0) -> AsyncIterator[str]:
        """
        Yield queued frames until the channel is closed.

        A keep-alive comment is yielded whenever no frame arrives within
        keepalive_seconds.
        """
        while True:
            try:
                frame = await asyncio.wait_for(self._queue.get(), timeout=keepalive_seconds)
            except asyncio.TimeoutError:
                yield KEEPALIVE_FRAME
                continue

            if frame is _CLOSE:
                return
            yield frame


class ReloadBroadcaster:
    """
    Registry of open reload channels, one entry per connection.

    Several connections may share a client identity (two tabs on localhost);
    each gets its own channel and receives every event.

    One instance per running server (app.state.broadcaster).
    """

    def __init__(self):
        self._channels: Dict[int, ReloadChannel] = {}
        self._connection_ids = itertools.count(1)

    def subscribe(self, identity: str) -> ReloadChannel:
        """Open and register a new channel for a connection from `identity`."""
        channel = ReloadChannel(identity, next(self._connection_ids))
        self._channels[channel.connection_id] = channel

        logger.info("SSE connected %s (#%d)", identity, channel.connection_id)
        return channel

    def unsubscribe(self, channel: ReloadChannel) -> bool:
        """
        Remove `channel` from the registry after its client went away.

        Returns False when close_all() already dropped it.
        """
        channel.close()
        if self._channels.get(channel.connection_id) is channel:
            del self._channels[channel.connection_id]
            logger.info("SSE disconnect %s (#%d)", channel.identity, channel.connection_id)
            return True
        return False

    def send(self, event_type: str, payload: Any = None) -> int:
        """
        Dispatch one event to every registered channel.

        Returns:
            Number of channels the event was queued on. Channels that already
            closed are skipped without error.
        """
        frame = format_event(event_type, payload)
        delivered = 0
        for channel in list(self._channels.values()):
            if channel.push(frame):
                delivered += 1

        logger.debug("Sent '%s' event to %d channel(s)", event_type, delivered)
        return delivered

    def close_all(self) -> int:
        """Close every registered channel and empty the registry."""
        channels: List[ReloadChannel] = list(self._channels.values())
        self._channels.clear()
        for channel in channels:
            channel.close()
        return len(channels)

    def broadcast_reload(self, details: Any = None) -> int:
        """Tell every client to reload, then drop all channels (clients reconnect after reloading)."""
        delivered = self.send("reload", details)
        self.close_all()
        return delivered

    def __contains__(self, identity: object) -> bool:
        """True while any connection from `identity` is registered."""
        return any(channel.identity == identity for channel in self._channels.values())

    def __len__(self) -> int:
        return len(self._channels)
