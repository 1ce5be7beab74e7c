"""
DevServe — Static File Watcher
================================

What:  Watches the static files directory and triggers a live reload on change.
How:   watchfiles.awatch() yields one batch of (Change, path) pairs per debounced
       change; each batch becomes one broadcast_reload() call.
When:  Started as a background task from the app lifespan in dev mode only,
       cancelled on shutdown.
"""

import logging
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Dict, Iterable, Set, Tuple

from watchfiles import Change, awatch

from devserve.services.reload_broadcaster import ReloadBroadcaster

logger = logging.getLogger(__name__)

Watcher = Callable[..., AsyncIterator[Set[Tuple[Change, str]]]]


def describe_changes(changes: Iterable[Tuple[Change, str]]) -> Dict[str, Any]:
    """Summarize a batch as {"kind": [...], "paths": [...]}, both sorted and de-duplicated."""
    changes = list(changes)
    return {
        "kind": sorted({change.name for change, _ in changes}),
        "paths": sorted({path for _, path in changes}),
    }


async def watch_static_files(
    path: Path,
    broadcaster: ReloadBroadcaster,
    watcher: Watcher = awatch,
) -> None:
    """
    Broadcast a reload for every change observed under `path`.

    Runs until cancelled. A missing directory is logged and the watcher exits,
    leaving the server running without live reload.
    """
    if not path or not Path(path).is_dir():
        logger.warning("Static files path %s does not exist; live reload disabled", path)
        return

    logger.info("Watching %s for changes", path)
    async for changes in watcher(path):
        details = describe_changes(changes)
        delivered = broadcaster.broadcast_reload(details)
        logger.info(
            "Reload sent to %d client(s) for %d changed path(s)",
            delivered,
            len(details["paths"]),
        )
