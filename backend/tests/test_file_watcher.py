"""
DevServe — Static File Watcher Tests
======================================

What:  The watcher loop with a scripted stand-in for watchfiles.awatch.

What we test:
    ✅ Each change batch sends one reload event, then closes all channels
    ✅ Change details are summarized as sorted kinds and paths
    ✅ A missing directory disables the watcher instead of crashing
"""

import json

import pytest
from watchfiles import Change

from devserve.services.file_watcher import describe_changes, watch_static_files
from devserve.services.reload_broadcaster import ReloadBroadcaster


def scripted_watcher(*batches):
    """Returns an awatch replacement yielding the given batches, recording its path."""
    seen_paths = []

    async def watcher(path):
        seen_paths.append(path)
        for batch in batches:
            yield batch

    watcher.seen_paths = seen_paths
    return watcher


def test_describe_changes():
    details = describe_changes({
        (Change.modified, "/static/b.css"),
        (Change.added, "/static/a.js"),
        (Change.modified, "/static/a.js"),
    })

    assert details == {
        "kind": ["added", "modified"],
        "paths": ["/static/a.js", "/static/b.css"],
    }


@pytest.mark.asyncio
async def test_change_broadcasts_reload_then_closes_channels(tmp_path):
    broadcaster = ReloadBroadcaster()
    channel = broadcaster.subscribe("127.0.0.1")
    watcher = scripted_watcher({(Change.modified, str(tmp_path / "index.html"))})

    await watch_static_files(tmp_path, broadcaster, watcher=watcher)

    assert watcher.seen_paths == [tmp_path]
    assert len(broadcaster) == 0
    assert channel.closed

    frames = [frame async for frame in channel.stream(keepalive_seconds=1)]
    assert len(frames) == 1
    event_line, data_line = frames[0].strip().split("\n")
    assert event_line == "event: reload"
    assert json.loads(data_line[len("data: "):]) == {
        "kind": ["modified"],
        "paths": [str(tmp_path / "index.html")],
    }


@pytest.mark.asyncio
async def test_every_batch_triggers_its_own_reload(tmp_path):
    broadcaster = ReloadBroadcaster()
    sent = []
    original_send = broadcaster.send

    def recording_send(event_type, payload=None):
        sent.append((event_type, payload))
        return original_send(event_type, payload)

    broadcaster.send = recording_send
    watcher = scripted_watcher(
        {(Change.added, "a.js")},
        {(Change.deleted, "b.js")},
    )

    await watch_static_files(tmp_path, broadcaster, watcher=watcher)

    assert sent == [
        ("reload", {"kind": ["added"], "paths": ["a.js"]}),
        ("reload", {"kind": ["deleted"], "paths": ["b.js"]}),
    ]


@pytest.mark.asyncio
async def test_missing_directory_disables_watcher(tmp_path, caplog):
    broadcaster = ReloadBroadcaster()
    watcher = scripted_watcher({(Change.added, "x")})

    await watch_static_files(tmp_path / "missing", broadcaster, watcher=watcher)

    assert watcher.seen_paths == []
    assert "live reload disabled" in caplog.text
