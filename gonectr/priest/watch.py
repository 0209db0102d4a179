"""Watch source directories and report changes to Go files."""

from __future__ import annotations

import logging
import os
import threading
from typing import Callable, Sequence

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

_RELEVANT_EVENTS = frozenset({EVENT_TYPE_MODIFIED, EVENT_TYPE_CREATED, EVENT_TYPE_DELETED})

WatchCallback = Callable[[str, str, str], None]


def is_relevant_event(event_type: str, path: str, exclude: str) -> bool:
    """Tell whether a change to `path` should trigger regeneration."""
    return (
        event_type in _RELEVANT_EVENTS
        and path != exclude
        and os.path.splitext(path)[1] == ".go"
    )


class _Handler(FileSystemEventHandler):
    def __init__(self, callback: WatchCallback, exclude: str) -> None:
        super().__init__()
        self._callback = callback
        self._exclude = exclude

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = os.fsdecode(event.src_path)
        if not is_relevant_event(event.event_type, path, self._exclude):
            return
        logger.info("watch file(%s) changed", path)
        try:
            self._callback(os.path.dirname(path), path, event.event_type)
        except Exception:  # keep the watcher alive
            logger.exception("handling change of %s failed", path)


def do_watch(
    callback: WatchCallback,
    scan_dirs: Sequence[str],
    exclude: str,
    stop_event: threading.Event | None = None,
) -> None:
    """Call `callback(dir, path, event_type)` on Go file changes until `stop_event` is set."""
    handler = _Handler(callback, exclude)
    observer = Observer()
    for directory in scan_dirs:
        if not os.path.isdir(directory):
            logger.error("cannot watch %s: not a directory", directory)
            continue
        logger.info("watch %s", directory)
        observer.schedule(handler, directory, recursive=True)
    observer.start()
    try:
        (stop_event or threading.Event()).wait()
    finally:
        observer.stop()
        observer.join()