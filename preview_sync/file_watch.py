"""File-watch events for the open document, with save-burst debouncing."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from preview_sync.services.sync_timers import SyncTimers

_LOGGER_NAME = "PreviewSync.FileWatch"
_LOGGER = logging.getLogger(_LOGGER_NAME)

_CHANGED_KEY = "watch:changed"


class WatchKind(str, Enum):
    CHANGED = "changed"
    DELETED = "deleted"
    MOVED = "moved"


@dataclass(frozen=True)
class FileWatchEvent:
    kind: WatchKind
    path: str
    new_path: Optional[str] = None


EventFn = Callable[[FileWatchEvent], None]


class FileWatchAdapter:
    """Normalises raw notifications for one watched path.

    Editors often write a file several times per save, so ``changed`` is
    debounced; ``deleted`` and ``moved`` are delivered immediately and drop any
    pending ``changed`` for the old path.
    """

    def __init__(self, timers: SyncTimers, on_event: EventFn) -> None:
        self._timers = timers
        self._on_event = on_event
        self._path: Optional[str] = None
        self._watch_listeners: list[Callable[[Optional[str]], None]] = []

    def add_watch_listener(self, listener: Callable[[Optional[str]], None]) -> None:
        """Called with the new path (or None) whenever the watched file changes."""
        self._watch_listeners.append(listener)

    @property
    def path(self) -> Optional[str]:
        return self._path

    def watch(self, path: Optional[str]) -> None:
        if path == self._path:
            return
        self._timers.cancel_debounce(_CHANGED_KEY)
        self._path = path
        for listener in list(self._watch_listeners):
            listener(path)

    def unwatch(self) -> None:
        self.watch(None)

    def notify_changed(self, path: str) -> bool:
        if not self._matches(path):
            return False
        self._timers.schedule_watch(_CHANGED_KEY, self._emit_changed)
        return True

    def notify_deleted(self, path: str) -> bool:
        if not self._matches(path):
            return False
        self._timers.cancel_debounce(_CHANGED_KEY)
        self._emit(FileWatchEvent(WatchKind.DELETED, path))
        return True

    def notify_moved(self, path: str, new_path: str) -> bool:
        if not self._matches(path):
            return False
        self._timers.cancel_debounce(_CHANGED_KEY)
        self.watch(new_path)
        self._emit(FileWatchEvent(WatchKind.MOVED, path, new_path=new_path))
        return True

    def _matches(self, path: str) -> bool:
        if self._path is None or path != self._path:
            _LOGGER.debug("Ignoring watch notification for unwatched path %s", path)
            return False
        return True

    def _emit_changed(self) -> None:
        if self._path is not None:
            self._emit(FileWatchEvent(WatchKind.CHANGED, self._path))

    def _emit(self, event: FileWatchEvent) -> None:
        _LOGGER.debug("File %s: %s%s", event.kind.value, event.path, f" -> {event.new_path}" if event.new_path else "")
        self._on_event(event)
