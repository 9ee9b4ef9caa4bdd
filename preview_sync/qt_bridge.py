"""PyQt6 glue: UI-thread delivery, Qt timers and file watching for a preview panel."""
from __future__ import annotations

import os
from typing import Any, Callable, Optional

from PyQt6.QtCore import QFileSystemWatcher, QObject, pyqtSignal

from preview_sync.context import PanelContext, build_panel
from preview_sync.file_watch import FileWatchAdapter
from preview_sync.logging_utils import configure_logging
from preview_sync.panel import PreviewPanel
from preview_sync.services.qt_scheduler import QtScheduler


class QtDispatcher(QObject):
    """Queues callables from any thread for execution on the thread owning this object."""

    _invoke = pyqtSignal(object)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._invoke.connect(self._run)

    def deliver(self, callback: Callable[[], None]) -> None:
        self._invoke.emit(callback)

    def _run(self, callback: Callable[[], None]) -> None:
        callback()


class QtFileWatcher(QObject):
    """Feeds QFileSystemWatcher notifications into a :class:`FileWatchAdapter`.

    Qt reports a vanished path as a change and drops it from the watch list,
    so a missing file is translated into ``deleted``.
    """

    def __init__(self, adapter: FileWatchAdapter, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._adapter = adapter
        self._watcher = QFileSystemWatcher(self)
        self._watcher.fileChanged.connect(self._on_file_changed)
        adapter.add_watch_listener(self._retarget)
        self._retarget(adapter.path)

    def watched_files(self) -> list[str]:
        return list(self._watcher.files())

    def _retarget(self, path: Optional[str]) -> None:
        current = self._watcher.files()
        if current:
            self._watcher.removePaths(current)
        if path and os.path.exists(path):
            self._watcher.addPath(path)

    def _on_file_changed(self, path: str) -> None:
        if os.path.exists(path):
            if path not in self._watcher.files():
                # Atomic saves replace the inode; re-arm on the new file.
                self._watcher.addPath(path)
            self._adapter.notify_changed(path)
        else:
            self._adapter.notify_deleted(path)


class QtPreviewHost(QObject):
    """Builds a :class:`PreviewPanel` driven by the Qt event loop."""

    def __init__(self, ctx: PanelContext, parent: QObject | None = None, **hooks: Any) -> None:
        super().__init__(parent)
        configure_logging(ctx.log_dir, debug_enabled=ctx.debug_enabled)
        self.scheduler = QtScheduler(self)
        self.dispatcher = QtDispatcher(self)
        self.panel: PreviewPanel = build_panel(ctx, self.scheduler, deliver=self.dispatcher.deliver, **hooks)
        self.file_watcher = QtFileWatcher(self.panel.watcher, self)
