"""QTimer-backed scheduler for running inside the host's Qt event loop."""
from __future__ import annotations

import itertools
import time
from typing import Callable, Dict

from PyQt6.QtCore import QObject, QTimer


class QtScheduler(QObject):
    """Single-shot QTimers keyed by opaque integer handles."""

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._timers: Dict[int, QTimer] = {}
        self._ids = itertools.count(1)

    def now(self) -> float:
        return time.monotonic()

    def after(self, ms: int, callback: Callable[[], None]) -> int:
        handle = next(self._ids)
        timer = QTimer(self)
        timer.setSingleShot(True)

        def _fire() -> None:
            self._timers.pop(handle, None)
            timer.deleteLater()
            callback()

        timer.timeout.connect(_fire)
        self._timers[handle] = timer
        timer.start(max(0, int(ms)))
        return handle

    def after_cancel(self, handle: object) -> None:
        timer = self._timers.pop(handle, None)  # type: ignore[arg-type]
        if timer is None:
            return
        timer.stop()
        timer.deleteLater()

    @property
    def pending(self) -> int:
        return len(self._timers)
