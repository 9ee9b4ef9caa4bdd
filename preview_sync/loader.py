"""Asynchronous markdown file reads with stale-result suppression."""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Optional

from preview_sync.errors import FileLoadError, FileNotFound, FileReadError

_LOGGER_NAME = "PreviewSync.Loader"
_LOGGER = logging.getLogger(_LOGGER_NAME)

SuccessFn = Callable[[str, str], None]
FailureFn = Callable[[str, FileLoadError], None]
ReaderFn = Callable[[str], str]
ExecutorFn = Callable[[Callable[[], None]], None]
DeliverFn = Callable[[Callable[[], None]], None]


def read_text(path: str) -> str:
    """Read a UTF-8 file, mapping OS failures onto the preview error taxonomy."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise FileNotFound(path) from exc
    except IsADirectoryError as exc:
        raise FileReadError(path, "EISDIR") from exc
    except PermissionError as exc:
        raise FileReadError(path, "EACCES") from exc
    except UnicodeDecodeError as exc:
        raise FileReadError(path, "not valid UTF-8") from exc
    except OSError as exc:
        raise FileReadError(path, exc.strerror or str(exc)) from exc


def _spawn_thread(job: Callable[[], None]) -> None:
    threading.Thread(target=job, name="PreviewSync-Loader", daemon=True).start()


def _deliver_inline(callback: Callable[[], None]) -> None:
    callback()


class FileLoader:
    """Runs one logical load at a time; anything superseded or cancelled never calls back."""

    def __init__(
        self,
        *,
        reader: ReaderFn = read_text,
        executor: Optional[ExecutorFn] = None,
        deliver: Optional[DeliverFn] = None,
    ) -> None:
        self._reader = reader
        self._executor = executor or _spawn_thread
        self._deliver = deliver or _deliver_inline
        self._lock = threading.Lock()
        self._counter = 0
        self._active: Optional[int] = None

    @property
    def active_token(self) -> Optional[int]:
        return self._active

    def load(self, path: str, on_success: SuccessFn, on_failure: FailureFn) -> int:
        with self._lock:
            self._counter += 1
            token = self._counter
            superseded = self._active
            self._active = token
        if superseded is not None:
            _LOGGER.debug("Load #%d superseded by #%d (%s)", superseded, token, path)

        def _job() -> None:
            try:
                text = self._reader(path)
            except FileLoadError as exc:
                error: FileLoadError = exc
            except Exception as exc:
                error = FileReadError(path, str(exc) or exc.__class__.__name__)
            else:
                self._deliver(lambda: self._finish(token, path, lambda: on_success(path, text)))
                return
            self._deliver(lambda: self._finish(token, path, lambda: on_failure(path, error)))

        self._executor(_job)
        return token

    def cancel(self, token: Optional[int] = None) -> bool:
        with self._lock:
            if self._active is None or (token is not None and token != self._active):
                return False
            _LOGGER.debug("Load #%d cancelled", self._active)
            self._active = None
            return True

    def is_current(self, token: int) -> bool:
        return self._active == token

    def _finish(self, token: int, path: str, callback: Callable[[], None]) -> None:
        with self._lock:
            if self._active != token:
                _LOGGER.debug("Discarding stale load result #%d for %s", token, path)
                return
            self._active = None
        callback()
