"""Preview panel lifecycle as an explicit transition table."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from preview_sync.errors import InvalidTransition
from preview_sync.services.sync_timers import SyncTimers

_LOGGER_NAME = "PreviewSync.PanelState"
_LOGGER = logging.getLogger(_LOGGER_NAME)

_SETTLE_KEY = "panel:settle"


class PanelState(str, Enum):
    CLOSED = "closed"
    EMPTY = "empty"
    FILE_LOADING = "file-loading"
    VIEWING = "viewing"
    SYNCING = "syncing"
    FILE_ERROR = "file-error"


class PanelTrigger(str, Enum):
    TOGGLE_OPEN = "toggle-open"
    OPEN_FILE = "open-file"
    LOAD_SUCCESS = "load-success"
    LOAD_FAILURE = "load-failure"
    ACTIVITY = "activity"
    SETTLE = "settle-timeout"
    FILE_DELETED = "file-deleted"
    RETRY = "retry"
    TOGGLE_CLOSE = "toggle-close"


S = PanelState
T = PanelTrigger

TRANSITIONS: Dict[Tuple[PanelState, PanelTrigger], PanelState] = {
    (S.CLOSED, T.TOGGLE_OPEN): S.EMPTY,
    (S.CLOSED, T.OPEN_FILE): S.FILE_LOADING,
    (S.EMPTY, T.OPEN_FILE): S.FILE_LOADING,
    # Switching files mid-load, or reloading/replacing what is shown.
    (S.FILE_LOADING, T.OPEN_FILE): S.FILE_LOADING,
    (S.VIEWING, T.OPEN_FILE): S.FILE_LOADING,
    (S.SYNCING, T.OPEN_FILE): S.FILE_LOADING,
    (S.FILE_ERROR, T.OPEN_FILE): S.FILE_LOADING,
    (S.FILE_LOADING, T.LOAD_SUCCESS): S.VIEWING,
    (S.FILE_LOADING, T.LOAD_FAILURE): S.FILE_ERROR,
    (S.VIEWING, T.ACTIVITY): S.SYNCING,
    (S.SYNCING, T.ACTIVITY): S.SYNCING,
    (S.SYNCING, T.SETTLE): S.VIEWING,
    (S.VIEWING, T.FILE_DELETED): S.FILE_ERROR,
    (S.SYNCING, T.FILE_DELETED): S.FILE_ERROR,
    (S.FILE_ERROR, T.RETRY): S.FILE_LOADING,
}
for _state in PanelState:
    TRANSITIONS[(_state, T.TOGGLE_CLOSE)] = S.CLOSED

del S, T, _state

StateListener = Callable[[PanelState, PanelState, PanelTrigger], None]


class PanelStateMachine:
    """Holds the single current panel state and applies table transitions atomically.

    ``Syncing`` is a status, not a mode: each activity report (re)arms the
    settle timer and the machine drops back to ``Viewing`` once it fires.
    """

    def __init__(self, timers: SyncTimers, *, on_change: Optional[StateListener] = None) -> None:
        self._timers = timers
        self._state = PanelState.CLOSED
        self._file_path: Optional[str] = None
        self._error_reason: Optional[str] = None
        self._listeners: list[StateListener] = []
        if on_change is not None:
            self._listeners.append(on_change)

    @property
    def state(self) -> PanelState:
        return self._state

    @property
    def file_path(self) -> Optional[str]:
        return self._file_path

    @property
    def error_reason(self) -> Optional[str]:
        return self._error_reason

    @property
    def is_open(self) -> bool:
        return self._state is not PanelState.CLOSED

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def can(self, trigger: PanelTrigger) -> bool:
        return (self._state, trigger) in TRANSITIONS

    def dispatch(
        self,
        trigger: PanelTrigger,
        *,
        path: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> PanelState:
        previous = self._state
        target = TRANSITIONS.get((previous, trigger))
        if target is None:
            raise InvalidTransition(previous.value, trigger.value)
        if trigger is PanelTrigger.OPEN_FILE:
            if not path:
                raise InvalidTransition(previous.value, f"{trigger.value} without a path")
            self._file_path = path

        if previous is PanelState.SYNCING and target is not PanelState.SYNCING:
            self._timers.cancel_debounce(_SETTLE_KEY)
        if target is PanelState.SYNCING:
            self._timers.schedule_settle(_SETTLE_KEY, self._on_settle)
        if target is PanelState.FILE_ERROR:
            self._error_reason = reason or "unknown error"
        elif previous is PanelState.FILE_ERROR:
            self._error_reason = None
        if target is PanelState.CLOSED:
            self._timers.cancel_debounce(_SETTLE_KEY)

        self._state = target
        if previous is not target:
            _LOGGER.debug("Panel %s -(%s)-> %s", previous.value, trigger.value, target.value)
            for listener in list(self._listeners):
                listener(previous, target, trigger)
        return target

    def follow_move(self, new_path: str) -> None:
        """The open file was renamed; keep the state, track the new path."""
        self._file_path = new_path

    def notify_activity(self) -> bool:
        """Scroll/edit activity; ignored outside Viewing/Syncing."""
        if not self.can(PanelTrigger.ACTIVITY):
            return False
        self.dispatch(PanelTrigger.ACTIVITY)
        return True

    def force_settle(self) -> bool:
        """Fire the pending settle timeout now instead of waiting for it."""
        if self._state is not PanelState.SYNCING:
            return False
        self._timers.cancel_debounce(_SETTLE_KEY)
        self.dispatch(PanelTrigger.SETTLE)
        return True

    def _on_settle(self) -> None:
        if self._state is PanelState.SYNCING:
            self.dispatch(PanelTrigger.SETTLE)
