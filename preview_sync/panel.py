"""Preview panel facade exposed to the UI shell."""
from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Mapping, Optional

from preview_sync.blocks import Block, MappingTable, error_placeholder
from preview_sync.config import DEFAULT_CONFIG, PreviewConfig
from preview_sync.errors import FileLoadError, RenderError
from preview_sync.file_watch import FileWatchAdapter, FileWatchEvent, WatchKind
from preview_sync.loader import FileLoader
from preview_sync.outline import OutlineEntry, breadcrumbs, build_outline
from preview_sync.panel_state import PanelState, PanelStateMachine, PanelTrigger, StateListener
from preview_sync.position_mapper import PositionMapper
from preview_sync.services.scheduler import Scheduler
from preview_sync.services.sync_timers import DEFAULT_TIMING, SyncTimers, SyncTimingProfile
from preview_sync.session_state import SessionStore, font_size_px, step_zoom_level
from preview_sync.sync_controller import CommandFn, ScrollCommand, SyncController, SyncMode

_LOGGER_NAME = "PreviewSync.Panel"
_LOGGER = logging.getLogger(_LOGGER_NAME)

DocumentFn = Callable[[str, str], None]

_LIVE_STATES = {PanelState.VIEWING, PanelState.SYNCING}


class PreviewPanel:
    """Wires mapping, sync, lifecycle, session and file I/O behind the shell-facing API."""

    def __init__(
        self,
        *,
        scheduler: Scheduler,
        session: SessionStore,
        config: PreviewConfig = DEFAULT_CONFIG,
        timing: SyncTimingProfile = DEFAULT_TIMING,
        loader: Optional[FileLoader] = None,
        mapper: Optional[PositionMapper] = None,
        scroll_source: Optional[CommandFn] = None,
        scroll_preview: Optional[CommandFn] = None,
        on_document: Optional[DocumentFn] = None,
        on_state_change: Optional[StateListener] = None,
    ) -> None:
        self._config = config
        self._session = session
        self._loader = loader or FileLoader()
        self._mapper = mapper or PositionMapper()
        self._on_document = on_document
        self._timers = SyncTimers(
            timing,
            after=scheduler.after,
            after_cancel=scheduler.after_cancel,
            logger=_LOGGER.debug,
        )
        self._machine = PanelStateMachine(self._timers, on_change=on_state_change)
        self._controller = SyncController(
            self._mapper,
            self._timers,
            mode=session.state.sync_mode,
            scroll_source=scroll_source,
            scroll_preview=scroll_preview,
            on_activity=self._machine.notify_activity,
            time_source=scheduler.now,
        )
        self._watcher = FileWatchAdapter(self._timers, self.on_file_event)
        self._text: Optional[str] = None

    # Collaborators

    @property
    def controller(self) -> SyncController:
        return self._controller

    @property
    def machine(self) -> PanelStateMachine:
        return self._machine

    @property
    def mapper(self) -> PositionMapper:
        return self._mapper

    @property
    def watcher(self) -> FileWatchAdapter:
        return self._watcher

    @property
    def session(self) -> SessionStore:
        return self._session

    @property
    def config(self) -> PreviewConfig:
        return self._config

    # Lifecycle

    def current_state(self) -> PanelState:
        return self._machine.state

    @property
    def error_reason(self) -> Optional[str]:
        return self._machine.error_reason

    @property
    def file_path(self) -> Optional[str]:
        return self._machine.file_path

    @property
    def document_text(self) -> Optional[str]:
        return self._text

    def toggle(self, path: Optional[str] = None, *, restore_last: bool = False) -> PanelState:
        if self._machine.is_open:
            return self.close()
        state = self._session.load()
        self._controller.set_mode(state.sync_mode)
        target = path or (state.last_file_path if restore_last else None)
        if target:
            self._machine.dispatch(PanelTrigger.OPEN_FILE, path=target)
            self._start_load(target)
        else:
            self._machine.dispatch(PanelTrigger.TOGGLE_OPEN)
        return self._machine.state

    def close(self) -> PanelState:
        self._loader.cancel()
        self._watcher.unwatch()
        self._controller.cancel_pending()
        return self._machine.dispatch(PanelTrigger.TOGGLE_CLOSE)

    def open_file(self, path: str) -> PanelState:
        if not self._machine.is_open:
            return self.toggle(path)
        self._machine.dispatch(PanelTrigger.OPEN_FILE, path=path)
        self._start_load(path)
        return self._machine.state

    def retry(self) -> PanelState:
        if not self._machine.can(PanelTrigger.RETRY):
            _LOGGER.debug("Retry ignored in state %s", self._machine.state.value)
            return self._machine.state
        self._machine.dispatch(PanelTrigger.RETRY)
        path = self._machine.file_path
        if path:
            self._start_load(path)
        return self._machine.state

    def _start_load(self, path: str) -> None:
        self._controller.cancel_pending()
        self._loader.load(path, self._on_load_success, self._on_load_failure)

    def _on_load_success(self, path: str, text: str) -> None:
        if self._machine.state is not PanelState.FILE_LOADING or path != self._machine.file_path:
            _LOGGER.debug("Ignoring load result for %s in state %s", path, self._machine.state.value)
            return
        self._text = text
        self._session.set_last_file_path(path)
        self._watcher.watch(path)
        self._machine.dispatch(PanelTrigger.LOAD_SUCCESS)
        if self._on_document is not None:
            self._on_document(path, text)

    def _on_load_failure(self, path: str, error: FileLoadError) -> None:
        if self._machine.state is not PanelState.FILE_LOADING or path != self._machine.file_path:
            return
        _LOGGER.warning("Preview load failed for %s: %s", path, error.reason)
        self._watcher.unwatch()
        self._machine.dispatch(PanelTrigger.LOAD_FAILURE, reason=error.reason)

    def on_file_event(self, event: FileWatchEvent) -> None:
        if event.kind is WatchKind.DELETED:
            self._controller.cancel_pending()
            if self._machine.can(PanelTrigger.FILE_DELETED):
                self._machine.dispatch(PanelTrigger.FILE_DELETED, reason="file deleted")
            return
        if event.kind is WatchKind.MOVED and event.new_path:
            self._machine.follow_move(event.new_path)
            self._session.set_last_file_path(event.new_path)
            return
        if event.kind is WatchKind.CHANGED and self._machine.state in _LIVE_STATES | {PanelState.FILE_LOADING}:
            self.open_file(event.path)

    # Layout

    def on_layout(
        self,
        blocks: Iterable[Block],
        *,
        render_errors: Optional[Mapping[str, RenderError]] = None,
        background: bool = False,
    ) -> Optional[MappingTable]:
        laid_out: List[Block] = list(blocks)
        if render_errors:
            for index, block in enumerate(laid_out):
                failure = render_errors.get(block.id)
                if failure is not None:
                    _LOGGER.warning("Block %s failed to render: %s", block.id, failure.message)
                    laid_out[index] = error_placeholder(block, failure)
        if background:
            self._mapper.rebuild_async(laid_out)
            return None
        return self._mapper.publish(laid_out)

    def outline(self) -> List[OutlineEntry]:
        return build_outline(self._mapper.table)

    def breadcrumbs(self) -> List[str]:
        return breadcrumbs(self._machine.file_path)

    # Scrolling and navigation

    def on_source_scroll(self, line: int, timestamp: Optional[float] = None) -> bool:
        if self._machine.state not in _LIVE_STATES:
            return False
        return self._controller.on_source_scroll(line, timestamp)

    def on_preview_scroll(self, offset: float, timestamp: Optional[float] = None) -> bool:
        if self._machine.state not in _LIVE_STATES:
            return False
        return self._controller.on_preview_scroll(offset, timestamp)

    def jump_to_source(self, line: int) -> Optional[ScrollCommand]:
        if not self._machine.is_open:
            return None
        return self._controller.jump_to_source(line)

    def jump_to_preview(self, offset: float) -> Optional[ScrollCommand]:
        if not self._machine.is_open:
            return None
        return self._controller.jump_to_preview(offset)

    def jump_to_heading(self, block_id: str) -> Optional[ScrollCommand]:
        if not self._machine.is_open:
            return None
        return self._controller.jump_to_heading(block_id)

    # Session

    def set_sync_mode(self, mode: SyncMode | str) -> SyncMode:
        stored = self._session.set_sync_mode(mode)
        return self._controller.set_mode(stored)

    def set_zoom(self, level: int) -> int:
        return self._session.set_zoom(level)

    def step_zoom(self, direction: int) -> int:
        level = step_zoom_level(self._config.font_size, self._session.state.zoom_level, direction)
        return self._session.set_zoom(level)

    def font_size_px(self) -> float:
        return font_size_px(self._config.font_size, self._session.state.zoom_level)

    def load_width(self) -> int:
        return self._session.load_width()

    def save_width(self, width: int) -> int:
        return self._session.save_width(width)
