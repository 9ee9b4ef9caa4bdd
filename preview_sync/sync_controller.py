"""Scroll synchronisation between the source view and the rendered preview."""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, Optional

from preview_sync.blocks import BlockKind
from preview_sync.position_mapper import PositionMapper, offset_to_source_line, source_line_to_offset
from preview_sync.services.sync_timers import SyncTimers

_LOGGER_NAME = "PreviewSync.SyncController"
_LOGGER = logging.getLogger(_LOGGER_NAME)

_SOURCE_KEY = "scroll:source"
_PREVIEW_KEY = "scroll:preview"


class SyncMode(str, Enum):
    SOURCE_DRIVEN = "source-driven"
    PREVIEW_DRIVEN = "preview-driven"
    INDEPENDENT = "independent"
    BIDIRECTIONAL = "bidirectional"

    @classmethod
    def parse(cls, value: object, default: Optional["SyncMode"] = None) -> "SyncMode":
        if isinstance(value, SyncMode):
            return value
        token = str(value or "").strip().lower().replace("_", "-")
        for member in cls:
            if token in {member.value, member.value.replace("-", "")}:
                return member
        if default is not None:
            return default
        raise ValueError(f"unknown sync mode: {value!r}")

    @property
    def follows_source(self) -> bool:
        return self in {SyncMode.SOURCE_DRIVEN, SyncMode.BIDIRECTIONAL}

    @property
    def follows_preview(self) -> bool:
        return self in {SyncMode.PREVIEW_DRIVEN, SyncMode.BIDIRECTIONAL}


class SyncOrigin(str, Enum):
    SOURCE = "source"
    PREVIEW = "preview"
    USER_JUMP = "user-jump"


class ViewTarget(str, Enum):
    SOURCE = "source"
    PREVIEW = "preview"


@dataclass(frozen=True)
class SyncEvent:
    origin: SyncOrigin
    position: float
    generation: int
    timestamp: float


@dataclass(frozen=True)
class ScrollCommand:
    """A cross-view scroll request; ``generation`` tags it for echo detection."""

    target: ViewTarget
    position: float
    generation: int
    origin: SyncOrigin


@dataclass
class _PendingEcho:
    position: float
    generation: int
    issued_at: float


CommandFn = Callable[[ScrollCommand], None]


def _ignore_command(command: ScrollCommand) -> None:
    return None


class SyncController:
    """Debounced, mode-gated scroll propagation with generation-tagged echo suppression.

    Scroll reports from either view are coalesced per direction: the timer
    restarts on each report and only the last position is forwarded once the
    window goes quiet. Every forwarded command bumps ``generation`` and
    remembers where it sent the target view; when that view reports arriving
    there inside the same window, the report is treated as our own echo and
    dropped. Explicit jumps skip gating and debouncing entirely.
    """

    def __init__(
        self,
        mapper: PositionMapper,
        timers: SyncTimers,
        *,
        mode: SyncMode = SyncMode.BIDIRECTIONAL,
        scroll_source: Optional[CommandFn] = None,
        scroll_preview: Optional[CommandFn] = None,
        on_activity: Optional[Callable[[], None]] = None,
        time_source: Callable[[], float],
        source_epsilon: float = 0.0,
        preview_epsilon: float = 2.0,
        history: int = 64,
    ) -> None:
        self._mapper = mapper
        self._timers = timers
        self._mode = SyncMode.parse(mode)
        self._scroll_source = scroll_source or _ignore_command
        self._scroll_preview = scroll_preview or _ignore_command
        self._on_activity = on_activity
        self._time = time_source
        self._epsilon = {ViewTarget.SOURCE: float(source_epsilon), ViewTarget.PREVIEW: float(preview_epsilon)}
        self._generation = 0
        self._pending_line: Optional[int] = None
        self._pending_offset: Optional[float] = None
        self._echo: dict[ViewTarget, _PendingEcho] = {}
        self.events: Deque[SyncEvent] = deque(maxlen=max(1, history))
        self.dropped_echoes = 0

    @property
    def mode(self) -> SyncMode:
        return self._mode

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def debounce_window_ms(self) -> int:
        return self._timers.debounce_ms

    def has_pending(self) -> bool:
        return self._timers.pending(_SOURCE_KEY) or self._timers.pending(_PREVIEW_KEY)

    def cancel_pending(self) -> None:
        self._cancel_source()
        self._cancel_preview()

    def set_mode(self, mode: SyncMode | str) -> SyncMode:
        new_mode = SyncMode.parse(mode)
        previous = self._mode
        self._mode = new_mode
        if not new_mode.follows_source:
            self._cancel_source()
        if not new_mode.follows_preview:
            self._cancel_preview()
        if previous is not new_mode:
            _LOGGER.debug("Sync mode %s -> %s", previous.value, new_mode.value)
        return new_mode

    # Ambient scroll reports

    def on_source_scroll(self, line: int, timestamp: Optional[float] = None) -> bool:
        """Queue a preview update for a source scroll. Returns True if it was accepted."""
        now = self._time() if timestamp is None else timestamp
        if self._is_echo(ViewTarget.SOURCE, line, now):
            return False
        if not self._mode.follows_source:
            return False
        self._pending_line = int(line)
        self._timers.schedule_debounce(_SOURCE_KEY, self._flush_source)
        return True

    def on_preview_scroll(self, offset: float, timestamp: Optional[float] = None) -> bool:
        now = self._time() if timestamp is None else timestamp
        if self._is_echo(ViewTarget.PREVIEW, offset, now):
            return False
        if not self._mode.follows_preview:
            return False
        self._pending_offset = float(offset)
        self._timers.schedule_debounce(_PREVIEW_KEY, self._flush_preview)
        return True

    def _flush_source(self) -> None:
        line = self._pending_line
        self._pending_line = None
        if line is None or not self._mode.follows_source:
            return
        offset = source_line_to_offset(self._mapper.table, line)
        self._issue(ViewTarget.PREVIEW, offset, SyncOrigin.SOURCE)

    def _flush_preview(self) -> None:
        offset = self._pending_offset
        self._pending_offset = None
        if offset is None or not self._mode.follows_preview:
            return
        line = offset_to_source_line(self._mapper.table, offset)
        self._issue(ViewTarget.SOURCE, line, SyncOrigin.PREVIEW)

    # Explicit navigation

    def jump_to_source(self, line: int) -> ScrollCommand:
        self._cancel_source()
        self._cancel_preview()
        return self._issue(ViewTarget.SOURCE, int(line), SyncOrigin.USER_JUMP)

    def jump_to_preview(self, offset: float) -> ScrollCommand:
        self._cancel_source()
        self._cancel_preview()
        return self._issue(ViewTarget.PREVIEW, float(offset), SyncOrigin.USER_JUMP)

    def reveal_in_source(self, offset: float) -> ScrollCommand:
        """Click-to-edit: move the source view to the line under a preview offset."""
        return self.jump_to_source(offset_to_source_line(self._mapper.table, offset))

    def reveal_in_preview(self, line: int) -> ScrollCommand:
        return self.jump_to_preview(source_line_to_offset(self._mapper.table, line))

    def jump_to_heading(self, block_id: str) -> Optional[ScrollCommand]:
        block = self._mapper.table.find(block_id)
        if block is None or block.kind is not BlockKind.HEADING:
            _LOGGER.debug("Outline jump ignored; %s is not a heading in the current layout", block_id)
            return None
        return self.jump_to_preview(block.offset_start)

    # Internals

    def _issue(self, target: ViewTarget, position: float, origin: SyncOrigin) -> ScrollCommand:
        self._generation += 1
        now = self._time()
        command = ScrollCommand(target=target, position=position, generation=self._generation, origin=origin)
        self._echo[target] = _PendingEcho(position=position, generation=self._generation, issued_at=now)
        self.events.append(SyncEvent(origin=origin, position=position, generation=self._generation, timestamp=now))
        _LOGGER.debug("Issue g%d %s -> %s @ %s", command.generation, origin.value, target.value, position)
        if target is ViewTarget.PREVIEW:
            self._scroll_preview(command)
        else:
            self._scroll_source(command)
        if self._on_activity is not None:
            self._on_activity()
        return command

    def _is_echo(self, reporter: ViewTarget, position: float, timestamp: float) -> bool:
        expected = self._echo.get(reporter)
        if expected is None:
            return False
        elapsed_ms = (timestamp - expected.issued_at) * 1000.0
        window_ms = self._timers.debounce_ms + 1e-6
        if elapsed_ms < -1e-6 or elapsed_ms > window_ms:
            if elapsed_ms > window_ms:
                self._echo.pop(reporter, None)
            return False
        if abs(float(position) - expected.position) > self._epsilon[reporter]:
            return False
        self._echo.pop(reporter, None)
        self.dropped_echoes += 1
        _LOGGER.debug("Dropped %s echo of g%d at %s", reporter.value, expected.generation, position)
        return True

    def _cancel_source(self) -> None:
        self._pending_line = None
        self._timers.cancel_debounce(_SOURCE_KEY)

    def _cancel_preview(self) -> None:
        self._pending_offset = None
        self._timers.cancel_debounce(_PREVIEW_KEY)
