"""Per-user preview session values persisted across panel opens."""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

from preview_sync.sync_controller import SyncMode

_LOGGER_NAME = "PreviewSync.Session"
_LOGGER = logging.getLogger(_LOGGER_NAME)

SESSION_FILENAME = "preview_session.json"
_SESSION_VERSION = 1

WIDTH_MIN = 300
WIDTH_MAX = 600
DEFAULT_WIDTH = 420
ZOOM_MIN = 50
ZOOM_MAX = 200
DEFAULT_ZOOM = 100
FONT_SCALE_PX = (10, 12, 14, 16, 18, 20, 24)


def clamp_width(value: Any, fallback: int = DEFAULT_WIDTH) -> int:
    try:
        number = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        number = fallback
    return max(WIDTH_MIN, min(WIDTH_MAX, number))


def clamp_zoom(value: Any, fallback: int = DEFAULT_ZOOM) -> int:
    try:
        number = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        number = fallback
    return max(ZOOM_MIN, min(ZOOM_MAX, number))


def _snap_to_scale(size: float, base_px: float) -> float:
    # A whole-percent zoom misses a scale size by at most half a percent of the base.
    tolerance = abs(float(base_px)) * 0.005 + 1e-9
    for px in FONT_SCALE_PX:
        if abs(size - px) <= tolerance:
            return float(px)
    return size


def font_size_px(base_px: float, zoom_level: int) -> float:
    """Rendered font size for a zoom percentage, kept within the discrete scale's bounds."""
    size = _snap_to_scale(float(base_px) * clamp_zoom(zoom_level) / 100.0, base_px)
    return max(float(FONT_SCALE_PX[0]), min(float(FONT_SCALE_PX[-1]), size))


def step_zoom_level(base_px: float, zoom_level: int, direction: int) -> int:
    """Zoom percentage that lands on the next discrete font size in ``direction``."""
    current = _snap_to_scale(float(base_px) * clamp_zoom(zoom_level) / 100.0, base_px)
    if direction > 0:
        candidates = [px for px in FONT_SCALE_PX if px > current + 1e-6]
        if not candidates:
            return clamp_zoom(zoom_level)
        target = candidates[0]
    elif direction < 0:
        candidates = [px for px in FONT_SCALE_PX if px < current - 1e-6]
        if not candidates:
            return clamp_zoom(zoom_level)
        target = candidates[-1]
    else:
        return clamp_zoom(zoom_level)
    return clamp_zoom(target * 100.0 / float(base_px))


@dataclass(frozen=True)
class SessionState:
    width: int = DEFAULT_WIDTH
    zoom_level: int = DEFAULT_ZOOM
    sync_mode: SyncMode = SyncMode.BIDIRECTIONAL
    last_file_path: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["sync_mode"] = self.sync_mode.value
        payload["version"] = _SESSION_VERSION
        return payload

    @classmethod
    def from_json(cls, raw: Any, *, defaults: Optional["SessionState"] = None) -> "SessionState":
        base = defaults or cls()
        if not isinstance(raw, dict):
            return base
        last_path = raw.get("last_file_path")
        return cls(
            width=clamp_width(raw.get("width", base.width), base.width),
            zoom_level=clamp_zoom(raw.get("zoom_level", base.zoom_level), base.zoom_level),
            sync_mode=SyncMode.parse(raw.get("sync_mode"), default=base.sync_mode),
            last_file_path=last_path if isinstance(last_path, str) and last_path else base.last_file_path,
        )


class SessionStore:
    """Write-through JSON persistence for :class:`SessionState`."""

    def __init__(self, path: Path, *, defaults: Optional[SessionState] = None) -> None:
        self._path = path
        self._defaults = defaults or SessionState()
        self._state = self._defaults
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def state(self) -> SessionState:
        if not self._loaded:
            return self.load()
        return self._state

    def load(self) -> SessionState:
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raw = None
        except (OSError, json.JSONDecodeError) as exc:
            _LOGGER.warning("Failed to read preview session %s: %s", self._path, exc)
            raw = None
        self._state = SessionState.from_json(raw, defaults=self._defaults)
        self._loaded = True
        return self._state

    def load_width(self) -> int:
        return self.state.width

    def save_width(self, width: Any) -> int:
        return self._update(width=clamp_width(width, self.state.width)).width

    def set_zoom(self, level: Any) -> int:
        return self._update(zoom_level=clamp_zoom(level, self.state.zoom_level)).zoom_level

    def set_sync_mode(self, mode: SyncMode | str) -> SyncMode:
        return self._update(sync_mode=SyncMode.parse(mode)).sync_mode

    def set_last_file_path(self, path: Optional[str]) -> Optional[str]:
        return self._update(last_file_path=path or None).last_file_path

    def _update(self, **changes: Any) -> SessionState:
        if not self._loaded:
            # Never write defaults over a session that was not read yet.
            self.load()
        updated = replace(self._state, **changes)
        if updated == self._state:
            return updated
        self._state = updated
        self._write_snapshot(updated)
        return updated

    def _write_snapshot(self, snapshot: SessionState) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(snapshot.to_json(), indent=2, sort_keys=True), encoding="utf-8")
            tmp_path.replace(self._path)
            return True
        except OSError as exc:
            _LOGGER.warning("Failed to write preview session %s: %s", self._path, exc)
            return False
