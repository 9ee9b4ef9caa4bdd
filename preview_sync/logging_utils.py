from __future__ import annotations

import logging
import os
import tempfile
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Mapping, Optional

LOGGER_ROOT = "PreviewSync"
LOG_DIR_ENV_VAR = "PREVIEW_SYNC_LOG_DIR"
DEV_MODE_ENV_VAR = "PREVIEW_SYNC_DEV_MODE"
LOG_FILENAME = "preview-sync.log"


def dev_mode_enabled(env: Optional[Mapping[str, str]] = None) -> bool:
    environ = os.environ if env is None else env
    value = environ.get(DEV_MODE_ENV_VAR)
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


class ReleaseLogLevelFilter(logging.Filter):
    """Promote debug logs to INFO in release builds so diagnostics stay visible."""

    def __init__(self, release_mode: bool) -> None:
        super().__init__()
        self._release_mode = release_mode

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - logging shim
        if self._release_mode and record.levelno == logging.DEBUG:
            record.levelno = logging.INFO
            record.levelname = "INFO"
        return True


def resolve_logs_dir(env: Optional[Mapping[str, str]] = None, log_dir_name: str = "preview-sync") -> Path:
    """
    Resolve the directory to store preview logs.

    Strategy:
    - Use PREVIEW_SYNC_LOG_DIR if set.
    - Fall back to XDG state/cache locations, then `cwd/logs/<log_dir_name>`.
    - Final fallback: tempdir/<log_dir_name>.
    """
    environ = os.environ if env is None else env
    candidates = []

    env_override = environ.get(LOG_DIR_ENV_VAR)
    if env_override:
        candidates.append(Path(env_override).expanduser())

    state_home = Path(environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state"))
    cache_home = Path(environ.get("XDG_CACHE_HOME", Path.home() / ".cache"))
    candidates.append(state_home / "logs")
    candidates.append(cache_home / "logs")
    candidates.append(Path.cwd() / "logs")

    for base in candidates:
        target = base / log_dir_name
        try:
            target.mkdir(parents=True, exist_ok=True)
            return target
        except OSError:
            continue

    temp_fallback = Path(tempfile.gettempdir()) / log_dir_name
    temp_fallback.mkdir(parents=True, exist_ok=True)
    return temp_fallback


def build_rotating_file_handler(
    log_dir: Path,
    filename: str = LOG_FILENAME,
    *,
    retention: int = 5,
    max_bytes: int = 512 * 1024,
    formatter: Optional[logging.Formatter] = None,
) -> logging.Handler:
    """Construct a rotating file handler with sane defaults."""
    retention = max(1, retention)
    backup_count = max(0, retention - 1)
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / filename,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    if formatter is not None:
        handler.setFormatter(formatter)
    return handler


def resolve_log_level(debug_enabled: bool) -> int:
    return logging.DEBUG if debug_enabled else logging.INFO


def configure_logging(log_dir: Path, *, debug_enabled: bool, retention: int = 5) -> logging.Logger:
    """Attach a rotating file handler to the ``PreviewSync`` logger tree once."""
    logger = logging.getLogger(LOGGER_ROOT)
    logger.setLevel(resolve_log_level(debug_enabled))
    logger.propagate = True
    target = str((log_dir / LOG_FILENAME).resolve())
    for existing in logger.handlers:
        if isinstance(existing, RotatingFileHandler) and existing.baseFilename == target:
            return logger
    formatter = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
    handler = build_rotating_file_handler(log_dir, retention=retention, formatter=formatter)
    handler.addFilter(ReleaseLogLevelFilter(release_mode=not debug_enabled))
    logger.addHandler(handler)
    return logger
