"""String-keyed preview settings stored as ``key = value`` lines in the user's config file."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional

from preview_sync.session_state import DEFAULT_WIDTH, clamp_width
from preview_sync.sync_controller import SyncMode

_LOGGER_NAME = "PreviewSync.Config"
_LOGGER = logging.getLogger(_LOGGER_NAME)

CONFIG_PATH_ENV_VAR = "PREVIEW_SYNC_CONFIG_PATH"

KEY_WIDTH = "preview-width"
KEY_SYNC = "preview-sync"
KEY_FONT_SIZE = "preview-font-size"
KEY_CONFIRM_LINKS = "preview-confirm-external-links"
KEY_LAZY_IMAGES = "preview-lazy-images"

FONT_SIZE_MIN = 10
FONT_SIZE_MAX = 24
DEFAULT_FONT_SIZE = 15


@dataclass(frozen=True)
class PreviewConfig:
    width: int = DEFAULT_WIDTH
    sync_mode: SyncMode = SyncMode.BIDIRECTIONAL
    font_size: int = DEFAULT_FONT_SIZE
    confirm_external_links: bool = True
    lazy_images: bool = True

    def as_settings(self) -> dict[str, str]:
        return {
            KEY_WIDTH: str(self.width),
            KEY_SYNC: self.sync_mode.value,
            KEY_FONT_SIZE: str(self.font_size),
            KEY_CONFIRM_LINKS: _format_bool(self.confirm_external_links),
            KEY_LAZY_IMAGES: _format_bool(self.lazy_images),
        }


DEFAULT_CONFIG = PreviewConfig()


def _format_bool(value: bool) -> str:
    return "true" if value else "false"


def parse_bool(value: str) -> Optional[bool]:
    token = value.strip().lower()
    if token == "true":
        return True
    if token == "false":
        return False
    return None


def unquote(value: str) -> str:
    trimmed = value.strip()
    if len(trimmed) < 2 or not (trimmed.startswith('"') and trimmed.endswith('"')):
        return trimmed
    result = []
    escaping = False
    for char in trimmed[1:-1]:
        if escaping:
            result.append(char)
            escaping = False
        elif char == "\\":
            escaping = True
        else:
            result.append(char)
    return "".join(result)


def format_value(value: str) -> str:
    trimmed = value.strip()
    if not trimmed:
        return trimmed
    if not any(char.isspace() or char in '#"\\' for char in trimmed):
        return trimmed
    escaped = trimmed.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _key_pattern(key: str) -> re.Pattern[str]:
    return re.compile(rf"^\s*{re.escape(key)}\s*=")


def read_entries(lines: Iterable[str]) -> dict[str, str]:
    """Collect ``key = value`` pairs; the first occurrence of a key wins."""
    entries: dict[str, str] = {}
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        if key and key not in entries:
            entries[key] = unquote(value)
    return entries


def config_from_entries(entries: Mapping[str, str], *, defaults: PreviewConfig = DEFAULT_CONFIG) -> PreviewConfig:
    config = defaults
    if KEY_WIDTH in entries:
        try:
            config = replace(config, width=clamp_width(int(entries[KEY_WIDTH])))
        except ValueError:
            _LOGGER.warning("Ignoring invalid %s=%r", KEY_WIDTH, entries[KEY_WIDTH])
    if KEY_SYNC in entries:
        try:
            config = replace(config, sync_mode=SyncMode.parse(entries[KEY_SYNC]))
        except ValueError:
            _LOGGER.warning("Ignoring invalid %s=%r", KEY_SYNC, entries[KEY_SYNC])
    if KEY_FONT_SIZE in entries:
        try:
            size = int(float(entries[KEY_FONT_SIZE]))
            config = replace(config, font_size=max(FONT_SIZE_MIN, min(FONT_SIZE_MAX, size)))
        except ValueError:
            _LOGGER.warning("Ignoring invalid %s=%r", KEY_FONT_SIZE, entries[KEY_FONT_SIZE])
    for key, attr in ((KEY_CONFIRM_LINKS, "confirm_external_links"), (KEY_LAZY_IMAGES, "lazy_images")):
        if key not in entries:
            continue
        flag = parse_bool(entries[key])
        if flag is None:
            _LOGGER.warning("Ignoring invalid %s=%r", key, entries[key])
            continue
        config = replace(config, **{attr: flag})
    return config


def load_config(path: Path, *, defaults: PreviewConfig = DEFAULT_CONFIG) -> PreviewConfig:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return defaults
    except OSError as exc:
        _LOGGER.warning("Failed to read config %s: %s", path, exc)
        return defaults
    return config_from_entries(read_entries(text.splitlines()), defaults=defaults)


def replace_line(lines: List[str], key: str, value: str) -> List[str]:
    pattern = _key_pattern(key)
    updated: List[str] = []
    found = False
    for line in lines:
        if pattern.match(line):
            if not found:
                updated.append(f"{key} = {value}")
                found = True
            continue
        updated.append(line)
    if not found:
        updated.append(f"{key} = {value}")
    return updated


def remove_lines(lines: List[str], key: str) -> List[str]:
    pattern = _key_pattern(key)
    return [line for line in lines if not pattern.match(line)]


def apply_config(lines: List[str], config: PreviewConfig, *, defaults: PreviewConfig = DEFAULT_CONFIG) -> List[str]:
    """Rewrite preview keys in ``lines``. Defaults are dropped, other keys are left untouched."""
    desired = config.as_settings()
    baseline = defaults.as_settings()
    updated = list(lines)
    for key, value in desired.items():
        if value == baseline[key]:
            updated = remove_lines(updated, key)
        else:
            updated = replace_line(updated, key, format_value(value))
    return updated


def save_config(path: Path, config: PreviewConfig) -> bool:
    try:
        existing = path.read_text(encoding="utf-8").splitlines()
    except FileNotFoundError:
        existing = []
    except OSError as exc:
        _LOGGER.warning("Failed to read config %s before writing: %s", path, exc)
        return False
    lines = apply_config(existing, config)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text("\n".join(lines) + ("\n" if lines else ""), encoding="utf-8")
        tmp_path.replace(path)
        return True
    except OSError as exc:
        _LOGGER.warning("Failed to write config %s: %s", path, exc)
        return False


def resolve_config_path(root: Path, env: Optional[Mapping[str, Any]] = None) -> Path:
    environ = os.environ if env is None else env
    override = environ.get(CONFIG_PATH_ENV_VAR)
    if override:
        return Path(str(override)).expanduser()
    return root / "config"
