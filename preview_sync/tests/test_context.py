from __future__ import annotations

from pathlib import Path

from preview_sync.context import SESSION_PATH_ENV_VAR, build_panel, build_panel_context
from preview_sync.config import CONFIG_PATH_ENV_VAR
from preview_sync.logging_utils import DEV_MODE_ENV_VAR
from preview_sync.panel_state import PanelState
from preview_sync.services.scheduler import VirtualScheduler
from preview_sync.sync_controller import SyncMode


def test_build_panel_context_paths_and_config(tmp_path: Path) -> None:
    config_path = tmp_path / "ghostty.conf"
    config_path.write_text("preview-sync = source-driven\npreview-width = 500\n", encoding="utf-8")
    session_path = tmp_path / "state" / "session.json"
    env = {
        CONFIG_PATH_ENV_VAR: str(config_path),
        SESSION_PATH_ENV_VAR: str(session_path),
        DEV_MODE_ENV_VAR: "1",
    }

    ctx = build_panel_context(root=tmp_path, env=env, log_dir=tmp_path / "logs")

    assert ctx.config_path == config_path
    assert ctx.session_path == session_path
    assert ctx.log_dir == tmp_path / "logs"
    assert ctx.config.sync_mode is SyncMode.SOURCE_DRIVEN
    assert ctx.config.width == 500
    assert ctx.debug_enabled is True
    assert ctx.timing.debounce_ms == 50
    assert ctx.timing.settle_ms == 50


def test_build_panel_uses_config_as_session_defaults(tmp_path: Path) -> None:
    (tmp_path / "config").write_text("preview-sync = preview-driven\npreview-width = 380\n", encoding="utf-8")
    ctx = build_panel_context(root=tmp_path, env={}, log_dir=tmp_path / "logs")

    panel = build_panel(ctx, VirtualScheduler())

    assert ctx.session_path == tmp_path / "preview_session.json"
    assert panel.current_state() is PanelState.CLOSED
    assert panel.controller.mode is SyncMode.PREVIEW_DRIVEN
    assert panel.load_width() == 380
    assert panel.toggle() is PanelState.EMPTY
    assert panel.controller.mode is SyncMode.PREVIEW_DRIVEN
