from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from preview_sync.config import PreviewConfig, load_config, resolve_config_path
from preview_sync.logging_utils import dev_mode_enabled, resolve_logs_dir
from preview_sync.panel import DocumentFn, PreviewPanel
from preview_sync.panel_state import StateListener
from preview_sync.position_mapper import DeliverFn, PositionMapper
from preview_sync.loader import FileLoader
from preview_sync.services.scheduler import Scheduler
from preview_sync.services.sync_timers import SyncTimingProfile
from preview_sync.session_state import SESSION_FILENAME, SessionState, SessionStore
from preview_sync.sync_controller import CommandFn

SESSION_PATH_ENV_VAR = "PREVIEW_SYNC_SESSION_PATH"


@dataclass
class PanelContext:
    root: Path
    config_path: Path
    session_path: Path
    log_dir: Path
    config: PreviewConfig
    timing: SyncTimingProfile
    debug_enabled: bool


def build_panel_context(
    *,
    root: Path,
    env: Optional[Mapping[str, str]] = None,
    log_dir: Optional[Path] = None,
) -> PanelContext:
    environ = os.environ if env is None else env
    config_path = resolve_config_path(root, environ)
    session_path = Path(environ.get(SESSION_PATH_ENV_VAR, root / SESSION_FILENAME))
    return PanelContext(
        root=root,
        config_path=config_path,
        session_path=session_path,
        log_dir=log_dir or resolve_logs_dir(environ),
        config=load_config(config_path),
        timing=SyncTimingProfile(),
        debug_enabled=dev_mode_enabled(environ),
    )


def build_panel(
    ctx: PanelContext,
    scheduler: Scheduler,
    *,
    deliver: Optional[DeliverFn] = None,
    scroll_source: Optional[CommandFn] = None,
    scroll_preview: Optional[CommandFn] = None,
    on_document: Optional[DocumentFn] = None,
    on_state_change: Optional[StateListener] = None,
) -> PreviewPanel:
    """Assemble a panel whose session defaults come from the config file."""
    session = SessionStore(
        ctx.session_path,
        defaults=SessionState(width=ctx.config.width, sync_mode=ctx.config.sync_mode),
    )
    return PreviewPanel(
        scheduler=scheduler,
        session=session,
        config=ctx.config,
        timing=ctx.timing,
        loader=FileLoader(deliver=deliver),
        mapper=PositionMapper(deliver=deliver),
        scroll_source=scroll_source,
        scroll_preview=scroll_preview,
        on_document=on_document,
        on_state_change=on_state_change,
    )
