"""Markdown preview synchronisation: position mapping, scroll sync and panel lifecycle."""
from .blocks import Block, BlockKind, MappingTable
from .errors import FileNotFound, FileReadError, InvalidTransition, MappingInconsistency, PreviewError, RenderError
from .panel import PreviewPanel
from .panel_state import PanelState, PanelStateMachine, PanelTrigger
from .position_mapper import PositionMapper, build_table, offset_to_source_line, source_line_to_offset
from .session_state import SessionState, SessionStore
from .sync_controller import ScrollCommand, SyncController, SyncEvent, SyncMode, SyncOrigin, ViewTarget

__all__ = [
    "Block",
    "BlockKind",
    "MappingTable",
    "FileNotFound",
    "FileReadError",
    "InvalidTransition",
    "MappingInconsistency",
    "PreviewError",
    "RenderError",
    "PreviewPanel",
    "PanelState",
    "PanelStateMachine",
    "PanelTrigger",
    "PositionMapper",
    "build_table",
    "offset_to_source_line",
    "source_line_to_offset",
    "SessionState",
    "SessionStore",
    "ScrollCommand",
    "SyncController",
    "SyncEvent",
    "SyncMode",
    "SyncOrigin",
    "ViewTarget",
]
