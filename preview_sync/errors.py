"""Error taxonomy for the preview subsystem.

None of these are fatal to the host: load failures end up in the panel's
FileError state, render failures become placeholder blocks, and mapping
problems are repaired and logged.
"""
from __future__ import annotations

from typing import Optional


class PreviewError(Exception):
    """Base class for preview subsystem failures."""


class FileLoadError(PreviewError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{reason}: {path}")
        self.path = path
        self.reason = reason


class FileNotFound(FileLoadError):
    def __init__(self, path: str, reason: str = "ENOENT") -> None:
        super().__init__(path, reason)


class FileReadError(FileLoadError):
    pass


class RenderError(PreviewError):
    """Raised by a renderer for a single block; the document still renders."""

    def __init__(self, block_id: str, message: str) -> None:
        super().__init__(message)
        self.block_id = block_id
        self.message = message


class MappingInconsistency(PreviewError, UserWarning):
    """Malformed block layout. Logged and repaired, never raised by the mapper."""

    def __init__(self, message: str, *, repaired: Optional[int] = None) -> None:
        super().__init__(message)
        self.repaired = repaired


class InvalidTransition(PreviewError):
    def __init__(self, state: object, trigger: object) -> None:
        super().__init__(f"trigger {trigger} not allowed from {state}")
        self.state = state
        self.trigger = trigger
