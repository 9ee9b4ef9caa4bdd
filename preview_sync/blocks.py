"""Layout blocks reported by the renderer and the immutable mapping snapshot."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple

from preview_sync.errors import RenderError


class BlockKind(str, Enum):
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    CODE = "code"
    LIST = "list"
    TABLE = "table"

    @classmethod
    def coerce(cls, value: object) -> "BlockKind":
        if isinstance(value, BlockKind):
            return value
        token = str(value or "").strip().lower()
        for member in cls:
            if member.value == token:
                return member
        return cls.PARAGRAPH


@dataclass(frozen=True)
class Block:
    """One contiguous unit of content with a source-line range and a rendered-offset range."""

    id: str
    source_start: int
    source_end: int
    offset_start: float
    offset_end: float
    kind: BlockKind = BlockKind.PARAGRAPH
    collapsed: bool = False
    level: int = 0
    text: str = ""
    error: Optional[str] = None

    @property
    def source_span(self) -> int:
        return self.source_end - self.source_start

    @property
    def offset_span(self) -> float:
        return self.offset_end - self.offset_start

    def contains_line(self, line: int) -> bool:
        return self.source_start <= line <= self.source_end


def error_placeholder(block: Block, exc: RenderError) -> Block:
    """Swap a block the renderer failed on for a placeholder that keeps its ranges."""
    return replace(block, error=exc.message or "render failed")


@dataclass(frozen=True)
class MappingTable:
    blocks: Tuple[Block, ...] = ()
    source_starts: Tuple[int, ...] = field(default=(), repr=False)
    offset_starts: Tuple[float, ...] = field(default=(), repr=False)
    revision: int = 0

    @classmethod
    def from_blocks(cls, blocks: Tuple[Block, ...], revision: int = 0) -> "MappingTable":
        return cls(
            blocks=blocks,
            source_starts=tuple(block.source_start for block in blocks),
            offset_starts=tuple(block.offset_start for block in blocks),
            revision=revision,
        )

    def __len__(self) -> int:
        return len(self.blocks)

    @property
    def empty(self) -> bool:
        return not self.blocks

    @property
    def last_source_line(self) -> int:
        return self.blocks[-1].source_end if self.blocks else 0

    @property
    def last_offset(self) -> float:
        return self.blocks[-1].offset_end if self.blocks else 0.0

    def find(self, block_id: str) -> Optional[Block]:
        for block in self.blocks:
            if block.id == block_id:
                return block
        return None


EMPTY_TABLE = MappingTable()
