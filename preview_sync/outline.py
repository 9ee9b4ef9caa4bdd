from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePath
from typing import List, Optional

from preview_sync.blocks import BlockKind, MappingTable


@dataclass(frozen=True)
class OutlineEntry:
    block_id: str
    level: int
    text: str
    offset: float
    source_line: int

    @property
    def indent(self) -> int:
        return max(0, self.level - 1)


def build_outline(table: MappingTable) -> List[OutlineEntry]:
    """Headings in document order; collapsed sections keep their entries."""
    entries: List[OutlineEntry] = []
    for block in table.blocks:
        if block.kind is not BlockKind.HEADING:
            continue
        entries.append(
            OutlineEntry(
                block_id=block.id,
                level=max(1, block.level or 1),
                text=block.text.strip() or block.id,
                offset=block.offset_start,
                source_line=block.source_start,
            )
        )
    return entries


def breadcrumbs(path: Optional[str], depth: int = 3) -> List[str]:
    if not path:
        return ["Preview"]
    parts = [part for part in PurePath(path).parts if part not in {"/", "\\"}]
    return parts[-max(1, depth):] or ["Preview"]
