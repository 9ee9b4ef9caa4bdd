"""Bidirectional mapping between source lines and rendered preview offsets."""
from __future__ import annotations

import logging
import threading
from bisect import bisect_left, bisect_right
from dataclasses import replace
from typing import Callable, Iterable, List, Optional

from preview_sync.blocks import EMPTY_TABLE, Block, BlockKind, MappingTable
from preview_sync.errors import MappingInconsistency

_LOGGER_NAME = "PreviewSync.PositionMapper"
_LOGGER = logging.getLogger(_LOGGER_NAME)

# Guards int() truncation against float error when inverting an interpolation.
_ROUNDING_SLACK = 1e-9

PublishListener = Callable[[MappingTable], None]
DeliverFn = Callable[[Callable[[], None]], None]


def _deliver_inline(callback: Callable[[], None]) -> None:
    callback()


def _warn(kind: str, count: int) -> None:
    issue = MappingInconsistency(f"block layout repaired: {kind}", repaired=count)
    _LOGGER.warning("Mapping inconsistency (%s): %d block(s) clamped", issue, count)


def _normalise(block: Block) -> tuple[Block, bool]:
    source_end = max(block.source_end, block.source_start)
    offset_end = max(block.offset_end, block.offset_start)
    if block.collapsed:
        offset_end = block.offset_start
    if source_end == block.source_end and offset_end == block.offset_end:
        return block, False
    return replace(block, source_end=source_end, offset_end=offset_end), True


def repair_blocks(blocks: Iterable[Block]) -> List[Block]:
    """Sort, clamp, anchor at 0, trim overlaps and fill gaps so the blocks tile both axes."""
    inverted = 0
    normalised: List[Block] = []
    for block in blocks:
        fixed, changed = _normalise(block)
        inverted += int(changed)
        normalised.append(fixed)
    if inverted:
        _warn("inverted or collapsed ranges", inverted)

    ordered = sorted(normalised, key=lambda b: (b.source_start, b.offset_start))
    if ordered != normalised:
        _warn("unsorted blocks", sum(1 for a, b in zip(ordered, normalised) if a is not b))

    if ordered and (ordered[0].source_start != 0 or ordered[0].offset_start != 0):
        first = ordered[0]
        ordered[0] = replace(
            first,
            source_start=0,
            source_end=max(first.source_end, 0),
            offset_start=0.0,
            offset_end=0.0 if first.collapsed else max(first.offset_end, 0.0),
        )
        _warn("first block not anchored at 0", 1)

    overlaps = 0
    gaps = 0
    repaired: List[Block] = []
    for block in ordered:
        if not repaired:
            repaired.append(block)
            continue
        prev = repaired[-1]
        source_start = block.source_start
        source_end = block.source_end
        offset_start = block.offset_start
        offset_end = block.offset_end

        if source_start <= prev.source_end:
            overlaps += 1
            source_start = prev.source_end + 1
            source_end = max(source_end, source_start)
        elif source_start > prev.source_end + 1:
            gaps += 1
            prev = replace(prev, source_end=source_start - 1)

        if offset_start < prev.offset_end:
            overlaps += 1
            offset_start = prev.offset_end
            offset_end = max(offset_end, offset_start)
        elif offset_start > prev.offset_end:
            gaps += 1
            if prev.collapsed:
                # A collapsed block must stay zero-height; the follower absorbs the gap.
                offset_start = prev.offset_end
            else:
                prev = replace(prev, offset_end=offset_start)
        if block.collapsed:
            offset_end = offset_start

        repaired[-1] = prev
        repaired.append(
            replace(
                block,
                source_start=source_start,
                source_end=source_end,
                offset_start=offset_start,
                offset_end=offset_end,
            )
        )
    if overlaps:
        _warn("overlapping ranges", overlaps)
    if gaps:
        _warn("coverage gaps", gaps)
    return repaired


def build_table(blocks: Iterable[Block], *, revision: int = 0) -> MappingTable:
    """Build a mapping table. Malformed input is repaired, never rejected."""
    repaired = repair_blocks(blocks)
    if not repaired:
        return replace(EMPTY_TABLE, revision=revision)
    return MappingTable.from_blocks(tuple(repaired), revision=revision)


def block_index_for_line(table: MappingTable, line: int) -> int:
    if table.empty:
        return -1
    return max(0, bisect_right(table.source_starts, line) - 1)


def block_index_for_offset(table: MappingTable, offset: float) -> int:
    if table.empty:
        return -1
    index = bisect_right(table.offset_starts, offset) - 1
    if index < 0:
        return 0
    if table.offset_starts[index] == offset:
        # Zero-height blocks share their start with the follower; the first one wins.
        index = bisect_left(table.offset_starts, offset)
    return index


def block_for_line(table: MappingTable, line: int) -> Optional[Block]:
    index = block_index_for_line(table, line)
    return table.blocks[index] if index >= 0 else None


def block_for_offset(table: MappingTable, offset: float) -> Optional[Block]:
    index = block_index_for_offset(table, offset)
    return table.blocks[index] if index >= 0 else None


def source_line_to_offset(table: MappingTable, line: int) -> float:
    block = block_for_line(table, line)
    if block is None:
        return 0.0
    if line < block.source_start:
        return block.offset_start
    if line > block.source_end:
        return block.offset_end
    if block.kind is BlockKind.CODE or block.offset_span <= 0:
        return block.offset_start
    lines = block.source_span + 1
    return block.offset_start + block.offset_span * (line - block.source_start) / lines


def offset_to_source_line(table: MappingTable, offset: float) -> int:
    block = block_for_offset(table, offset)
    if block is None:
        return 0
    if offset < block.offset_start:
        return block.source_start
    if offset > block.offset_end or (offset == block.offset_end and block.offset_span > 0):
        return block.source_end
    if block.kind is BlockKind.CODE or block.offset_span <= 0:
        return block.source_start
    lines = block.source_span + 1
    fraction = (offset - block.offset_start) / block.offset_span
    return min(block.source_end, block.source_start + int(fraction * lines + _ROUNDING_SLACK))


class PositionMapper:
    """Owns the published mapping table and rebuilds it on layout changes.

    Readers grab ``table`` and keep using that snapshot; a rebuild only ever
    replaces the reference, so a reader sees either the old or the new table.
    """

    def __init__(
        self,
        *,
        deliver: Optional[DeliverFn] = None,
        thread_name: str = "PreviewSync-Mapper",
    ) -> None:
        self._table: MappingTable = EMPTY_TABLE
        self._deliver = deliver or _deliver_inline
        self._thread_name = thread_name
        self._lock = threading.Lock()
        self._requested = 0
        self._listeners: list[PublishListener] = []
        self._worker: Optional[threading.Thread] = None

    @property
    def table(self) -> MappingTable:
        return self._table

    @property
    def revision(self) -> int:
        return self._table.revision

    def add_listener(self, listener: PublishListener) -> None:
        self._listeners.append(listener)

    def _next_revision(self) -> int:
        with self._lock:
            self._requested += 1
            return self._requested

    def publish(self, blocks: Iterable[Block]) -> MappingTable:
        """Rebuild on the calling thread and publish immediately."""
        revision = self._next_revision()
        table = build_table(blocks, revision=revision)
        self._swap(table)
        return table

    def rebuild_async(self, blocks: Iterable[Block]) -> threading.Thread:
        """Rebuild on a worker thread; stale results are dropped on arrival."""
        snapshot = list(blocks)
        revision = self._next_revision()

        def _work() -> None:
            try:
                table = build_table(snapshot, revision=revision)
            except Exception as exc:  # pragma: no cover - build_table repairs instead of raising
                _LOGGER.error("Mapping rebuild r%d failed: %s", revision, exc, exc_info=exc)
                return
            self._deliver(lambda: self._swap(table))

        worker = threading.Thread(target=_work, name=self._thread_name, daemon=True)
        self._worker = worker
        worker.start()
        return worker

    def wait_idle(self, timeout: Optional[float] = 2.0) -> None:
        worker = self._worker
        if worker is not None and worker.is_alive():
            worker.join(timeout)

    def _swap(self, table: MappingTable) -> None:
        with self._lock:
            if table.revision < self._table.revision:
                _LOGGER.debug("Dropping stale mapping r%d (current r%d)", table.revision, self._table.revision)
                return
            self._table = table
        _LOGGER.debug("Published mapping r%d with %d block(s)", table.revision, len(table))
        for listener in list(self._listeners):
            listener(table)
