"""Map a vertical coordinate back to the block that contains it."""

from __future__ import annotations

from bisect import bisect_right
from typing import Iterable, List, Optional

from .models import Block


class BlockIndex:
    """Sorted-range lookup over a page's blocks.

    Text-derived blocks partition the page's lines and never overlap, so a
    binary search over their ``y_start`` values finds the only candidate.
    Image blocks may overlap text; they are consulted, in page order, only
    when no text block contains the coordinate.
    """

    def __init__(self, blocks: Iterable[Block]) -> None:
        blocks = list(blocks)
        self._text = sorted((b for b in blocks if b.lines), key=lambda b: b.y_start)
        self._starts = [b.y_start for b in self._text]
        self._images: List[Block] = [b for b in blocks if not b.lines]

    def __len__(self) -> int:
        return len(self._text) + len(self._images)

    def lookup(self, y: float) -> Optional[Block]:
        """Return the block whose ``[y_start, y_end]`` contains *y*, if any."""
        i = bisect_right(self._starts, y) - 1
        if i >= 0 and self._text[i].contains(y):
            return self._text[i]
        for blk in self._images:
            if blk.contains(y):
                return blk
        return None


def hit_test(blocks: Iterable[Block], y: float) -> Optional[Block]:
    """One-shot lookup; build a :class:`BlockIndex` to query a page repeatedly."""
    return BlockIndex(blocks).lookup(y)
