"""Per-page layout cache backing click-to-select in a page viewer.

The viewer renders a page at a chosen display scale and forwards clicks as
vertical coordinates in that scaled space.  :class:`PageLayoutCache`
keeps the analysed layout for the page currently on screen and recomputes
it only when the page or scale changes.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Optional, Tuple

from .hittest import BlockIndex
from .models import Block, Selection

if TYPE_CHECKING:
    from .pipeline import PageResult

log = logging.getLogger(__name__)

# Display scales the viewer offers.
SCALE_OPTIONS: Tuple[float, ...] = (1.0, 1.5, 2.0)


class PageLayoutCache:
    """Memoise one page's :class:`~pagelayout.pipeline.PageResult`.

    Parameters
    ----------
    analyze : callable
        ``analyze(page_number, scale) -> PageResult``; typically a closure
        over :func:`~pagelayout.pipeline.run_pipeline` or
        :func:`~pagelayout.pipeline.analyze_page`.
    """

    def __init__(self, analyze: Callable[[int, float], "PageResult"]) -> None:
        self._analyze = analyze
        self._key: Optional[Tuple[int, float]] = None
        self._result: Optional["PageResult"] = None
        self._index: Optional[BlockIndex] = None

    @property
    def current(self) -> Optional["PageResult"]:
        return self._result

    def page(self, page_number: int, scale: float = 1.0) -> "PageResult":
        """Return the layout for *page_number* at *scale*, recomputing if stale.

        Raises
        ------
        ValueError
            If *scale* is not one of :data:`SCALE_OPTIONS`.
        """
        if scale not in SCALE_OPTIONS:
            raise ValueError(
                f"Unsupported display scale {scale}; expected one of {SCALE_OPTIONS}"
            )
        key = (page_number, scale)
        if self._key != key or self._result is None:
            log.debug("Analysing page %d at scale %.2f", page_number, scale)
            self._result = self._analyze(page_number, scale)
            self._index = BlockIndex(self._result.blocks)
            self._key = key
        return self._result

    def invalidate(self) -> None:
        """Drop the cached page; the next :meth:`page` call recomputes."""
        self._key = None
        self._result = None
        self._index = None

    def hit_test(self, y: float) -> Optional[Block]:
        """Block on the current page containing scaled coordinate *y*."""
        if self._index is None:
            return None
        return self._index.lookup(y)

    def select(self, y: float) -> Optional[Selection]:
        """Selection record for a click at *y*, or None on a miss."""
        blk = self.hit_test(y)
        if blk is None:
            return None
        return Selection.from_block(blk)
