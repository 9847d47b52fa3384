"""Table grid extraction and the sliding-window table scan.

The grid extractor works on any token window.  It is applied to the
tokens of blocks classified as tables and, independently, to fixed-size
windows over a page's raw token sequence (:func:`scan_tables`), which
catches dense tables that block segmentation never isolates.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..config import LayoutConfig
from ..models import TableGrid, Token

log = logging.getLogger(__name__)


def _split_rows(tokens: Sequence[Token], settings: LayoutConfig) -> List[List[Token]]:
    """Group y-sorted tokens into rows anchored on each row's first token."""
    rows: List[List[Token]] = []
    current: List[Token] = []
    anchor_y = 0.0

    def _close(row: List[Token]) -> None:
        if len(row) >= settings.grid_min_row_items:
            rows.append(row)

    for tok in sorted(tokens, key=lambda t: t.y):
        if current and abs(tok.y - anchor_y) < settings.grid_row_tol:
            current.append(tok)
            continue
        if current:
            _close(current)
        current = [tok]
        anchor_y = tok.y
    if current:
        _close(current)
    return rows


def extract_table_grid(
    tokens: Sequence[Token],
    settings: LayoutConfig,
) -> Optional[TableGrid]:
    """Infer a near-rectangular cell grid from a token window.

    Returns ``None`` when fewer than ``grid_min_rows`` rows keep at least
    ``grid_min_row_items`` tokens, or when row cell counts spread by more
    than ``grid_max_col_diff``.
    """
    rows = _split_rows(tokens, settings)
    if len(rows) < settings.grid_min_rows:
        return None

    counts = [len(r) for r in rows]
    if max(counts) - min(counts) > settings.grid_max_col_diff:
        return None

    return TableGrid(
        rows=tuple(
            tuple(t.text for t in sorted(row, key=lambda t: t.x)) for row in rows
        )
    )


def scan_tables(tokens: Sequence[Token], settings: LayoutConfig) -> List[TableGrid]:
    """Run the grid extractor over sliding windows of the raw token sequence.

    Windows hold up to ``scan_window_size`` tokens and advance by
    ``scan_window_step``.  Overlapping windows often rediscover the same
    table; exact duplicates are dropped, keeping the first occurrence.
    """
    found: List[TableGrid] = []
    seen = set()
    size = settings.scan_window_size
    step = settings.scan_window_step
    for start in range(0, len(tokens), step):
        grid = extract_table_grid(tokens[start : start + size], settings)
        if grid is None or grid.rows in seen:
            continue
        seen.add(grid.rows)
        found.append(grid)
    log.debug("scan_tables: %d tokens -> %d tables", len(tokens), len(found))
    return found
