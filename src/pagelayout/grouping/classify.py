from __future__ import annotations

from typing import List, Optional, Sequence

from ..config import LayoutConfig
from ..models import Block, BlockKind, Line
from .tables import extract_table_grid


def _is_header(lines: Sequence[Line], settings: LayoutConfig) -> bool:
    return len(lines) == 1 and lines[0].avg_font_size > settings.header_min_font_size


def _is_table(lines: Sequence[Line], settings: LayoutConfig) -> bool:
    if len(lines) < 2:
        return False
    first = lines[0]
    return all(
        abs(ln.item_count - first.item_count) <= settings.table_item_count_tol
        and abs(ln.spacing - first.spacing) < settings.table_spacing_tol
        and ln.item_count >= settings.table_min_items
        for ln in lines
    )


def _is_paragraph(lines: Sequence[Line], settings: LayoutConfig) -> bool:
    first = lines[0]
    return all(
        abs(ln.avg_font_size - first.avg_font_size) < settings.paragraph_font_tol
        and len(ln.text) > settings.paragraph_min_text_len
        for ln in lines
    )


def classify_lines(
    lines: Sequence[Line], settings: LayoutConfig
) -> Optional[BlockKind]:
    """Return the block kind for a run of lines, or ``None`` when empty.

    Rules are tried in order and the first match wins: a single large-font
    line is a header; repeated column structure is a table; consistent
    font with substantive text is a paragraph; anything else is text.
    """
    if not lines:
        return None
    if _is_header(lines, settings):
        return BlockKind.header
    if _is_table(lines, settings):
        return BlockKind.table
    if _is_paragraph(lines, settings):
        return BlockKind.paragraph
    return BlockKind.text


def classify_block(lines: Sequence[Line], settings: LayoutConfig) -> Optional[Block]:
    """Build a classified :class:`Block`; table blocks get a grid when one fits."""
    kind = classify_lines(lines, settings)
    if kind is None:
        return None
    grid = None
    if kind is BlockKind.table:
        grid = extract_table_grid([t for ln in lines for t in ln.tokens], settings)
    return Block.from_lines(kind, lines, grid=grid)


def classify_blocks(
    runs: Sequence[Sequence[Line]], settings: LayoutConfig
) -> List[Block]:
    """Classify every line run, dropping empty ones."""
    blocks: List[Block] = []
    for run in runs:
        blk = classify_block(run, settings)
        if blk is not None:
            blocks.append(blk)
    return blocks
