"""Geometry-first layout reconstruction: tokens → lines → blocks → grids."""

from __future__ import annotations

from typing import Iterable, List

from ..config import LayoutConfig
from ..models import Block, Token
from .classify import classify_block, classify_blocks, classify_lines
from .clustering import block_gap_threshold, build_lines, group_blocks, quantise_y
from .normalize import normalize_item, normalize_items
from .tables import extract_table_grid, scan_tables


def build_page_blocks(tokens: Iterable[Token], settings: LayoutConfig) -> List[Block]:
    """Run clustering, segmentation and classification over one page's tokens."""
    lines = build_lines(tokens, settings)
    return classify_blocks(group_blocks(lines, settings), settings)


__all__ = [
    "block_gap_threshold",
    "build_lines",
    "build_page_blocks",
    "classify_block",
    "classify_blocks",
    "classify_lines",
    "extract_table_grid",
    "group_blocks",
    "normalize_item",
    "normalize_items",
    "quantise_y",
    "scan_tables",
]
