from __future__ import annotations

import math
from collections import defaultdict
from typing import Dict, Iterable, List

from ..config import LayoutConfig
from ..models import Line, Token

# =============================================================================
# Row-Truth Layer: quantise_y, build_lines
# =============================================================================


def quantise_y(y: float, step: float) -> float:
    """Round *y* to the nearest multiple of *step*, halves rounding up."""
    return math.floor(y / step + 0.5) * step


def build_lines(tokens: Iterable[Token], settings: LayoutConfig) -> List[Line]:
    """Build lines from tokens by bucketing on quantised y.

    Every token lands in exactly one line.  Tokens within a line are
    sorted by ascending x (stable for equal x), and lines are returned in
    ascending y order.

    Args:
        tokens: Tokens in any order
        settings: LayoutConfig with line_y_tolerance

    Returns:
        List of Line objects sorted by y
    """
    buckets: Dict[float, List[Token]] = defaultdict(list)
    for tok in tokens:
        buckets[quantise_y(tok.y, settings.line_y_tolerance)].append(tok)

    return [
        Line(y=y, tokens=tuple(sorted(buckets[y], key=lambda t: t.x)))
        for y in sorted(buckets)
    ]


# =============================================================================
# Block Layer: block_gap_threshold, group_blocks
# =============================================================================


def block_gap_threshold(line: Line, settings: LayoutConfig) -> float:
    """Vertical gap above *line* beyond which a new block starts."""
    return max(
        settings.block_gap_floor,
        line.avg_font_size * settings.block_gap_font_mult,
    )


def group_blocks(lines: List[Line], settings: LayoutConfig) -> List[List[Line]]:
    """Split an ordered line sequence into runs of vertically close lines.

    The gap is measured between consecutive representative y values and
    compared against the threshold of the *incoming* line.  The result
    partitions *lines*: concatenating the runs gives back the input.
    """
    if not lines:
        return []

    runs: List[List[Line]] = []
    current = [lines[0]]
    for prev, line in zip(lines, lines[1:]):
        gap = line.y - prev.y
        if gap > block_gap_threshold(line, settings):
            runs.append(current)
            current = [line]
        else:
            current.append(line)
    runs.append(current)
    return runs
