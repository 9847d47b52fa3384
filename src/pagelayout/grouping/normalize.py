"""Token normalisation: source text items → top-left-origin tokens."""

from __future__ import annotations

from typing import Iterable, List

from ..models import RawTextItem, Token


def normalize_item(item: RawTextItem, viewport_height: float, scale: float = 1.0) -> Token:
    """Convert one source item into a :class:`Token` at display *scale*.

    The source reports positions with a bottom-left origin; the y axis is
    flipped against *viewport_height* (unscaled) before scaling.  Font size
    is approximated by the run height.  Empty text is passed through.
    """
    x, y = item.transform[4], item.transform[5]
    return Token(
        text=item.text,
        x=x * scale,
        y=(viewport_height - y) * scale,
        width=item.width * scale,
        height=item.height * scale,
        font_size=item.height * scale,
    )


def normalize_items(
    items: Iterable[RawTextItem],
    viewport_height: float,
    scale: float = 1.0,
) -> List[Token]:
    """Normalise a page's items, preserving their appearance order."""
    return [normalize_item(it, viewport_height, scale) for it in items]
