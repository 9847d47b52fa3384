from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from ..models import Block, BlockKind
from ..pipeline import PageResult

# Default RGBA outline per block kind
KIND_COLORS: Dict[str, tuple] = {
    BlockKind.header.value: (200, 0, 0, 200),
    BlockKind.table.value: (0, 0, 220, 200),
    BlockKind.paragraph.value: (0, 150, 0, 200),
    BlockKind.text.value: (120, 120, 120, 200),
    BlockKind.image.value: (230, 140, 0, 200),
}

LABEL_PREFIXES = {
    BlockKind.header.value: "H",
    BlockKind.table.value: "T",
    BlockKind.paragraph.value: "P",
    BlockKind.text.value: "B",
    BlockKind.image.value: "I",
}

FAILED_IMAGE_COLOR = (255, 0, 255, 220)


def _get_color(color_overrides: Optional[Dict[str, tuple]], key: str) -> tuple | None:
    """Get color for a key; an override of None hides that kind."""
    if color_overrides and key in color_overrides:
        return color_overrides[key]
    return KIND_COLORS.get(key)


def _scale_point(x: float, y: float, scale: float) -> Tuple[float, float]:
    """Scale (x, y) by *scale* for overlay rendering."""
    return (x * scale, y * scale)


def _draw_label(draw: ImageDraw.ImageDraw, x: float, y: float, label: str, color: tuple) -> None:
    font = ImageFont.load_default()
    bbox = draw.textbbox((x, y - 12), label, font=font)
    draw.rectangle((bbox[0] - 1, bbox[1] - 1, bbox[2] + 1, bbox[3] + 1), fill=(255, 255, 255, 200))
    draw.text((x, y - 12), label, fill=color, font=font)


def _draw_block(
    draw: ImageDraw.ImageDraw,
    idx: int,
    blk: Block,
    scale: float,
    color_overrides: Optional[Dict[str, tuple]],
    width: int,
) -> bool:
    key = blk.kind.value
    color = _get_color(color_overrides, key)
    if color is None:
        return False
    if blk.image is not None and blk.image.failed:
        color = FAILED_IMAGE_COLOR
    x0, y0, x1, y1 = blk.bbox()
    sx0, sy0 = _scale_point(x0, y0, scale)
    sx1, sy1 = _scale_point(x1, y1, scale)
    if sx1 < sx0 or sy1 < sy0:
        return False
    draw.rectangle([(sx0, sy0), (sx1, sy1)], outline=color, width=width)
    if blk.kind is BlockKind.table:
        draw.rectangle([(sx0, sy0), (sx1, sy1)], fill=color[:3] + (40,))
    _draw_label(draw, sx0, sy0, f"{LABEL_PREFIXES[key]}{idx}", color)
    return True


def draw_overlay(
    page: PageResult,
    page_width: float,
    page_height: float,
    out_path: Path,
    scale: float = 1.0,
    background: Image.Image | None = None,
    color_overrides: Optional[Dict[str, tuple]] = None,
    outline_width: int = 2,
) -> int:
    """Render the page's blocks as an overlay PNG for quick visual QA.

    Block boxes are already in the page's display space; *page_width* and
    *page_height* are in that same space and *scale* is applied on top of
    both.  If ``background`` is provided it is resized to the canvas.
    ``color_overrides`` maps block kind names to RGBA tuples; mapping a
    kind to None leaves it out.  Returns the number of blocks drawn.
    """
    img_w = int(page_width * scale)
    img_h = int(page_height * scale)
    if background is not None:
        img = background.convert("RGBA")
        if img.size != (img_w, img_h):
            img = img.resize((img_w, img_h))
    else:
        img = Image.new("RGBA", (img_w, img_h), (255, 255, 255, 255))

    draw = ImageDraw.Draw(img, "RGBA")
    drawn = 0
    for idx, blk in enumerate(page.blocks):
        if _draw_block(draw, idx, blk, scale, color_overrides, outline_width):
            drawn += 1

    img.save(out_path, format="PNG")
    return drawn
