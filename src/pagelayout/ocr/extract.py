"""Turn a page's embedded images into image blocks via an OCR engine."""

from __future__ import annotations

import logging
from typing import List, Sequence

from ..ingest import PageImage
from ..models import Block, ImageContent
from .engine import OcrEngine

log = logging.getLogger(__name__)


def recognize_page_images(
    images: Sequence[PageImage],
    engine: OcrEngine,
    scale: float = 1.0,
) -> List[Block]:
    """OCR each image and wrap the result in an image :class:`Block`.

    Recognition failures do not abort the page: the block is still
    produced, with ``failed=True`` and the error message, so the
    presentation layer can flag it.  Coordinates are scaled into token
    space.
    """
    blocks: List[Block] = []
    for img in images:
        bbox = tuple(v * scale for v in img.bbox())
        if img.image is None:
            content = ImageContent(
                image_ref=img.ref, bbox=bbox, failed=True, error="no raster data"
            )
        else:
            try:
                text = engine.recognize(img.image).strip()
                content = ImageContent(text=text, image_ref=img.ref, bbox=bbox)
            except Exception as exc:
                log.warning("OCR failed for image %s: %s", img.ref, exc)
                content = ImageContent(
                    image_ref=img.ref,
                    bbox=bbox,
                    failed=True,
                    error=f"{type(exc).__name__}: {exc}",
                )
        blocks.append(Block.from_image(content))
    return blocks
