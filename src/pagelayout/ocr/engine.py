"""OCR engine for embedded images — PaddleOCR behind a small protocol.

The recogniser is heavy to construct, so it is built once by an explicit
:func:`init_ocr_engine` call and cached by configuration key; changing
``ocr_lang`` in :class:`~pagelayout.config.LayoutConfig` transparently
returns a matching instance.  Anything with a ``recognize(image) -> str``
method can stand in for it (tests pass a mock).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import numpy as np

if TYPE_CHECKING:
    from PIL import Image

    from ..config import LayoutConfig

log = logging.getLogger(__name__)

# Cache: config-key → PaddleOCR instance.
_ocr_cache: dict[tuple, object] = {}


class OcrEngine(Protocol):
    """Anything that turns an image into text."""

    def recognize(self, image: "Image.Image") -> str: ...


def _engine_key(cfg: "LayoutConfig | None") -> tuple:
    """Derive a hashable cache key from the OCR-relevant config fields."""
    if cfg is None:
        return ("en",)
    return (cfg.ocr_lang,)


def _get_ocr(cfg: "LayoutConfig | None" = None):
    """Return a lazily-initialised PaddleOCR recogniser for *cfg*."""
    key = _engine_key(cfg)
    if key not in _ocr_cache:
        import os

        os.environ.setdefault("PADDLE_PDX_DISABLE_MODEL_SOURCE_CHECK", "True")

        from paddleocr import PaddleOCR

        log.info("Initialising PaddleOCR (lang=%s)", key[0])
        _ocr_cache[key] = PaddleOCR(
            lang=key[0],
            use_doc_orientation_classify=False,
            use_doc_unwarping=False,
            use_textline_orientation=False,
        )
    return _ocr_cache[key]


def _result_field(page_result, name: str):
    # PaddleOCR results are dict-like in 3.x and attribute-style elsewhere.
    if hasattr(page_result, "get"):
        return page_result.get(name)
    return getattr(page_result, name, None)


class PaddleOcrEngine:
    """Adapter from a PaddleOCR instance to :class:`OcrEngine`."""

    def __init__(self, ocr, min_confidence: float = 0.5) -> None:
        self._ocr = ocr
        self.min_confidence = min_confidence

    def recognize(self, image: "Image.Image") -> str:
        """Return recognised lines, top to bottom, joined by newlines."""
        arr = np.asarray(image.convert("RGB"))
        lines: list[str] = []
        for page_result in self._ocr.predict(arr):
            texts = _result_field(page_result, "rec_texts")
            scores = _result_field(page_result, "rec_scores")
            if texts is None or scores is None:
                continue
            for text, conf in zip(texts, scores):
                if text and conf >= self.min_confidence:
                    lines.append(text)
        return "\n".join(lines)


def init_ocr_engine(cfg: "LayoutConfig | None" = None) -> PaddleOcrEngine:
    """Build (or reuse) the process-wide recogniser for *cfg*.

    Call once at application start-up; the returned engine is what the
    pipeline expects as its ``ocr_engine`` argument.
    """
    min_conf = cfg.ocr_min_confidence if cfg is not None else 0.5
    return PaddleOcrEngine(_get_ocr(cfg), min_confidence=min_conf)
