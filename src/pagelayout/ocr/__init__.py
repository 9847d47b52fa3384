"""OCR of embedded images (external recogniser behind :class:`OcrEngine`)."""

from .engine import OcrEngine, PaddleOcrEngine, init_ocr_engine
from .extract import recognize_page_images

__all__ = [
    "OcrEngine",
    "PaddleOcrEngine",
    "init_ocr_engine",
    "recognize_page_images",
]
