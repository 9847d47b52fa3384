"""Ingest stage — PDF file validation, page metadata, text items and images.

Centralises PDF opening so that downstream stages never call
``pdfplumber.open()`` directly.  Text comes out in the shape the layout
core expects from a document source: one :class:`RawTextItem` per word,
with a transform in bottom-origin page space, in content-stream order.

Public API
----------
- :func:`ingest_pdf` — open + validate a PDF, return a :class:`PdfMeta`
- :func:`load_page_source` — text items, page size and embedded images
- :func:`render_page_image` — render one page to a PIL Image at a given DPI
- :class:`PdfMeta` — lightweight PDF-level metadata container
- :class:`PageInfo` — per-page dimensions
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

import pdfplumber
from PIL import Image

from ..models import RawTextItem

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------


@dataclass
class PageInfo:
    """Dimension metadata for a single PDF page."""

    index: int  # zero-based page number
    width: float  # points
    height: float  # points

    def to_dict(self) -> dict:
        """Serialize page info to a JSON-compatible dict."""
        return {
            "index": self.index,
            "width": round(self.width, 3),
            "height": round(self.height, 3),
        }


@dataclass
class PdfMeta:
    """PDF-level metadata returned by :func:`ingest_pdf`.

    This is a lightweight descriptor; it does **not** hold the
    ``pdfplumber.PDF`` handle open.
    """

    path: Path
    num_pages: int
    pages: List[PageInfo] = field(default_factory=list)
    file_size_bytes: int = 0
    error: Optional[str] = None

    def page(self, index: int) -> PageInfo:
        """Return :class:`PageInfo` for *index* (zero-based)."""
        return self.pages[index]

    def to_dict(self) -> dict:
        """Serialize PDF metadata to a JSON-compatible dict."""
        d: dict = {
            "path": str(self.path),
            "num_pages": self.num_pages,
            "file_size_bytes": self.file_size_bytes,
        }
        if self.error:
            d["error"] = self.error
        d["pages"] = [p.to_dict() for p in self.pages]
        return d


@dataclass
class PageImage:
    """An embedded raster image found on a page.

    Coordinates are in unscaled top-left-origin points.  ``image`` holds the
    rasterised crop handed to the OCR collaborator.
    """

    ref: str
    x0: float
    top: float
    x1: float
    bottom: float
    image: Optional[Image.Image] = None

    def bbox(self) -> Tuple[float, float, float, float]:
        return (self.x0, self.top, self.x1, self.bottom)


@dataclass
class PageSource:
    """Everything the layout core needs from one page of the source."""

    index: int
    width: float
    height: float
    items: List[RawTextItem] = field(default_factory=list)
    images: List[PageImage] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


class IngestError(Exception):
    """Raised when a PDF cannot be ingested."""


def _validate_pdf_path(pdf_path: Path) -> None:
    """Raise :class:`IngestError` for missing / empty / wrong-extension files."""
    if not pdf_path.exists():
        raise IngestError(f"File not found: {pdf_path}")
    if not pdf_path.is_file():
        raise IngestError(f"Not a file: {pdf_path}")
    if pdf_path.stat().st_size == 0:
        raise IngestError(f"Empty file: {pdf_path}")
    if pdf_path.suffix.lower() != ".pdf":
        raise IngestError(f"Not a PDF (suffix={pdf_path.suffix!r}): {pdf_path}")


# ---------------------------------------------------------------------------
# Page readers
# ---------------------------------------------------------------------------


def _page_text_items(page) -> List[RawTextItem]:
    """Convert pdfplumber words to source items in bottom-origin space."""
    page_h = float(page.height)
    items: List[RawTextItem] = []
    for w in page.extract_words(use_text_flow=True):
        x0 = float(w.get("x0", 0.0))
        x1 = float(w.get("x1", 0.0))
        top = float(w.get("top", 0.0))
        bottom = float(w.get("bottom", 0.0))
        height = bottom - top
        items.append(
            RawTextItem(
                text=w.get("text", ""),
                transform=(height, 0.0, 0.0, height, x0, page_h - bottom),
                width=x1 - x0,
                height=height,
            )
        )
    return items


def _page_images(page, page_num: int, resolution: int) -> List[PageImage]:
    """Locate embedded images and rasterise each one's page region."""
    page_w, page_h = float(page.width), float(page.height)
    found: List[PageImage] = []
    for i, im in enumerate(page.images or []):
        # Clip to page bounds (images can bleed past the page edge)
        x0 = max(0.0, min(page_w, float(im.get("x0", 0.0))))
        x1 = max(0.0, min(page_w, float(im.get("x1", 0.0))))
        top = max(0.0, min(page_h, float(im.get("top", 0.0))))
        bottom = max(0.0, min(page_h, float(im.get("bottom", 0.0))))
        if x1 <= x0 or bottom <= top:
            continue
        ref = str(im.get("name") or f"p{page_num}-img{i}")
        crop = page.crop((x0, top, x1, bottom))
        img = crop.to_image(resolution=resolution).original.copy()
        if img.mode != "RGB":
            img = img.convert("RGB")
        found.append(PageImage(ref=ref, x0=x0, top=top, x1=x1, bottom=bottom, image=img))
    return found


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def ingest_pdf(pdf_path: Path | str) -> PdfMeta:
    """Open and validate a PDF, returning a :class:`PdfMeta` descriptor.

    Parameters
    ----------
    pdf_path : Path or str
        Path to the PDF file.

    Returns
    -------
    PdfMeta

    Raises
    ------
    IngestError
        When the file is missing, empty, or cannot be opened as a PDF.
    """
    pdf_path = Path(pdf_path)
    _validate_pdf_path(pdf_path)

    try:
        with pdfplumber.open(pdf_path) as pdf:
            # pdfminer sets is_extractable = False on password-protected
            # documents that cannot be read.
            if hasattr(pdf, "doc") and hasattr(pdf.doc, "is_extractable"):
                if not pdf.doc.is_extractable:
                    raise IngestError(
                        f"PDF is password-protected or encrypted "
                        f"(text extraction not permitted): {pdf_path}"
                    )
            pages = [
                PageInfo(index=i, width=float(pg.width), height=float(pg.height))
                for i, pg in enumerate(pdf.pages)
            ]

        file_size = pdf_path.stat().st_size
        meta = PdfMeta(
            path=pdf_path.resolve(),
            num_pages=len(pages),
            pages=pages,
            file_size_bytes=file_size,
        )
        log.info(
            "Ingested %s: %d pages, %.1f KB",
            pdf_path.name,
            meta.num_pages,
            file_size / 1024,
        )
        return meta

    except IngestError:
        raise
    except Exception as exc:
        raise IngestError(f"Cannot open PDF: {exc}") from exc


def load_page_source(
    pdf_path: Path | str,
    page_num: int,
    with_images: bool = False,
    resolution: int = 200,
) -> PageSource:
    """Read one page's text items (and optionally its images).

    Parameters
    ----------
    pdf_path : Path or str
        Path to the PDF.
    page_num : int
        Zero-based page index.
    with_images : bool
        Also locate and rasterise embedded images.
    resolution : int
        DPI for image crops.

    Raises
    ------
    IngestError
        When the file cannot be opened or *page_num* is out of range.
    """
    pdf_path = Path(pdf_path)
    _validate_pdf_path(pdf_path)
    try:
        with pdfplumber.open(pdf_path) as pdf:
            if not 0 <= page_num < len(pdf.pages):
                raise IngestError(
                    f"Page {page_num} out of range (document has {len(pdf.pages)})"
                )
            page = pdf.pages[page_num]
            src = PageSource(
                index=page_num,
                width=float(page.width),
                height=float(page.height),
                items=_page_text_items(page),
            )
            if with_images:
                src.images = _page_images(page, page_num, resolution)
    except IngestError:
        raise
    except Exception as exc:
        raise IngestError(f"Cannot read page {page_num} of {pdf_path}: {exc}") from exc

    log.debug(
        "Page %d: %d text items, %d images", page_num, len(src.items), len(src.images)
    )
    return src


def render_page_image(
    pdf_path: Path | str,
    page_num: int,
    resolution: int = 200,
) -> Image.Image:
    """Render a single PDF page to an RGB PIL Image at *resolution* DPI."""
    with pdfplumber.open(pdf_path) as pdf:
        page = pdf.pages[page_num]
        img_page = page.to_image(resolution=resolution)
        img = img_page.original.copy()
    # pdfplumber may return RGBA in some cases
    if img.mode != "RGB":
        img = img.convert("RGB")
    return img
