"""Ingest stage — PDF file validation, metadata, text items and images.

Public API
----------
- :func:`ingest_pdf` — open + validate a PDF, return :class:`PdfMeta`
- :func:`load_page_source` — one page's text items and embedded images
- :func:`render_page_image` — render one page to PIL Image at a given DPI
- :class:`PdfMeta` — PDF-level metadata container
- :class:`PageInfo` — per-page dimensions
- :class:`PageImage` — an embedded image and its rasterised crop
- :class:`PageSource` — text items + images for one page
- :class:`IngestError` — raised on validation failures
"""

from .ingest import (
    IngestError,
    PageImage,
    PageInfo,
    PageSource,
    PdfMeta,
    ingest_pdf,
    load_page_source,
    render_page_image,
)

__all__ = [
    "IngestError",
    "PageImage",
    "PageInfo",
    "PageSource",
    "PdfMeta",
    "ingest_pdf",
    "load_page_source",
    "render_page_image",
]
